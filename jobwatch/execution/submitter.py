"""
Submitter for jobs, deployments and auxiliary config maps.

Creates remote resources from descriptors and hands back a WorkHandle.
No local state is kept between calls.
"""

from typing import Mapping, Optional, Union

import yaml
from kubernetes.client.rest import ApiException

from jobwatch.core.constants import WorkloadKind
from jobwatch.core.exceptions import ApiError
from jobwatch.core.telemetry import get_logger, trace_span
from jobwatch.execution.context import ClusterContext
from jobwatch.execution.manifests import ManifestRenderer
from jobwatch.execution.work_spec import (
    DeploymentDescriptor,
    JobDescriptor,
    WorkHandle,
)

logger = get_logger(__name__)


def api_error(message: str, e: ApiException) -> ApiError:
    """Wrap a Kubernetes ApiException, keeping its HTTP status."""
    return ApiError(f"{message}: {e.status} {e.reason}", status=e.status)


class Submitter:
    """Creates and deletes remote resources."""

    def __init__(
        self, context: ClusterContext, renderer: Optional[ManifestRenderer] = None
    ):
        self.context = context
        self.renderer = renderer or ManifestRenderer()

    @trace_span
    def submit(
        self, descriptor: Union[JobDescriptor, DeploymentDescriptor]
    ) -> WorkHandle:
        """
        Create the remote resource described by ``descriptor``.

        Args:
            descriptor: Job or deployment descriptor

        Returns:
            WorkHandle naming the created resource

        Raises:
            ApiError: malformed descriptor, name collision or access denied
        """
        namespace = self.context.namespace_for(descriptor.namespace)
        manifest = self.renderer.render(descriptor, namespace)
        requested = descriptor.name or f"{descriptor.generate_name}*"

        try:
            if isinstance(descriptor, JobDescriptor):
                created = self.context.batch_v1.create_namespaced_job(
                    namespace=namespace, body=manifest
                )
                kind = WorkloadKind.JOB
            else:
                created = self.context.apps_v1.create_namespaced_deployment(
                    namespace=namespace, body=manifest
                )
                kind = WorkloadKind.DEPLOYMENT
        except ApiException as e:
            raise api_error(f"Failed to create {descriptor.kind} {requested}", e) from e

        handle = WorkHandle(
            kind=kind,
            name=created.metadata.name,
            namespace=created.metadata.namespace or namespace,
            uid=created.metadata.uid,
        )
        logger.info(f"Created {handle}:\n{yaml.safe_dump(manifest, sort_keys=False)}")
        return handle

    @trace_span
    def delete(
        self, handle: WorkHandle, propagation_policy: str = "Background"
    ) -> None:
        """
        Delete a job or deployment and its pods.

        A resource that is already gone is not an error.
        """
        try:
            if handle.kind == WorkloadKind.JOB:
                self.context.batch_v1.delete_namespaced_job(
                    name=handle.name,
                    namespace=handle.namespace,
                    propagation_policy=propagation_policy,
                )
            else:
                self.context.apps_v1.delete_namespaced_deployment(
                    name=handle.name,
                    namespace=handle.namespace,
                    propagation_policy=propagation_policy,
                )
            logger.info(f"Deleted {handle}")
        except ApiException as e:
            if e.status == 404:
                logger.info(f"{handle} already deleted or not found")
                return
            raise api_error(f"Failed to delete {handle}", e) from e

    def create_config_map(
        self,
        name: str,
        data: Optional[Mapping[str, str]] = None,
        binary_data: Optional[Mapping[str, bytes]] = None,
        labels: Optional[Mapping[str, str]] = None,
        namespace: Optional[str] = None,
    ) -> str:
        """Create a ConfigMap for mounting into workloads. Returns its name."""
        namespace = self.context.namespace_for(namespace)
        manifest = self.renderer.render_config_map(
            name, namespace, data=data, binary_data=binary_data, labels=labels
        )
        try:
            created = self.context.core_v1.create_namespaced_config_map(
                namespace=namespace, body=manifest
            )
        except ApiException as e:
            raise api_error(f"Failed to create config map {name}", e) from e

        logger.info(
            f"Created config map {name} with keys "
            f"{sorted(manifest['data']) + sorted(manifest['binaryData'])}"
        )
        return created.metadata.name

    def delete_config_map(self, name: str, namespace: Optional[str] = None) -> None:
        namespace = self.context.namespace_for(namespace)
        try:
            self.context.core_v1.delete_namespaced_config_map(
                name=name, namespace=namespace
            )
            logger.info(f"Deleted config map {name}")
        except ApiException as e:
            if e.status == 404:
                logger.info(f"Config map {name} already deleted or not found")
                return
            raise api_error(f"Failed to delete config map {name}", e) from e
