"""
Manifest rendering for submitted workloads.

Descriptors are rendered through Jinja2 YAML templates into plain dicts,
which the Kubernetes Python client accepts as request bodies.
"""

import base64
import os
import uuid
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml
from jinja2 import Environment, FileSystemLoader, StrictUndefined

from jobwatch.core.telemetry import get_logger
from jobwatch.execution.work_spec import (
    ContainerSpec,
    DeploymentDescriptor,
    JobDescriptor,
    _DescriptorBase,
)

logger = get_logger(__name__)

TEMPLATE_DIR = os.path.join(os.path.dirname(__file__), "job_templates")

WORKLOAD_LABEL = "app.kubernetes.io/instance"
MANAGED_BY_LABEL = "app.kubernetes.io/managed-by"


class ManifestRenderer:
    """Renders descriptors into Kubernetes manifests."""

    def __init__(self, template_dir: Optional[str] = None):
        self.jinja_env = Environment(
            loader=FileSystemLoader(template_dir or TEMPLATE_DIR),
            undefined=StrictUndefined,
        )

    def render(
        self, descriptor: Union[JobDescriptor, DeploymentDescriptor], namespace: str
    ) -> Dict[str, Any]:
        """Render a job or deployment descriptor into a manifest dict."""
        if isinstance(descriptor, JobDescriptor):
            return self.render_job(descriptor, namespace)
        return self.render_deployment(descriptor, namespace)

    def render_job(self, descriptor: JobDescriptor, namespace: str) -> Dict[str, Any]:
        context = self._workload_context(descriptor, namespace)
        context.update(
            active_deadline_seconds=descriptor.active_deadline_seconds,
            ttl_seconds_after_finished=descriptor.ttl_seconds_after_finished,
        )
        return self._render("job.yaml.j2", context)

    def render_deployment(
        self, descriptor: DeploymentDescriptor, namespace: str
    ) -> Dict[str, Any]:
        context = self._workload_context(descriptor, namespace)
        if descriptor.name is None and WORKLOAD_LABEL not in descriptor.labels:
            # A shared prefix must not yield overlapping selectors
            instance = context["labels"][WORKLOAD_LABEL][:54]
            context["labels"][WORKLOAD_LABEL] = f"{instance}-{uuid.uuid4().hex[:8]}"
        context.update(
            replicas=descriptor.replicas,
            selector={WORKLOAD_LABEL: context["labels"][WORKLOAD_LABEL]},
        )
        return self._render("deployment.yaml.j2", context)

    def render_config_map(
        self,
        name: str,
        namespace: str,
        data: Optional[Mapping[str, str]] = None,
        binary_data: Optional[Mapping[str, bytes]] = None,
        labels: Optional[Mapping[str, str]] = None,
    ) -> Dict[str, Any]:
        context = {
            "name": name,
            "namespace": namespace,
            "labels": {MANAGED_BY_LABEL: "jobwatch", **(labels or {})},
            "data": dict(data or {}),
            "binary_data": {
                key: base64.b64encode(value).decode("ascii")
                for key, value in (binary_data or {}).items()
            },
        }
        return self._render("config_map.yaml.j2", context)

    def _render(self, template_name: str, context: Dict[str, Any]) -> Dict[str, Any]:
        template = self.jinja_env.get_template(template_name)
        manifest_yaml = template.render(**context)
        logger.debug(f"Rendered {template_name}:\n{manifest_yaml}")
        return yaml.safe_load(manifest_yaml)

    def _workload_context(
        self, descriptor: _DescriptorBase, namespace: str
    ) -> Dict[str, Any]:
        identity = (descriptor.name or descriptor.generate_name).rstrip("-.")
        labels = {
            MANAGED_BY_LABEL: "jobwatch",
            WORKLOAD_LABEL: identity[:63],
            **descriptor.labels,
        }
        return {
            "name": descriptor.name,
            "generate_name": descriptor.generate_name,
            "namespace": namespace,
            "labels": labels,
            "containers": [
                _container_manifest(container, descriptor)
                for container in descriptor.containers
            ],
            "volumes": [
                _volume_manifest(volume) for volume in descriptor.volumes
            ],
        }


def _container_manifest(
    container: ContainerSpec, descriptor: _DescriptorBase
) -> Dict[str, Any]:
    manifest: Dict[str, Any] = {
        "name": container.name,
        "image": container.image,
    }
    if container.command:
        manifest["command"] = list(container.command)
    if container.args:
        manifest["args"] = list(container.args)
    if container.env:
        # Convert env dict to list of {name, value}
        manifest["env"] = [
            {"name": k, "value": v} for k, v in container.env.items()
        ]
    if container.working_dir:
        manifest["workingDir"] = container.working_dir
    if container.image_pull_policy:
        manifest["imagePullPolicy"] = container.image_pull_policy
    if (
        isinstance(descriptor, DeploymentDescriptor)
        and descriptor.ports
        and container.name == descriptor.containers[0].name
    ):
        manifest["ports"] = [{"containerPort": port} for port in descriptor.ports]

    mounts = descriptor.mounts_for(container.name)
    if mounts:
        manifest["volumeMounts"] = [
            {
                "name": volume.volume_name,
                "mountPath": volume.mount_path,
                "readOnly": volume.read_only,
            }
            for volume in mounts
        ]
    return manifest


def _volume_manifest(volume) -> Dict[str, Any]:
    config_map: Dict[str, Any] = {"name": volume.config_map}
    if volume.items:
        config_map["items"] = _items(volume.items)
    return {"name": volume.volume_name, "configMap": config_map}


def _items(items: Mapping[str, str]) -> List[Dict[str, str]]:
    return [{"key": key, "path": path} for key, path in items.items()]
