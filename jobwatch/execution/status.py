"""
Status resolver.

Locates the pod carrying a job's principal container and maps that
container's lifecycle state to a process exit code. Only meaningful once a
watch has resolved Succeeded or Failed.
"""

from datetime import datetime, timezone
from typing import Any, List, Optional

import yaml
from kubernetes.client.rest import ApiException

from jobwatch.core.exceptions import AmbiguousResourceError, ApiError, StateNotFoundError
from jobwatch.core.telemetry import get_logger, trace_span
from jobwatch.execution.context import ClusterContext
from jobwatch.execution.outcomes import (
    ContainerLifecycleState,
    Running,
    Terminated,
    Waiting,
)
from jobwatch.execution.work_spec import WorkHandle

logger = get_logger(__name__)

# Returned when the container has not terminated although the job has
UNRESOLVED_EXIT_CODE = -1

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def container_state(container_status: Any) -> ContainerLifecycleState:
    """Map a V1ContainerStatus onto the running/waiting/terminated tri-state."""
    state = container_status.state
    if state is not None:
        if state.terminated is not None:
            return Terminated(
                exit_code=state.terminated.exit_code,
                reason=state.terminated.reason,
            )
        if state.running is not None:
            return Running(started_at=state.running.started_at)
        if state.waiting is not None:
            return Waiting(reason=state.waiting.reason, message=state.waiting.message)
    # The kubelet reports Waiting by default when no state is set
    return Waiting(reason=None)


class StatusResolver:
    """Finds the principal pod of a job and extracts its exit code."""

    def __init__(self, context: ClusterContext):
        self.context = context

    @trace_span
    def find_principal_container(
        self,
        handle: WorkHandle,
        container_name: Optional[str] = None,
        strict: bool = False,
    ) -> Optional[Any]:
        """
        Find the job's pod that declares a container named ``container_name``.

        Args:
            handle: Handle of a job that has resolved
            container_name: Principal container name (defaults to settings)
            strict: Raise instead of choosing when several pods match

        Returns:
            The matching V1Pod, or None when no pod matches. When several
            pods match (e.g. a stale pod from an earlier attempt), the most
            recently created one is returned.

        Raises:
            ApiError: the pod listing failed
            AmbiguousResourceError: several pods match and ``strict`` is set
        """
        container_name = container_name or self.context.settings.principal_container
        label_selector = f"{self.context.settings.job_name_label}={handle.name}"

        try:
            pods = self.context.core_v1.list_namespaced_pod(
                namespace=handle.namespace, label_selector=label_selector
            )
        except ApiException as e:
            raise ApiError(
                f"Failed to list pods for {handle}: {e.status} {e.reason}",
                status=e.status,
            ) from e

        candidates = [
            pod for pod in pods.items if _declares_container(pod, container_name)
        ]
        if not candidates:
            logger.warning(
                f"No pod of {handle} declares a container named {container_name}"
            )
            return None

        if len(candidates) > 1:
            names = [pod.metadata.name for pod in candidates]
            if strict:
                raise AmbiguousResourceError(
                    f"{len(candidates)} pods of {handle} declare {container_name}: {names}"
                )
            logger.warning(
                f"{len(candidates)} pods of {handle} declare {container_name}: "
                f"{names}; using the most recent"
            )

        return max(candidates, key=_created_at)

    def extract_exit_code(self, pod_status: Any, container_name: Optional[str] = None) -> int:
        """
        Dig the principal container's exit code out of a V1PodStatus.

        Returns:
            The exit code of a terminated container, or -1 when the container
            is still running or waiting (the job watch and the pod listing
            disagree; callers should tolerate this)

        Raises:
            StateNotFoundError: no status entry for the container
        """
        container_name = container_name or self.context.settings.principal_container

        statuses = pod_status.container_statuses if pod_status is not None else None
        for container_status in statuses or []:
            if container_status.name.lower() != container_name.lower():
                continue

            state = container_state(container_status)
            logger.info(f"Final container state:\n{yaml.safe_dump(state.model_dump())}")

            if isinstance(state, Terminated):
                return state.exit_code
            if isinstance(state, Running):
                logger.error(f"Container {container_name} is still running")
            else:
                logger.error(
                    f"Container {container_name} is still waiting ({state.reason})"
                )
            return UNRESOLVED_EXIT_CODE

        raise StateNotFoundError(
            f"No exit status found for container {container_name} in pod status"
        )


def _declares_container(pod: Any, container_name: str) -> bool:
    containers: List[Any] = (pod.spec.containers or []) if pod.spec else []
    return any(c.name.lower() == container_name.lower() for c in containers)


def _created_at(pod: Any) -> datetime:
    return pod.metadata.creation_timestamp or _EPOCH
