"""
Readiness watcher for replica-managed deployments.

A deployment has no natural completion; it resolves Ready once no replica
is reported unavailable, or Aborted when it is deleted while waiting.
"""

from typing import Any, Callable, Optional

from jobwatch.core.constants import WatchAction, WorkloadKind
from jobwatch.core.telemetry import get_logger, trace_span
from jobwatch.execution.outcomes import Aborted, Ready, ReadinessOutcome
from jobwatch.execution.watchers.base import ResourceWatcher
from jobwatch.execution.work_spec import WorkHandle

logger = get_logger(__name__)


class ReadinessWatcher(ResourceWatcher):
    """
    Blocks until a deployment is fully available, deleted or timed out.

    Ready means no unavailable replicas on a status the controller has
    reconciled. A status without ``observed_generation`` has not been
    reconciled yet and is ignored, even if it reports no unavailable
    replicas.
    """

    kind = WorkloadKind.DEPLOYMENT

    def read(self, handle: WorkHandle) -> Any:
        return self.context.apps_v1.read_namespaced_deployment(
            name=handle.name, namespace=handle.namespace
        )

    def list_func(self) -> Callable[..., Any]:
        return self.context.apps_v1.list_namespaced_deployment

    def default_timeout(self) -> float:
        return self.context.settings.deployment_timeout_seconds

    @trace_span
    def watch(
        self, handle: WorkHandle, timeout: Optional[float] = None
    ) -> ReadinessOutcome:
        return super().watch(handle, timeout)

    def apply(
        self, handle: WorkHandle, action: str, resource: Any
    ) -> Optional[ReadinessOutcome]:
        logger.info(f"Received deployment action {action} for {handle.name}")

        if action == WatchAction.DELETED.value:
            logger.info(f"Deployment {handle.name} was deleted, aborting")
            return Aborted(reason="deleted")

        status = getattr(resource, "status", None)
        # A status the controller has not reconciled yet says nothing about replicas
        if status is None or status.observed_generation is None:
            logger.warning(f"Deployment {handle.name} has no status yet")
            return None

        if not status.unavailable_replicas:
            logger.info(
                f"All {status.ready_replicas or 0} replicas of {handle.name} are ready"
            )
            return Ready()

        logger.info(
            f"Deployment {handle.name} has {status.unavailable_replicas} "
            f"unavailable replicas"
        )
        return None
