"""
Completion watcher for batch jobs.

Resolves a job to Succeeded, Failed, TimedOut or WatchError from the job's
status counters, assuming a single completion.
"""

from typing import Any, Callable, Optional

import yaml

from jobwatch.core.constants import WorkloadKind
from jobwatch.core.telemetry import get_logger, trace_span
from jobwatch.execution.outcomes import Failed, Succeeded, TerminalOutcome
from jobwatch.execution.watchers.base import ResourceWatcher
from jobwatch.execution.work_spec import WorkHandle

logger = get_logger(__name__)


class CompletionWatcher(ResourceWatcher):
    """Blocks until a job succeeds, fails, times out or loses its watch."""

    kind = WorkloadKind.JOB

    def read(self, handle: WorkHandle) -> Any:
        return self.context.batch_v1.read_namespaced_job(
            name=handle.name, namespace=handle.namespace
        )

    def list_func(self) -> Callable[..., Any]:
        return self.context.batch_v1.list_namespaced_job

    def default_timeout(self) -> float:
        return self.context.settings.job_timeout_seconds

    @trace_span
    def watch(
        self, handle: WorkHandle, timeout: Optional[float] = None
    ) -> TerminalOutcome:
        return super().watch(handle, timeout)

    def apply(
        self, handle: WorkHandle, action: str, resource: Any
    ) -> Optional[TerminalOutcome]:
        logger.info(f"Received job action {action} for {handle.name}")

        status = getattr(resource, "status", None)
        if status is None:
            logger.info(f"Job {handle.name} has no status yet")
            return None

        if status.active == 1:
            logger.info(f"Job {handle.name} started at {status.start_time}")
            return None

        if status.failed == 1:
            conditions = [c.to_dict() for c in status.conditions or []]
            logger.info(
                f"Job {handle.name} failed with conditions\n"
                f"{yaml.safe_dump(conditions, sort_keys=False)}"
            )
            return Failed(conditions=conditions)

        if status.succeeded == 1:
            logger.info(f"Job {handle.name} succeeded at {status.completion_time}")
            return Succeeded(completion_time=status.completion_time)

        return None
