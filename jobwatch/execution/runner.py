"""
Job runner.

Drives the full pipeline for a descriptor: submit, watch until resolved,
then (for jobs) find the principal container, extract its exit code and
collect its output.
"""

from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from jobwatch.core.exceptions import (
    DeploymentAbortedError,
    JobFailedError,
    StateNotFoundError,
    TimedOutError,
    WatchClosedError,
)
from jobwatch.core.telemetry import get_logger, trace_span
from jobwatch.execution.context import ClusterContext
from jobwatch.execution.logs import LogRelay
from jobwatch.execution.outcomes import (
    Aborted,
    Failed,
    ReadinessOutcome,
    Ready,
    Succeeded,
    TerminalOutcome,
    TimedOut,
)
from jobwatch.execution.status import UNRESOLVED_EXIT_CODE, StatusResolver
from jobwatch.execution.submitter import Submitter
from jobwatch.execution.watchers import CompletionWatcher, ReadinessWatcher
from jobwatch.execution.work_spec import (
    DeploymentDescriptor,
    JobDescriptor,
    WorkHandle,
)

logger = get_logger(__name__)


class JobResult(BaseModel):
    """What a finished (or abandoned) job run produced."""

    model_config = ConfigDict(frozen=True)

    handle: WorkHandle
    outcome: TerminalOutcome
    exit_code: Optional[int] = None
    logs: List[str] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return isinstance(self.outcome, Succeeded) and self.exit_code in (0, None)

    def raise_for_outcome(self) -> "JobResult":
        """Raise unless the job succeeded. Returns self for chaining."""
        if isinstance(self.outcome, Succeeded):
            return self
        if isinstance(self.outcome, Failed):
            raise JobFailedError(
                f"{self.handle} failed with exit code {self.exit_code}", self.outcome
            )
        if isinstance(self.outcome, TimedOut):
            raise TimedOutError(
                f"{self.handle} did not finish within {self.outcome.timeout_seconds}s",
                self.outcome,
            )
        raise WatchClosedError(
            f"Watch for {self.handle} closed before completion: {self.outcome.cause}",
            self.outcome,
        )


def ensure_ready(handle: WorkHandle, outcome: ReadinessOutcome) -> WorkHandle:
    """Raise unless the deployment became ready."""
    if isinstance(outcome, Ready):
        return handle
    if isinstance(outcome, Aborted):
        raise DeploymentAbortedError(
            f"{handle} was {outcome.reason} while waiting for it", outcome
        )
    if isinstance(outcome, TimedOut):
        # Most often an image pull problem; the pod conditions carry the cause
        raise TimedOutError(
            f"{handle} was not ready after {outcome.timeout_seconds}s", outcome
        )
    raise WatchClosedError(
        f"Watch for {handle} closed before it was ready: {outcome.cause}", outcome
    )


class JobRunner:
    """Submits work and waits for its outcome."""

    def __init__(self, context: ClusterContext):
        self.context = context
        self.submitter = Submitter(context)
        self.completion_watcher = CompletionWatcher(context)
        self.readiness_watcher = ReadinessWatcher(context)
        self.resolver = StatusResolver(context)
        self.log_relay = LogRelay(context, self.resolver)

    @trace_span
    def run_job(
        self,
        descriptor: JobDescriptor,
        timeout: Optional[float] = None,
        container_name: Optional[str] = None,
        delete_on_timeout: Optional[bool] = None,
    ) -> JobResult:
        """
        Submit a job and block until it resolves.

        Args:
            descriptor: Job to run
            timeout: Seconds to wait (defaults to settings.job_timeout_seconds)
            container_name: Principal container (defaults to settings)
            delete_on_timeout: Delete the job if it times out (defaults to settings)

        Returns:
            JobResult with outcome, and for finished jobs the exit code and logs
        """
        container_name = container_name or self.context.settings.principal_container
        if delete_on_timeout is None:
            delete_on_timeout = self.context.settings.delete_on_timeout

        handle = self.submitter.submit(descriptor)
        outcome = self.completion_watcher.watch(handle, timeout)

        if isinstance(outcome, TimedOut):
            if delete_on_timeout:
                self.submitter.delete(handle)
            return JobResult(handle=handle, outcome=outcome)

        if not isinstance(outcome, (Succeeded, Failed)):
            return JobResult(handle=handle, outcome=outcome)

        pod = self.resolver.find_principal_container(handle, container_name)
        if pod is None:
            raise StateNotFoundError(
                f"No pod of {handle} declares container {container_name}"
            )

        exit_code = self.resolver.extract_exit_code(pod.status, container_name)

        logger.info(f"Command output of {handle}:")
        logs = []
        for line in self.log_relay.stream_logs(
            handle, container_name, pod_name=pod.metadata.name
        ):
            logger.info(line)
            logs.append(line)

        if exit_code == UNRESOLVED_EXIT_CODE:
            logger.warning(f"{handle} resolved {outcome.outcome} before its container")
        logger.info(f"Command exit: {exit_code}")

        return JobResult(handle=handle, outcome=outcome, exit_code=exit_code, logs=logs)

    @trace_span
    def deploy(
        self,
        descriptor: DeploymentDescriptor,
        timeout: Optional[float] = None,
        delete_on_timeout: Optional[bool] = None,
    ) -> Tuple[WorkHandle, ReadinessOutcome]:
        """Submit a deployment and block until it is ready."""
        if delete_on_timeout is None:
            delete_on_timeout = self.context.settings.delete_on_timeout

        handle = self.submitter.submit(descriptor)
        outcome = self.readiness_watcher.watch(handle, timeout)

        if isinstance(outcome, TimedOut) and delete_on_timeout:
            self.submitter.delete(handle)
        return handle, outcome

    def delete(self, handle: WorkHandle) -> None:
        self.submitter.delete(handle)
