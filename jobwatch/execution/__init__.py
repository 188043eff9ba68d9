"""
Submit, watch, resolve and read logs of cluster workloads.
"""

from jobwatch.execution.context import ClusterContext
from jobwatch.execution.logs import LogRelay
from jobwatch.execution.outcomes import (
    Aborted,
    Failed,
    Ready,
    Running,
    Succeeded,
    Terminated,
    TimedOut,
    Waiting,
    WatchError,
)
from jobwatch.execution.runner import JobResult, JobRunner, ensure_ready
from jobwatch.execution.status import StatusResolver
from jobwatch.execution.submitter import Submitter
from jobwatch.execution.watchers import CompletionWatcher, ReadinessWatcher
from jobwatch.execution.work_spec import (
    ConfigMapVolume,
    ContainerSpec,
    DeploymentDescriptor,
    JobDescriptor,
    WorkHandle,
    parse_descriptor,
)

__all__ = [
    "ClusterContext",
    "Submitter",
    "CompletionWatcher",
    "ReadinessWatcher",
    "StatusResolver",
    "LogRelay",
    "JobRunner",
    "JobResult",
    "ensure_ready",
    "ContainerSpec",
    "ConfigMapVolume",
    "JobDescriptor",
    "DeploymentDescriptor",
    "WorkHandle",
    "parse_descriptor",
    "Succeeded",
    "Failed",
    "TimedOut",
    "WatchError",
    "Ready",
    "Aborted",
    "Running",
    "Waiting",
    "Terminated",
]
