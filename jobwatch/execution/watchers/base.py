"""
Base watcher interface.

Defines the blocking watch loop shared by the completion and readiness
watchers. Subclasses supply the read/list verbs and the transition rules.
"""

import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from kubernetes.client.rest import ApiException

from jobwatch.core.constants import WatchAction, WorkloadKind
from jobwatch.core.exceptions import ApiError
from jobwatch.core.telemetry import get_logger, log_span_event
from jobwatch.execution.context import ClusterContext
from jobwatch.execution.outcomes import TimedOut, WatchError
from jobwatch.execution.watchers.channel import ChannelClosed, WatchChannel
from jobwatch.execution.work_spec import WorkHandle

logger = get_logger(__name__)


class ResourceWatcher(ABC):
    """Abstract base class for single-resource watchers."""

    kind: WorkloadKind

    def __init__(self, context: ClusterContext):
        self.context = context

    @abstractmethod
    def read(self, handle: WorkHandle) -> Any:
        """
        Read the resource once.

        Raises:
            ApiException: when the resource cannot be read
        """
        pass

    @abstractmethod
    def list_func(self) -> Callable[..., Any]:
        """Namespaced list verb the watch stream is opened on."""
        pass

    @abstractmethod
    def apply(self, handle: WorkHandle, action: str, resource: Any) -> Optional[Any]:
        """
        Apply the transition rules to one event.

        Returns:
            The resolved outcome, or None to keep waiting
        """
        pass

    @abstractmethod
    def default_timeout(self) -> float:
        pass

    def watch(self, handle: WorkHandle, timeout: Optional[float] = None) -> Any:
        """
        Block until the resource resolves, the subscription closes, or the
        timeout elapses. Exactly one outcome is returned per call.

        Raises:
            ApiError: the resource cannot be subscribed to (e.g. it does not exist)
        """
        if handle.kind != self.kind:
            raise ValueError(f"{type(self).__name__} cannot watch {handle}")
        if timeout is None:
            timeout = self.default_timeout()

        try:
            self.read(handle)
        except ApiException as e:
            raise ApiError(
                f"Cannot watch {handle}: {e.status} {e.reason}", status=e.status
            ) from e

        deadline = time.monotonic() + timeout
        channel = WatchChannel(
            self.context.watch_factory,
            self.list_func(),
            name=handle.name,
            namespace=handle.namespace,
            timeout=timeout,
            maxsize=self.context.settings.watch_queue_size,
        )

        with channel:
            logger.info(f"Awaiting a maximum of {timeout}s for {handle}")
            outcome = self._consume(handle, channel, deadline, timeout)

        log_span_event(
            f"{handle} resolved {outcome.outcome}", {"workload": str(handle)}
        )
        return outcome

    def _consume(
        self,
        handle: WorkHandle,
        channel: WatchChannel,
        deadline: float,
        timeout: float,
    ) -> Any:
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.error(
                    f"{handle} did not resolve within {timeout}s; leaving it in place"
                )
                return TimedOut(timeout_seconds=timeout)

            item = channel.receive(remaining)
            if item is None:
                continue

            if isinstance(item, ChannelClosed):
                if item.cause:
                    logger.error(f"Watch for {handle} was closed: {item.cause}")
                else:
                    logger.warning(f"Watch for {handle} closed before resolution")
                return WatchError(cause=item.cause)

            if item.action == WatchAction.ERROR.value:
                cause = _error_cause(item.raw or item.resource)
                logger.error(f"Watch for {handle} reported an error: {cause}")
                return WatchError(cause=cause)

            outcome = self.apply(handle, item.action, item.resource)
            if outcome is not None:
                return outcome


def _error_cause(raw: Any) -> str:
    if isinstance(raw, dict):
        return f"{raw.get('code')} {raw.get('reason')}: {raw.get('message')}"
    return str(raw)
