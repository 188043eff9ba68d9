"""
Bounded channel between a Kubernetes watch stream and a consumer.

The stream is iterated on a daemon producer thread and each event is
pushed into a bounded queue. The consumer (the thread blocked in
``watch()``) pulls events with a deadline. Closing the channel stops the
watch and drops anything the producer still delivers.
"""

import math
import queue
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from jobwatch.core.telemetry import get_logger

logger = get_logger(__name__)

# Keep the server-side stream open a little past the consumer deadline so
# that a clean server close is never mistaken for the timeout.
SERVER_TIMEOUT_MARGIN_SECONDS = 5

_PUT_POLL_SECONDS = 0.1
_JOIN_TIMEOUT_SECONDS = 2.0


@dataclass(frozen=True)
class WatchEvent:
    action: str
    resource: Any
    raw: Optional[dict] = None


@dataclass(frozen=True)
class ChannelClosed:
    """End of stream. ``cause`` is None when the server closed cleanly."""

    cause: Optional[str] = None


class WatchChannel:
    """Single-use channel for one watch subscription."""

    def __init__(
        self,
        watch_factory: Callable[[], Any],
        list_func: Callable[..., Any],
        name: str,
        namespace: str,
        timeout: float,
        maxsize: int = 64,
    ):
        self.name = name
        self.namespace = namespace
        self._watch = watch_factory()
        self._list_func = list_func
        self._server_timeout = math.ceil(timeout) + SERVER_TIMEOUT_MARGIN_SECONDS
        self._queue: "queue.Queue[Union[WatchEvent, ChannelClosed]]" = queue.Queue(
            maxsize=maxsize
        )
        self._stopped = threading.Event()
        self._thread = threading.Thread(
            target=self._pump, name=f"watch-{name}", daemon=True
        )

    def __enter__(self) -> "WatchChannel":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._stopped.is_set()

    def open(self) -> None:
        logger.info(f"Opening watch for {self.namespace}/{self.name}")
        self._thread.start()

    def close(self) -> None:
        if self._stopped.is_set():
            return
        self._stopped.set()
        self._watch.stop()
        # Watch.stop() is only checked between events; unblock the reader now
        self._release_response()
        if self._thread.is_alive():
            self._thread.join(timeout=_JOIN_TIMEOUT_SECONDS)
            if self._thread.is_alive():
                logger.warning(f"Watch thread for {self.name} did not exit after close")
        logger.info(f"Closed watch for {self.namespace}/{self.name}")

    def _release_response(self) -> None:
        response = getattr(self._watch, "_resp", None)
        if response is None:
            return
        try:
            response.close()
            response.release_conn()
        except Exception as e:
            logger.warning(f"Failed to release watch response for {self.name}: {e}")

    def receive(
        self, timeout: Optional[float]
    ) -> Optional[Union[WatchEvent, ChannelClosed]]:
        """Next event or closure marker, or None if nothing arrived in time."""
        if self._stopped.is_set():
            raise RuntimeError(f"watch channel for {self.name} is closed")
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def _pump(self) -> None:
        cause = None
        if self._stopped.is_set():
            return
        try:
            for raw_event in self._watch.stream(
                self._list_func,
                namespace=self.namespace,
                field_selector=f"metadata.name={self.name}",
                timeout_seconds=self._server_timeout,
            ):
                event = WatchEvent(
                    action=raw_event["type"],
                    resource=raw_event.get("object"),
                    raw=raw_event.get("raw_object"),
                )
                if not self._offer(event):
                    return
        except Exception as e:
            if self._stopped.is_set():
                # Response torn down by close()
                return
            # Delivered to the consumer as the closure cause
            logger.error(f"Watch for {self.name} closed with exception: {e}")
            cause = f"{type(e).__name__}: {e}"

        self._offer(ChannelClosed(cause=cause))

    def _offer(self, item: Union[WatchEvent, ChannelClosed]) -> bool:
        while not self._stopped.is_set():
            try:
                self._queue.put(item, timeout=_PUT_POLL_SECONDS)
                return True
            except queue.Full:
                continue
        return False
