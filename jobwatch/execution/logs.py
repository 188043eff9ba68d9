"""
Log relay.

Streams a container's captured output as text lines. The sequence is lazy
and single-use; the HTTP response behind it is released when iteration
finishes, fails, or the generator is closed early.
"""

from typing import Any, Iterator, Optional

from kubernetes.client.rest import ApiException

from jobwatch.core.exceptions import ApiError, StateNotFoundError
from jobwatch.core.telemetry import get_logger
from jobwatch.execution.context import ClusterContext
from jobwatch.execution.status import StatusResolver
from jobwatch.execution.work_spec import WorkHandle

logger = get_logger(__name__)


class LogRelay:
    """Reads pod logs through the Kubernetes API."""

    def __init__(
        self, context: ClusterContext, resolver: Optional[StatusResolver] = None
    ):
        self.context = context
        self.resolver = resolver or StatusResolver(context)

    def stream_logs(
        self,
        handle: WorkHandle,
        container_name: Optional[str] = None,
        pod_name: Optional[str] = None,
    ) -> Iterator[str]:
        """
        Stream the container's output line by line, in emission order.

        The pod is located now; the log itself is opened on first iteration.

        Args:
            handle: Handle of the job the container belongs to
            container_name: Container to read (defaults to the principal container)
            pod_name: Pod to read from; located via the status resolver if omitted

        Raises:
            StateNotFoundError: no pod declares the container
            ApiError: on first iteration, if the log read was rejected
        """
        container_name = container_name or self.context.settings.principal_container

        if pod_name is None:
            pod = self.resolver.find_principal_container(handle, container_name)
            if pod is None:
                raise StateNotFoundError(
                    f"No pod of {handle} declares container {container_name}"
                )
            pod_name = pod.metadata.name

        return self._lines(handle, pod_name, container_name)

    def _lines(
        self, handle: WorkHandle, pod_name: str, container_name: str
    ) -> Iterator[str]:
        try:
            response = self.context.core_v1.read_namespaced_pod_log(
                name=pod_name,
                namespace=handle.namespace,
                container=container_name,
                _preload_content=False,
            )
        except ApiException as e:
            raise ApiError(
                f"Failed to read logs of {pod_name}/{container_name}: "
                f"{e.status} {e.reason}",
                status=e.status,
            ) from e

        try:
            yield from _split_lines(
                response.stream(self.context.settings.pod_log_chunk_size)
            )
        finally:
            _release(response)


def _split_lines(chunks: Iterator[bytes]) -> Iterator[str]:
    pending = b""
    for chunk in chunks:
        pending += chunk
        *lines, pending = pending.split(b"\n")
        for line in lines:
            yield _decode(line)
    if pending:
        yield _decode(pending)


def _decode(line: bytes) -> str:
    return line.decode("utf-8", errors="replace").rstrip("\r")


def _release(response: Any) -> None:
    response.close()
    response.release_conn()
