# Shared pytest configuration and fixtures for unit tests
import threading
from datetime import datetime, timedelta, timezone

import pytest
from unittest.mock import MagicMock
from kubernetes import client

from jobwatch.core.config import Settings
from jobwatch.execution.context import ClusterContext

TEST_NAMESPACE = "test-network"


class FakeWatch:
    """Stands in for kubernetes.watch.Watch, replaying canned events."""

    def __init__(self, events=None, error=None, hold_open=False):
        self.events = list(events or [])
        self.error = error
        self.hold_open = hold_open
        self.stopped = threading.Event()
        self.stream_kwargs = None
        self.list_func = None

    def stream(self, func, **kwargs):
        self.list_func = func
        self.stream_kwargs = kwargs
        selector = kwargs.get("field_selector") or ""
        name = selector.partition("=")[2]
        for event in self.events:
            if self.stopped.is_set():
                return
            resource = event.get("object")
            # Field selectors scope the stream to one resource name
            if name and resource is not None and resource.metadata.name != name:
                continue
            yield event
        if self.error is not None:
            raise self.error
        if self.hold_open:
            # Emulate a stream that stays open until the watch is stopped
            self.stopped.wait(10)

    def stop(self):
        self.stopped.set()


@pytest.fixture
def settings():
    return Settings(
        namespace=TEST_NAMESPACE,
        job_timeout_seconds=5,
        deployment_timeout_seconds=5,
        watch_queue_size=8,
        principal_container="main",
        delete_on_timeout=False,
    )


@pytest.fixture
def make_context(settings):
    """Build a ClusterContext with mocked API clients and a fake watch."""

    def _make(watch=None, watch_factory=None):
        watch = watch or FakeWatch(hold_open=True)
        watch_factory = watch_factory or (lambda: watch)

        return ClusterContext(
            batch_v1=MagicMock(),
            apps_v1=MagicMock(),
            core_v1=MagicMock(),
            namespace=TEST_NAMESPACE,
            settings=settings,
            watch_factory=watch_factory,
        )

    return _make


@pytest.fixture
def job_event():
    """Build a watch event carrying a V1Job with the given status counters."""

    def _make(name="hello", action="MODIFIED", status=True, **counters):
        job_status = client.V1JobStatus(**counters) if status else None
        job = client.V1Job(
            metadata=client.V1ObjectMeta(name=name, namespace=TEST_NAMESPACE),
            status=job_status,
        )
        return {"type": action, "object": job, "raw_object": {}}

    return _make


@pytest.fixture
def deployment_event():
    def _make(name="peer", action="MODIFIED", status=True, **fields):
        deployment_status = client.V1DeploymentStatus(**fields) if status else None
        deployment = client.V1Deployment(
            metadata=client.V1ObjectMeta(name=name, namespace=TEST_NAMESPACE),
            status=deployment_status,
        )
        return {"type": action, "object": deployment, "raw_object": {}}

    return _make


@pytest.fixture
def make_pod():
    """Build a V1Pod whose containers are in the given states."""

    def _make(
        name="hello-abcde",
        containers=("main",),
        states=None,
        created_minutes_ago=1,
    ):
        states = states or {}
        container_statuses = [
            client.V1ContainerStatus(
                name=container,
                image="alpine",
                image_id="",
                ready=False,
                restart_count=0,
                state=states[container],
            )
            for container in containers
            if container in states
        ]
        return client.V1Pod(
            metadata=client.V1ObjectMeta(
                name=name,
                namespace=TEST_NAMESPACE,
                creation_timestamp=datetime.now(timezone.utc)
                - timedelta(minutes=created_minutes_ago),
            ),
            spec=client.V1PodSpec(
                containers=[
                    client.V1Container(name=container, image="alpine")
                    for container in containers
                ]
            ),
            status=client.V1PodStatus(container_statuses=container_statuses or None),
        )

    return _make


def terminated(exit_code, reason=None):
    return client.V1ContainerState(
        terminated=client.V1ContainerStateTerminated(exit_code=exit_code, reason=reason)
    )


def waiting(reason="ImagePullBackOff"):
    return client.V1ContainerState(
        waiting=client.V1ContainerStateWaiting(reason=reason, message="back-off")
    )


def running():
    return client.V1ContainerState(
        running=client.V1ContainerStateRunning(started_at=datetime.now(timezone.utc))
    )


@pytest.fixture
def container_states():
    """Factories for V1ContainerState values."""
    return {"terminated": terminated, "waiting": waiting, "running": running}


def pod_log_response(*chunks):
    response = MagicMock()
    response.stream.return_value = iter(chunks)
    return response


@pytest.fixture
def log_response():
    return pod_log_response


@pytest.fixture
def fake_watch():
    return FakeWatch
