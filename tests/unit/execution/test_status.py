import pytest
from kubernetes import client
from kubernetes.client.rest import ApiException

from jobwatch.core.constants import WorkloadKind
from jobwatch.core.exceptions import AmbiguousResourceError, ApiError, StateNotFoundError
from jobwatch.execution.outcomes import Running, Terminated, Waiting
from jobwatch.execution.status import StatusResolver, container_state
from jobwatch.execution.work_spec import WorkHandle


@pytest.fixture
def handle():
    return WorkHandle(kind=WorkloadKind.JOB, name="hello", namespace="test-network")


@pytest.fixture
def resolver(make_context):
    return StatusResolver(make_context())


class TestFindPrincipalContainer:
    """Tests for locating the job pod that carries the principal container."""

    def test_lists_pods_by_job_label(self, resolver, handle, make_pod):
        pod = make_pod()
        resolver.context.core_v1.list_namespaced_pod.return_value = client.V1PodList(
            items=[pod]
        )

        found = resolver.find_principal_container(handle, "main")

        assert found is pod
        resolver.context.core_v1.list_namespaced_pod.assert_called_once_with(
            namespace="test-network", label_selector="job-name=hello"
        )

    def test_skips_pods_without_container(self, resolver, handle, make_pod):
        sidecar_only = make_pod(name="other", containers=("sidecar",))
        resolver.context.core_v1.list_namespaced_pod.return_value = client.V1PodList(
            items=[sidecar_only]
        )

        assert resolver.find_principal_container(handle, "main") is None

    def test_container_name_is_case_insensitive(self, resolver, handle, make_pod):
        pod = make_pod(containers=("Main",))
        resolver.context.core_v1.list_namespaced_pod.return_value = client.V1PodList(
            items=[pod]
        )

        assert resolver.find_principal_container(handle, "main") is pod

    def test_no_pods_returns_none(self, resolver, handle):
        resolver.context.core_v1.list_namespaced_pod.return_value = client.V1PodList(
            items=[]
        )

        assert resolver.find_principal_container(handle) is None

    def test_multiple_matches_prefers_most_recent(self, resolver, handle, make_pod):
        """Test a stale pod from an earlier attempt loses to the newest one."""
        stale = make_pod(name="hello-old", created_minutes_ago=30)
        latest = make_pod(name="hello-new", created_minutes_ago=1)
        resolver.context.core_v1.list_namespaced_pod.return_value = client.V1PodList(
            items=[latest, stale]
        )

        assert resolver.find_principal_container(handle, "main") is latest

    def test_multiple_matches_strict_raises(self, resolver, handle, make_pod):
        resolver.context.core_v1.list_namespaced_pod.return_value = client.V1PodList(
            items=[make_pod(name="a"), make_pod(name="b")]
        )

        with pytest.raises(AmbiguousResourceError):
            resolver.find_principal_container(handle, "main", strict=True)

    def test_list_failure_raises_api_error(self, resolver, handle):
        resolver.context.core_v1.list_namespaced_pod.side_effect = ApiException(
            status=403, reason="Forbidden"
        )

        with pytest.raises(ApiError) as exc_info:
            resolver.find_principal_container(handle)

        assert exc_info.value.status == 403


class TestExtractExitCode:
    """Tests for mapping container state to an exit code."""

    def test_terminated_success(self, resolver, make_pod, container_states):
        pod = make_pod(states={"main": container_states["terminated"](0)})

        assert resolver.extract_exit_code(pod.status, "main") == 0

    def test_terminated_failure(self, resolver, make_pod, container_states):
        pod = make_pod(states={"main": container_states["terminated"](1, "Error")})

        assert resolver.extract_exit_code(pod.status, "main") == 1

    def test_picks_named_container(self, resolver, make_pod, container_states):
        pod = make_pod(
            containers=("init-msp", "main"),
            states={
                "init-msp": container_states["terminated"](0),
                "main": container_states["terminated"](42),
            },
        )

        assert resolver.extract_exit_code(pod.status, "main") == 42

    def test_running_returns_sentinel(self, resolver, make_pod, container_states):
        pod = make_pod(states={"main": container_states["running"]()})

        assert resolver.extract_exit_code(pod.status, "main") == -1

    def test_waiting_returns_sentinel(self, resolver, make_pod, container_states):
        pod = make_pod(states={"main": container_states["waiting"]()})

        assert resolver.extract_exit_code(pod.status, "main") == -1

    def test_missing_status_raises(self, resolver, make_pod, container_states):
        pod = make_pod(
            containers=("main", "sidecar"),
            states={"sidecar": container_states["terminated"](0)},
        )

        with pytest.raises(StateNotFoundError):
            resolver.extract_exit_code(pod.status, "main")

    def test_no_container_statuses_raises(self, resolver, make_pod):
        pod = make_pod()

        with pytest.raises(StateNotFoundError):
            resolver.extract_exit_code(pod.status, "main")


class TestContainerState:
    def test_terminated(self, container_states):
        status = client.V1ContainerStatus(
            name="main",
            image="alpine",
            image_id="",
            ready=False,
            restart_count=0,
            state=container_states["terminated"](3, "Error"),
        )

        assert container_state(status) == Terminated(exit_code=3, reason="Error")

    def test_waiting_carries_reason(self, container_states):
        status = client.V1ContainerStatus(
            name="main",
            image="alpine",
            image_id="",
            ready=False,
            restart_count=0,
            state=container_states["waiting"]("ErrImagePull"),
        )

        state = container_state(status)

        assert isinstance(state, Waiting)
        assert state.reason == "ErrImagePull"

    def test_running(self, container_states):
        status = client.V1ContainerStatus(
            name="main",
            image="alpine",
            image_id="",
            ready=True,
            restart_count=0,
            state=container_states["running"](),
        )

        assert isinstance(container_state(status), Running)
