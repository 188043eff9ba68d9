"""
Cluster context.

Holds the Kubernetes API clients shared by the submitter, watchers,
status resolver and log relay. Build it once with ``from_settings()`` and
pass it to every component; tests construct it directly with fakes.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from kubernetes import client, config, watch

from jobwatch.core.config import Settings, settings as default_settings
from jobwatch.core.constants import ClusterConfigMode
from jobwatch.core.telemetry import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ClusterContext:
    """Read-shared handle on one Kubernetes API connection."""

    batch_v1: Any
    apps_v1: Any
    core_v1: Any
    namespace: str
    settings: Settings = field(default_factory=lambda: default_settings)
    watch_factory: Callable[[], Any] = watch.Watch

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ClusterContext":
        """Load cluster configuration and build the API clients."""
        settings = settings or default_settings
        _load_cluster_config(settings)

        api_client = client.ApiClient()
        logger.info(
            f"Connected to Kubernetes (namespace={settings.namespace}, "
            f"mode={settings.cluster_config_mode.value})"
        )
        return cls(
            batch_v1=client.BatchV1Api(api_client),
            apps_v1=client.AppsV1Api(api_client),
            core_v1=client.CoreV1Api(api_client),
            namespace=settings.namespace,
            settings=settings,
        )

    def namespace_for(self, requested: Optional[str]) -> str:
        return requested or self.namespace


def _load_cluster_config(settings: Settings) -> None:
    """Load K8s config (in-cluster or kubeconfig)."""
    mode = settings.cluster_config_mode

    if mode == ClusterConfigMode.IN_CLUSTER:
        config.load_incluster_config()
        return

    if mode == ClusterConfigMode.KUBECONFIG:
        config.load_kube_config(context=settings.kube_context)
        return

    try:
        config.load_incluster_config()
    except config.ConfigException:
        config.load_kube_config(context=settings.kube_context)
