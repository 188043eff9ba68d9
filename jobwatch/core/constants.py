from enum import Enum


class ClusterConfigMode(str, Enum):
    """How the Kubernetes client configuration is loaded."""

    AUTO = "auto"
    IN_CLUSTER = "in_cluster"
    KUBECONFIG = "kubeconfig"


class WorkloadKind(str, Enum):
    """Remote resource kinds a descriptor can be submitted as."""

    JOB = "job"
    DEPLOYMENT = "deployment"


class WatchAction(str, Enum):
    """Action tags carried by Kubernetes watch events."""

    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"
    BOOKMARK = "BOOKMARK"
    ERROR = "ERROR"
