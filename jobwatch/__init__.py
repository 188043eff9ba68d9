"""Submit work to a Kubernetes cluster and wait for its outcome."""

__version__ = "0.1.0"
