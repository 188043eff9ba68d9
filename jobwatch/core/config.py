from typing import Dict, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

from jobwatch.core.constants import ClusterConfigMode


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="JOBWATCH_", env_file=".env", env_file_encoding="utf-8"
    )

    # Kubernetes connection
    cluster_config_mode: ClusterConfigMode = ClusterConfigMode.AUTO
    kube_context: Optional[str] = None
    namespace: str = "default"

    # Watch timeouts (seconds)
    job_timeout_seconds: float = 120.0
    deployment_timeout_seconds: float = 120.0
    watch_queue_size: int = 64

    # Leave remote resources in place after a timed out watch unless asked
    delete_on_timeout: bool = False

    # Job conventions
    principal_container: str = "main"
    job_name_label: str = "job-name"
    pod_log_chunk_size: int = 4096

    # Logging
    log_level: str = "INFO"

    # OpenTelemetry
    otel_service_name: str = "jobwatch"
    otel_exporter_endpoint: Optional[str] = None  # e.g. https://api.axiom.co/v1/traces
    otel_exporter_headers: Dict[str, str] = {}


settings = Settings()
