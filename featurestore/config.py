"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "featurestore-config"
    app_version: str = "0.1.0"
    log_level: str = "INFO"
    # "json" for machine-readable output, "console" for local use
    log_format: str = "json"

    # Kubernetes namespace assumed for manifests that omit metadata.namespace
    default_namespace: str = "default"

    feature_server_url: str = "http://localhost:6566"
    feature_server_timeout_seconds: float = 10.0

    model_config = {"env_prefix": "FEATURESTORE_", "env_file": ".env", "extra": "ignore"}


settings = Settings()
