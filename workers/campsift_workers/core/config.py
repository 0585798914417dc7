from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    environment: str = "dev"
    api_base_url: str = "http://localhost:8000"
    request_timeout_seconds: float = 60.0
    poll_interval_seconds: float = 60.0
    max_backoff_seconds: float = 900.0
    within_source_dedupe_interval_seconds: float = 86400.0
    cross_source_dedupe_interval_seconds: float = 86400.0
    source_quality_interval_seconds: float = 86400.0
    data_quality_interval_seconds: float = 86400.0
    maintenance_batch_size: int = 50
    max_batches_per_run: int = 20
    maintenance_dry_run: bool = False
    otel_enabled: bool = True
    otel_service_name: str = "campsift-workers"
    otel_exporter_otlp_endpoint: str | None = None
    otel_exporter_otlp_headers: str | None = None
    otel_trace_sample_ratio: float = 1.0
    otel_log_correlation: bool = True

    model_config = SettingsConfigDict(env_prefix="CS_WORKER_", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()
