from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "campsift-api"
    environment: str = "dev"
    database_url: str | None = None
    database_pool_min_size: int = 1
    database_pool_max_size: int = 10
    low_quality_threshold: int = 50
    stale_scrape_days: int = 7
    zero_price_ratio_threshold: float = 0.5
    zero_price_lookback_days: int = 30
    cross_source_similarity_threshold: float = 0.85
    maintenance_default_batch_size: int = 50
    maintenance_max_batch_size: int = 500
    needs_regeneration_after_failures: int = 3
    otel_enabled: bool = True
    otel_service_name: str = "campsift-api"
    otel_exporter_otlp_endpoint: str | None = None
    otel_exporter_otlp_headers: str | None = None
    otel_trace_sample_ratio: float = 1.0
    otel_log_correlation: bool = True

    model_config = SettingsConfigDict(env_prefix="CS_", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()
