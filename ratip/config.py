from functools import lru_cache
from typing import ClassVar

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from RATIP_* environment variables / .env file."""

    api_base_url: str = "http://localhost:8080/api/v1"

    # Poll cadences in seconds (0 for correlations means compute once at start)
    health_interval_seconds: float = 30.0
    telemetry_interval_seconds: float = 5.0
    alarm_interval_seconds: float = 10.0
    correlation_interval_seconds: float = 0.0

    # HTTP timeouts
    health_timeout_seconds: float = 5.0
    query_timeout_seconds: float = 120.0

    # Rolling window / batch sizes
    telemetry_window_size: int = 20
    alarm_batch_size: int = 5

    log_level: str = "WARNING"

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_prefix="RATIP_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Lazily load and cache settings. Fails at first call, not at import time."""
    return Settings()
