"""
Application configuration using Pydantic Settings.
Loads configuration from environment variables with sensible defaults.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///./queue.db"
    database_pool_size: int = 10
    database_max_overflow: int = 20
    database_busy_timeout_ms: int = 5000

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 4000

    # Queue defaults (overridable at runtime through the config table)
    max_retries: int = 3
    backoff_base: float = 2.0
    poll_interval_seconds: float = 2.0

    # Worker Configuration
    max_workers: int = 10
    heartbeat_interval_seconds: float = 5.0
    worker_stale_after_seconds: float = 30.0

    # Reaper Configuration
    reaper_interval_seconds: float = 10.0

    # Observability
    otel_exporter_otlp_endpoint: str | None = None
    otel_service_name: str = "queuectl"
    log_level: str = "INFO"
    log_format: str = "console"  # json, logfmt or console


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
