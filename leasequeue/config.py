"""
Application configuration using Pydantic Settings.
Loads configuration from environment variables with sensible defaults.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # MongoDB
    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_database: str = "leasequeue"
    mongodb_server_selection_timeout_ms: int = 5000

    # Queue
    queue_collection: str = "jobs"
    queue_default: str = "default"
    queue_lease_seconds: int = Field(default=60, gt=0)
    queue_write_concern: str = "majority"
    queue_journal: bool = True
    queue_wtimeout_ms: int | None = None

    # Clock
    queue_clock: Literal["server", "local"] = "server"
    clock_resync_seconds: float = 300.0

    # Reaper Configuration
    reaper_interval_seconds: float = 10.0
    reaper_queues: list[str] = ["default"]
    reaper_batch_size: int = Field(default=500, gt=0)

    # Observability
    otel_enabled: bool = False
    otel_exporter_otlp_endpoint: str = "http://localhost:4317"
    otel_service_name: str = "leasequeue"
    prometheus_port: int | None = None
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "json"

    @field_validator("queue_write_concern")
    @classmethod
    def check_write_concern(cls, value: str) -> str:
        if value != "majority" and not value.isdigit():
            raise ValueError("queue_write_concern must be 'majority' or a node count")
        return value


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
