"""Courier configuration settings using pydantic-settings."""

from functools import cached_property
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuration settings for the delivery agent.

    Settings are loaded from environment variables with the COURIER_ prefix.
    For example, COURIER_MAX_QUEUE_SIZE=500 sets max_queue_size to 500.
    """

    model_config = SettingsConfigDict(
        env_prefix="COURIER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Server settings
    server_url: str = "http://localhost:3000"
    request_timeout: float = 10.0  # seconds per send/probe request

    # Queue settings
    max_queue_size: int = 10_000
    persist_queue: bool = True
    storage_key: str = "courier_offline_queue"
    snapshot_max_age: float = 24 * 60 * 60  # seconds before a snapshot is stale

    # Sync settings
    sync_interval: float = 5.0  # seconds between scheduled sync attempts
    probe_interval: float = 5.0  # seconds between connectivity probes
    send_delay: float = 0.1  # pause between messages within one cycle
    retry_attempts: int = 3
    retry_delay: float = 1.0  # accepted for compatibility, retries follow sync_interval

    # File paths
    data_dir: Path = Path("~/.local/share/courier")

    # Logging
    log_level: str = "INFO"
    log_file: Path | None = None

    @field_validator("max_queue_size")
    @classmethod
    def validate_max_queue_size(cls, v: int) -> int:
        """Ensure the queue can hold at least one message."""
        if v < 1:
            raise ValueError("max_queue_size must be at least 1")
        return v

    @field_validator("retry_attempts")
    @classmethod
    def validate_retry_attempts(cls, v: int) -> int:
        """Ensure retry budget is not negative."""
        if v < 0:
            raise ValueError("retry_attempts must not be negative")
        return v

    @field_validator("sync_interval", "probe_interval", "request_timeout", "snapshot_max_age")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        """Ensure intervals and timeouts are positive."""
        if v <= 0:
            raise ValueError("value must be greater than 0")
        return v

    @field_validator("send_delay", "retry_delay")
    @classmethod
    def validate_delay(cls, v: float) -> float:
        """Ensure delays are not negative."""
        if v < 0:
            raise ValueError("delay must not be negative")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return v.upper()

    @cached_property
    def data_path(self) -> Path:
        """Return expanded data directory path."""
        return self.data_dir.expanduser()

    @cached_property
    def store_path(self) -> Path:
        """Return path of the SQLite snapshot store."""
        return self.data_path / "queue.db"
