"""Configuration system for the snd filesystem."""

from datetime import timedelta
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings

from snd_fs.core.models import (
    DEFAULT_MIN_FILE_AGE,
    DEFAULT_MIN_RETAINED_FILES,
    DEFAULT_QUEUE_CAPACITY,
    Behavior,
)


class Settings(BaseSettings):
    """snd filesystem configuration."""

    # Storage
    temp_dir: Path | None = Field(
        default=None,
        description="Temporary backend directory (a fresh temp dir when unset)",
    )

    # Garbage collection
    min_retained_files: int | None = Field(
        default=DEFAULT_MIN_RETAINED_FILES,
        ge=0,
        description="Young files kept per GC pass (unset disables count-based retention)",
    )
    min_file_age_seconds: float = Field(
        default=DEFAULT_MIN_FILE_AGE.total_seconds(),
        ge=0.0,
        description="Files younger than this may be kept by GC",
    )
    cleanup_period_seconds: float | None = Field(
        default=None,
        ge=0.0,
        description="Seconds between GC attempts (default: half the minimum file age)",
    )

    # Queue
    queue_capacity: int = Field(
        default=DEFAULT_QUEUE_CAPACITY,
        ge=1,
        description="Pending mirrored operations before writers block",
    )
    close_timeout_seconds: float = Field(
        default=5.0,
        ge=0.0,
        description="Maximum wait for the worker when closing",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    log_json: bool = Field(
        default=False,
        description="Emit logs as JSON objects",
    )

    model_config = {
        "env_prefix": "SND_FS_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }

    def to_behavior(self) -> Behavior:
        """Build the replication and GC behavior from these settings."""
        cleanup_period = (
            timedelta(seconds=self.cleanup_period_seconds)
            if self.cleanup_period_seconds is not None
            else None
        )
        return Behavior(
            min_retained_files=self.min_retained_files,
            min_file_age=timedelta(seconds=self.min_file_age_seconds),
            queue_capacity=self.queue_capacity,
            cleanup_period=cleanup_period,
        )


# Settings singleton with dependency injection support
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the settings instance (lazy-loaded singleton).

    Returns:
        The Settings instance.

    Example:
        from snd_fs.config import get_settings
        settings = get_settings()
        print(settings.queue_capacity)
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def override_settings(new_settings: Settings) -> None:
    """Override the settings instance (for testing).

    Args:
        new_settings: The new Settings instance to use.
    """
    global _settings
    _settings = new_settings


def reset_settings() -> None:
    """Reset settings to None (forces reload on next get_settings call)."""
    global _settings
    _settings = None


def settings_summary(settings: Settings) -> dict[str, Any]:
    """Settings as a flat dict, for startup logging."""
    return settings.model_dump(mode="json")
