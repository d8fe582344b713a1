"""Data models for the snd filesystem."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_MIN_RETAINED_FILES = 10
DEFAULT_MIN_FILE_AGE = timedelta(minutes=20)
DEFAULT_QUEUE_CAPACITY = 1000
MIN_CLEANUP_PERIOD = timedelta(milliseconds=100)


class Behavior(BaseModel):
    """Replication and garbage collection behavior.

    ``cleanup_period`` defaults to half of ``min_file_age`` and is never
    shorter than ``MIN_CLEANUP_PERIOD``.
    """

    min_retained_files: int | None = Field(
        default=DEFAULT_MIN_RETAINED_FILES,
        ge=0,
        description="Young files kept per GC pass (None disables count-based retention)",
    )
    min_file_age: timedelta = Field(
        default=DEFAULT_MIN_FILE_AGE,
        description="Files younger than this may be kept by GC",
    )
    queue_capacity: int = Field(
        default=DEFAULT_QUEUE_CAPACITY,
        ge=1,
        description="Pending operations before writers block",
    )
    cleanup_period: timedelta | None = Field(
        default=None,
        description="Interval between GC attempts (default: min_file_age / 2)",
    )

    @field_validator("min_file_age")
    @classmethod
    def validate_min_file_age(cls, value: timedelta) -> timedelta:
        """Reject negative ages."""
        if value < timedelta(0):
            raise ValueError("min_file_age must not be negative")
        return value

    @model_validator(mode="after")
    def apply_cleanup_period_floor(self) -> Behavior:
        """Derive the cleanup period and floor it to MIN_CLEANUP_PERIOD."""
        period = self.cleanup_period
        if period is None:
            period = self.min_file_age / 2
        self.cleanup_period = max(period, MIN_CLEANUP_PERIOD)
        return self

    @property
    def cleanup_period_seconds(self) -> float:
        """Cleanup period as seconds (always set after validation)."""
        assert self.cleanup_period is not None
        return self.cleanup_period.total_seconds()


@dataclass(frozen=True)
class FileInfo:
    """Metadata about a backend entry."""

    name: str  # Base name, "" for the root
    size: int
    mtime: float  # POSIX seconds
    is_dir: bool
    mode: int = 0


@dataclass(frozen=True)
class GCPassResult:
    """Summary of one garbage collection pass."""

    files_kept: int
    files_deleted: int
    cutoff: float  # POSIX seconds, entries modified after this are "young"
    root_entries: int
    duration_seconds: float
