"""Core components for the snd filesystem."""

from snd_fs.core.errors import (
    ConfigurationError,
    FilesystemClosedError,
    MirrorError,
    NoDestinationError,
    SndFsError,
    SyncTimeoutError,
    TemporaryBackendError,
)
from snd_fs.core.models import Behavior, FileInfo, GCPassResult
from snd_fs.core.operations import Barrier, CopyBack, GCPass, MirrorCall, Operation, Stop

__all__ = [
    # Errors
    "SndFsError",
    "ConfigurationError",
    "NoDestinationError",
    "TemporaryBackendError",
    "MirrorError",
    "FilesystemClosedError",
    "SyncTimeoutError",
    # Models
    "Behavior",
    "FileInfo",
    "GCPassResult",
    # Operations
    "Operation",
    "MirrorCall",
    "CopyBack",
    "GCPass",
    "Barrier",
    "Stop",
]
