"""snd - a sync & delete write-behind filesystem.

Writes land on a fast temporary backend and are mirrored, in order, to a
durable destination backend; old files are garbage collected from the
temporary side.
"""

import logging

__version__ = "0.1.0"

# Re-export core components for convenience
from snd_fs.adapters import LocalBackend, MemoryBackend
from snd_fs.config import Settings, get_settings
from snd_fs.core import (
    Behavior,
    ConfigurationError,
    FileInfo,
    FilesystemClosedError,
    GCPassResult,
    MirrorError,
    NoDestinationError,
    SndFsError,
    SyncTimeoutError,
    TemporaryBackendError,
)
from snd_fs.factory import create_filesystem
from snd_fs.filesystem import SndFs
from snd_fs.ports import FileHandle, StorageBackend
from snd_fs.services import MirroredFile

# Silent unless the application configures logging
logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Version info
    "__version__",
    # Filesystem
    "SndFs",
    "MirroredFile",
    "create_filesystem",
    # Configuration
    "Behavior",
    "Settings",
    "get_settings",
    # Backends
    "FileHandle",
    "StorageBackend",
    "LocalBackend",
    "MemoryBackend",
    # Models
    "FileInfo",
    "GCPassResult",
    # Errors
    "SndFsError",
    "ConfigurationError",
    "NoDestinationError",
    "TemporaryBackendError",
    "MirrorError",
    "FilesystemClosedError",
    "SyncTimeoutError",
]
