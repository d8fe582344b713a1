"""Port interfaces for the snd filesystem."""

from snd_fs.ports.storage import FileHandle, StorageBackend

__all__ = [
    "FileHandle",
    "StorageBackend",
]
