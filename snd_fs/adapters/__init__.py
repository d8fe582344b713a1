"""Storage backend adapters."""

from snd_fs.adapters.local_backend import LocalBackend, LocalFile
from snd_fs.adapters.memory_backend import MemoryBackend, MemoryFile

__all__ = [
    "LocalBackend",
    "LocalFile",
    "MemoryBackend",
    "MemoryFile",
]
