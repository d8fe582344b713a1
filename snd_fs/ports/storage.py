"""Protocol interfaces for storage backends.

Both the temporary and the destination side of an SndFs are backends
implementing StorageBackend. Using typing.Protocol enables structural
subtyping, so any POSIX-like virtual or real filesystem adapter qualifies.

Paths are POSIX style and relative to the backend root (see
``snd_fs.core.utils.clean_path``). Failures are reported with native
``OSError`` subclasses.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from snd_fs.core.models import FileInfo


@runtime_checkable
class FileHandle(Protocol):
    """An open file on a backend."""

    @property
    def name(self) -> str:
        """Backend path the handle was opened with."""
        ...

    @property
    def closed(self) -> bool:
        """Whether close() has been called."""
        ...

    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes (all remaining when negative)."""
        ...

    def write(self, data: bytes) -> int:
        """Write ``data`` and return the number of bytes written."""
        ...

    def seek(self, offset: int, whence: int = 0) -> int:
        """Move the file position and return the new absolute position."""
        ...

    def tell(self) -> int:
        """Current file position."""
        ...

    def truncate(self, size: int | None = None) -> int:
        """Resize the file to ``size`` bytes (current position when None)."""
        ...

    def flush(self) -> None:
        """Flush buffered writes to the backend."""
        ...

    def sync(self) -> None:
        """Flush and commit the file contents to stable storage."""
        ...

    def close(self) -> None:
        """Release the handle."""
        ...


@runtime_checkable
class StorageBackend(Protocol):
    """A hierarchical file store.

    Implementations must provide all methods defined here.
    LocalBackend and MemoryBackend are the bundled implementations.
    """

    def open(self, name: str) -> FileHandle:
        """Open a file read-only.

        Raises:
            FileNotFoundError: If the file does not exist.
            IsADirectoryError: If the path is a directory.
        """
        ...

    def open_file(self, name: str, flags: int, mode: int = 0o644) -> FileHandle:
        """Open a file with ``os.O_*`` flags, creating it with ``mode`` if asked.

        Raises:
            FileNotFoundError: If the file or its parent does not exist.
            FileExistsError: If O_CREAT|O_EXCL and the file exists.
            IsADirectoryError: If the path is a directory.
        """
        ...

    def stat(self, name: str) -> FileInfo:
        """Return metadata for an entry.

        Raises:
            FileNotFoundError: If the entry does not exist.
        """
        ...

    def list_dir(self, name: str) -> list[FileInfo]:
        """List a directory in the backend's native order.

        Raises:
            FileNotFoundError: If the directory does not exist.
            NotADirectoryError: If the path is not a directory.
        """
        ...

    def mkdir(self, name: str, mode: int = 0o755) -> None:
        """Create one directory. Its parent must exist."""
        ...

    def makedirs(self, path: str, mode: int = 0o755) -> None:
        """Create a directory and any missing parents. Existing dirs are fine."""
        ...

    def remove(self, name: str) -> None:
        """Remove a file or an empty directory."""
        ...

    def remove_all(self, path: str) -> None:
        """Remove a path and everything below it. Missing paths are fine."""
        ...

    def rename(self, old_name: str, new_name: str) -> None:
        """Rename (move) an entry, replacing a file at the target."""
        ...

    def chmod(self, name: str, mode: int) -> None:
        """Change permission bits."""
        ...

    def chown(self, name: str, uid: int, gid: int) -> None:
        """Change numeric owner and group."""
        ...

    def chtimes(self, name: str, atime: float, mtime: float) -> None:
        """Change access and modification times (POSIX seconds)."""
        ...
