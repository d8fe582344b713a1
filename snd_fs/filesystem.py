"""The snd (sync & delete) filesystem.

SndFs applies every call to a fast temporary backend and mirrors each
successful mutation, asynchronously and in order, to a destination
backend. Old files are garbage collected from the temporary backend by the
same worker that mirrors writes.

Architecture:
    caller
      │
      ▼
    SndFs ──(sync)──► temporary backend
      │
      ▼ queue_operation()
    OperationWorker (one thread, FIFO)
      ├─► destination backend   (MirrorCall, CopyBack)
      └─► GarbageCollector      (GCPass on idle timer ticks)

Example:
    from snd_fs import MemoryBackend, SndFs

    with SndFs(destination=MemoryBackend()) as fs:
        fs.makedirs("/reports")
        with fs.create("/reports/daily.csv") as f:
            f.write(b"a,b\\n")
        fs.sync()  # the destination now holds /reports/daily.csv
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from typing import TYPE_CHECKING, Any

from snd_fs.adapters.local_backend import LocalBackend
from snd_fs.core.errors import (
    FilesystemClosedError,
    NoDestinationError,
    SyncTimeoutError,
    TemporaryBackendError,
)
from snd_fs.core.logging import PACKAGE_LOGGER
from snd_fs.core.models import Behavior, FileInfo
from snd_fs.core.operations import Barrier, MirrorCall, Operation
from snd_fs.core.utils import clean_path, has_write_flags
from snd_fs.services.garbage_collector import GarbageCollector
from snd_fs.services.mirrored_file import MirroredFile
from snd_fs.services.operation_worker import OperationWorker

if TYPE_CHECKING:
    from snd_fs.ports.storage import FileHandle, StorageBackend

FS_NAME = "snd"
DEFAULT_CLOSE_TIMEOUT = 5.0


def _timestamp(value: datetime | float) -> float:
    return value.timestamp() if isinstance(value, datetime) else float(value)


class SndFs:
    """Write-behind filesystem mirroring a temporary backend to a destination.

    Callers only ever see errors from the temporary backend, wrapped in
    TemporaryBackendError. Mirroring failures are logged by the worker and
    never reach callers; use ``sync()`` to wait for the destination to catch
    up.
    """

    def __init__(
        self,
        destination: StorageBackend | None,
        temporary: StorageBackend | None = None,
        behavior: Behavior | None = None,
        logger: logging.Logger | None = None,
        close_timeout: float | None = DEFAULT_CLOSE_TIMEOUT,
    ) -> None:
        """Create the filesystem and start its worker.

        Args:
            destination: Backend receiving mirrored operations (required).
            temporary: Backend callers work against. Defaults to a
                LocalBackend over a fresh temporary directory.
            behavior: Retention and queue settings (defaults apply when None).
            logger: Logger for the filesystem and its components. Defaults
                to the package logger, which discards records unless logging
                is configured.
            close_timeout: Default seconds close() waits for the worker
                (None waits indefinitely).

        Raises:
            NoDestinationError: If destination is None.
            TemporaryBackendError: If the default temporary directory
                could not be created.
        """
        if destination is None:
            raise NoDestinationError()

        self._log = logger or logging.getLogger(PACKAGE_LOGGER)

        if temporary is None:
            try:
                temporary = LocalBackend.temporary()
            except OSError as e:
                raise TemporaryBackendError(e, operation="mkdtemp") from e
            self._log.info("Temporary path available", extra={"temp_dir": str(temporary.root)})

        self._destination = destination
        self._temporary = temporary
        self._behavior = behavior or Behavior()
        self._closed = False
        self._close_timeout = close_timeout

        self._collector = GarbageCollector(
            temporary, self._behavior, log=self._log.getChild("gc")
        )
        self._worker = OperationWorker(
            temporary=temporary,
            destination=destination,
            collector=self._collector,
            capacity=self._behavior.queue_capacity,
            cleanup_period=self._behavior.cleanup_period_seconds,
            log=self._log.getChild("worker"),
        )
        self._worker.start()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    def name(self) -> str:
        """Name of the filesystem."""
        return FS_NAME

    @property
    def temporary(self) -> StorageBackend:
        return self._temporary

    @property
    def destination(self) -> StorageBackend:
        return self._destination

    @property
    def behavior(self) -> Behavior:
        return self._behavior

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Queue
    # ------------------------------------------------------------------

    def queue_operation(self, operation: Operation) -> None:
        """Queue an operation for the worker, blocking while the queue is full.

        Raises:
            FilesystemClosedError: If the filesystem was closed.
        """
        if self._closed:
            raise FilesystemClosedError()
        self._worker.submit(operation)

    def _check_open(self) -> None:
        if self._closed:
            raise FilesystemClosedError()

    def _mirror(self, method: str, *args: Any) -> None:
        """Run ``method`` on the temporary backend, then queue it for the destination."""
        self._check_open()
        try:
            getattr(self._temporary, method)(*args)
        except OSError as e:
            raise TemporaryBackendError(e, operation=method, path=str(args[0])) from e
        self.queue_operation(MirrorCall(method, args))

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def open_file(
        self, name: str, flags: int = os.O_RDONLY, mode: int = 0o644
    ) -> FileHandle | MirroredFile:
        """Open a file on the temporary backend.

        Write-capable flags (O_WRONLY, O_RDWR, O_APPEND) return a
        MirroredFile whose content is copied to the destination on close,
        sync and truncate. Read-only opens return the plain handle.

        Raises:
            TemporaryBackendError: If the temporary backend refused the open.
            FilesystemClosedError: If opening for write after close().
        """
        path = clean_path(name)
        mirrored = has_write_flags(flags)
        if mirrored:
            self._check_open()
        try:
            handle = self._temporary.open_file(path, flags, mode)
        except OSError as e:
            raise TemporaryBackendError(e, operation="open_file", path=path) from e

        if not mirrored:
            return handle
        return MirroredFile(self, handle, path, flags, mode, log=self._log.getChild("file"))

    def open(self, name: str) -> FileHandle:
        """Open a file read-only (never mirrored)."""
        path = clean_path(name)
        try:
            return self._temporary.open(path)
        except OSError as e:
            raise TemporaryBackendError(e, operation="open", path=path) from e

    def create(self, name: str, mode: int = 0o644) -> MirroredFile:
        """Create or truncate a file for reading and writing."""
        handle = self.open_file(name, os.O_RDWR | os.O_CREAT | os.O_TRUNC, mode)
        assert isinstance(handle, MirroredFile)
        return handle

    def stat(self, name: str) -> FileInfo:
        """Metadata of an entry on the temporary backend."""
        try:
            return self._temporary.stat(clean_path(name))
        except OSError as e:
            raise TemporaryBackendError(e, operation="stat", path=clean_path(name)) from e

    def exists(self, name: str) -> bool:
        """Whether an entry exists on the temporary backend."""
        path = clean_path(name)
        try:
            self._temporary.stat(path)
        except (FileNotFoundError, NotADirectoryError):
            return False
        except OSError as e:
            raise TemporaryBackendError(e, operation="stat", path=path) from e
        return True

    def list_dir(self, name: str = "/") -> list[FileInfo]:
        """List a directory of the temporary backend."""
        try:
            return self._temporary.list_dir(clean_path(name))
        except OSError as e:
            raise TemporaryBackendError(e, operation="list_dir", path=clean_path(name)) from e

    # ------------------------------------------------------------------
    # Mirrored mutations
    # ------------------------------------------------------------------

    def mkdir(self, name: str, mode: int = 0o755) -> None:
        """Create a directory."""
        self._mirror("mkdir", clean_path(name), mode)

    def makedirs(self, path: str, mode: int = 0o755) -> None:
        """Create a directory and all its parents."""
        self._mirror("makedirs", clean_path(path), mode)

    def remove(self, name: str) -> None:
        """Remove a file or an empty directory."""
        self._mirror("remove", clean_path(name))

    def remove_all(self, path: str) -> None:
        """Remove a path and any children it contains."""
        self._mirror("remove_all", clean_path(path))

    def rename(self, old_name: str, new_name: str) -> None:
        """Rename (move) a file or directory."""
        self._mirror("rename", clean_path(old_name), clean_path(new_name))

    def chmod(self, name: str, mode: int) -> None:
        """Change the mode of the named file."""
        self._mirror("chmod", clean_path(name), mode)

    def chown(self, name: str, uid: int, gid: int) -> None:
        """Change the numeric uid and gid of the named file."""
        self._mirror("chown", clean_path(name), uid, gid)

    def chtimes(self, name: str, atime: datetime | float, mtime: datetime | float) -> None:
        """Change the access and modification times of the named file."""
        self._mirror("chtimes", clean_path(name), _timestamp(atime), _timestamp(mtime))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def sync(self, timeout: float | None = None) -> None:
        """Wait until every operation queued before this call has run.

        Args:
            timeout: Maximum seconds to wait (None waits indefinitely).

        Raises:
            FilesystemClosedError: If the filesystem was closed.
            SyncTimeoutError: If the barrier was not reached in time.
        """
        barrier = Barrier()
        self.queue_operation(barrier)
        if not barrier.done.wait(timeout):
            raise SyncTimeoutError(timeout or 0.0)

    def close(self, timeout: float | None = None) -> None:
        """Stop the cleanup timer and the worker.

        Operations queued before close still run; call ``sync()`` first to
        be sure they completed. Safe to call multiple times.

        Args:
            timeout: Seconds to wait for the worker (defaults to close_timeout).
        """
        if self._closed:
            return
        self._closed = True
        self._worker.stop(timeout=timeout if timeout is not None else self._close_timeout)

    def get_stats(self) -> dict[str, Any]:
        """Worker statistics plus the filesystem state."""
        stats = self._worker.get_stats()
        stats["closed"] = self._closed
        return stats

    def __enter__(self) -> SndFs:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"SndFs(temporary={self._temporary!r}, destination={self._destination!r})"
