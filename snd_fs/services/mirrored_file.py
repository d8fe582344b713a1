"""Write-capable file handles whose content is copied to the destination.

A MirroredFile wraps a handle on the temporary backend. Closing, syncing
or truncating it queues a CopyBack operation; the worker then streams the
whole temporary file to the destination with ``copy_back``. The copy reads
the temporary file when the worker gets to it, so the destination receives
the state at execution time, not at queue time.
"""

from __future__ import annotations

import logging
import os
import weakref
from typing import TYPE_CHECKING

from snd_fs.core.errors import FilesystemClosedError, MirrorError, TemporaryBackendError
from snd_fs.core.operations import CopyBack
from snd_fs.core.utils import copy_back_flags, describe_flags, has_write_flags

if TYPE_CHECKING:
    from snd_fs.filesystem import SndFs
    from snd_fs.ports.storage import FileHandle, StorageBackend

logger = logging.getLogger(__name__)

COPY_CHUNK_SIZE = 64 * 1024


class MirroredFile:
    """File handle on the temporary backend that schedules copy-backs.

    Holds only a weak reference to its filesystem: an open handle does not
    keep a closed SndFs alive.
    """

    def __init__(
        self,
        fs: SndFs,
        handle: FileHandle,
        name: str,
        flags: int,
        mode: int,
        log: logging.Logger | None = None,
    ) -> None:
        self._fs_ref = weakref.ref(fs)
        self._handle = handle
        self._name = name
        self._flags = flags
        self._mode = mode
        self._log = log or logger
        self._closed = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def flags(self) -> int:
        return self._flags

    @property
    def mode(self) -> int:
        return self._mode

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Pass-through I/O
    # ------------------------------------------------------------------

    def read(self, size: int = -1) -> bytes:
        return self._handle.read(size)

    def write(self, data: bytes) -> int:
        return self._handle.write(data)

    def write_text(self, text: str, encoding: str = "utf-8") -> int:
        """Encode and write ``text``; returns the number of bytes written."""
        return self._handle.write(text.encode(encoding))

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        return self._handle.seek(offset, whence)

    def tell(self) -> int:
        return self._handle.tell()

    def flush(self) -> None:
        self._handle.flush()

    # ------------------------------------------------------------------
    # Mirrored operations
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the temporary handle, then queue a copy-back.

        Nothing is queued when the close fails.

        Raises:
            TemporaryBackendError: If closing the temporary handle failed.
        """
        if self._closed:
            return
        try:
            self._handle.close()
        except OSError as e:
            raise TemporaryBackendError(e, operation="close", path=self._name) from e
        self._closed = True

        if has_write_flags(self._flags):
            self._queue_copy_back()

    def sync(self) -> None:
        """Commit the temporary file, then queue a copy-back.

        Raises:
            TemporaryBackendError: If the temporary sync failed.
        """
        try:
            self._handle.sync()
        except OSError as e:
            raise TemporaryBackendError(e, operation="sync", path=self._name) from e
        self._queue_copy_back()

    def truncate(self, size: int | None = None) -> int:
        """Queue a copy-back, then truncate the temporary file.

        The copy-back is queued first so that a remirror is scheduled even
        when the truncate fails.

        Raises:
            TemporaryBackendError: If the temporary truncate failed.
        """
        self._queue_copy_back()
        try:
            return self._handle.truncate(size)
        except OSError as e:
            raise TemporaryBackendError(e, operation="truncate", path=self._name) from e

    def _queue_copy_back(self) -> None:
        fs = self._fs_ref()
        if fs is None:
            self._log.warning(
                "Filesystem gone, file won't be mirrored", extra={"file_name": self._name}
            )
            return
        try:
            fs.queue_operation(CopyBack(self._name, self._flags, self._mode))
        except FilesystemClosedError:
            self._log.warning(
                "Filesystem closed, file won't be mirrored", extra={"file_name": self._name}
            )

    def __enter__(self) -> MirroredFile:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"MirroredFile({self._name!r}, flags={describe_flags(self._flags)})"


def copy_back(
    temporary: StorageBackend,
    destination: StorageBackend,
    operation: CopyBack,
    log: logging.Logger | None = None,
) -> int:
    """Stream a temporary file to the destination (runs on the worker).

    The source is opened first so that a vanished temporary file does not
    truncate the destination copy. Close errors are logged, not raised.

    Args:
        temporary: Backend holding the authoritative file.
        destination: Backend receiving the copy.
        operation: File name, original open flags and mode.
        log: Logger for copy failures.

    Returns:
        Number of bytes copied.

    Raises:
        MirrorError: If either file could not be opened or the copy failed.
    """
    log = log or logger
    name = operation.name
    context = {
        "file_name": name,
        "file_flags": describe_flags(operation.flags),
        "file_mode": oct(operation.mode),
    }
    log.debug("Copying file", extra={"file_name": name})

    try:
        src = temporary.open(name)
    except OSError as e:
        log.error("Couldn't open copy source file", extra=context | {"err": str(e)})
        raise MirrorError(
            "couldn't open copy source file", name, operation.flags, operation.mode
        ) from e

    try:
        try:
            dst = destination.open_file(name, copy_back_flags(operation.flags), operation.mode)
        except OSError as e:
            log.error("Couldn't open copy destination file", extra=context | {"err": str(e)})
            raise MirrorError(
                "couldn't open copy destination file", name, operation.flags, operation.mode
            ) from e

        try:
            copied = 0
            while True:
                chunk = src.read(COPY_CHUNK_SIZE)
                if not chunk:
                    break
                copied += dst.write(chunk)
        except OSError as e:
            log.error("Error copying file", extra=context | {"err": str(e)})
            raise MirrorError("error copying file", name, operation.flags, operation.mode) from e
        finally:
            _close_logged(dst, "destination", name, log)
    finally:
        _close_logged(src, "source", name, log)

    log.debug("Copy done", extra={"file_name": name, "bytes_copied": copied})
    return copied


def _close_logged(handle: FileHandle, side: str, name: str, log: logging.Logger) -> None:
    try:
        handle.close()
    except OSError as e:
        log.error(f"Error closing {side} file", extra={"file_name": name, "err": str(e)})
