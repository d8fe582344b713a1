"""Storage backend over a directory of the native filesystem.

Every path is confined beneath ``root``: ``clean_path`` strips ``..``
before the path is joined, so callers cannot escape the directory.
"""

from __future__ import annotations

import errno
import io
import logging
import os
import shutil
import stat as stat_module
import tempfile
from pathlib import Path

from snd_fs.core.models import FileInfo
from snd_fs.core.utils import clean_path

logger = logging.getLogger(__name__)

TEMP_DIR_PREFIX = "snd-fs-"


def _file_mode(flags: int) -> str:
    """FileIO mode string matching already-applied ``os.open`` flags."""
    access = flags & (os.O_RDONLY | os.O_WRONLY | os.O_RDWR)
    if flags & os.O_APPEND:
        return "a+" if access == os.O_RDWR else "a"
    if access == os.O_RDWR:
        return "r+"
    if access == os.O_WRONLY:
        return "w"
    return "r"


class LocalFile:
    """Open file of a LocalBackend (unbuffered)."""

    def __init__(self, name: str, fd: int, flags: int) -> None:
        self._name = name
        self._raw = io.FileIO(fd, mode=_file_mode(flags), closefd=True)

    @property
    def name(self) -> str:
        return self._name

    @property
    def closed(self) -> bool:
        return self._raw.closed

    def read(self, size: int = -1) -> bytes:
        data = self._raw.read(size)
        return data if data is not None else b""

    def write(self, data: bytes) -> int:
        view = memoryview(data)
        written = 0
        while written < len(view):
            n = self._raw.write(view[written:])
            if not n:
                raise OSError(f"short write on {self._name}")
            written += n
        return written

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        return self._raw.seek(offset, whence)

    def tell(self) -> int:
        return self._raw.tell()

    def truncate(self, size: int | None = None) -> int:
        return self._raw.truncate(size)

    def flush(self) -> None:
        self._raw.flush()

    def sync(self) -> None:
        self._raw.flush()
        os.fsync(self._raw.fileno())

    def close(self) -> None:
        self._raw.close()

    def __enter__(self) -> LocalFile:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class LocalBackend:
    """StorageBackend rooted at a directory on the native filesystem."""

    def __init__(self, root: str | Path, create: bool = True) -> None:
        """Initialize the backend.

        Args:
            root: Directory holding the backend's tree.
            create: Create ``root`` (and parents) when missing.

        Raises:
            NotADirectoryError: If ``root`` exists and is not a directory.
            FileNotFoundError: If ``root`` is missing and ``create`` is False.
        """
        self._root = Path(root).resolve()
        if create:
            self._root.mkdir(parents=True, exist_ok=True)
        if not self._root.exists():
            raise FileNotFoundError(str(self._root))
        if not self._root.is_dir():
            raise NotADirectoryError(str(self._root))

    @classmethod
    def temporary(cls, prefix: str = TEMP_DIR_PREFIX) -> LocalBackend:
        """Create a backend over a fresh private temporary directory."""
        root = tempfile.mkdtemp(prefix=prefix)
        logger.debug("Created temporary directory %s", root)
        return cls(root)

    @property
    def root(self) -> Path:
        """Directory backing this store."""
        return self._root

    def real_path(self, name: str) -> Path:
        """Native path of a backend path."""
        relative = clean_path(name).lstrip("/")
        return self._root / relative if relative else self._root

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def open(self, name: str) -> LocalFile:
        return self.open_file(name, os.O_RDONLY)

    def open_file(self, name: str, flags: int, mode: int = 0o644) -> LocalFile:
        path = self.real_path(name)
        if path.is_dir():
            raise IsADirectoryError(errno.EISDIR, os.strerror(errno.EISDIR), clean_path(name))
        fd = os.open(path, flags, mode)
        try:
            return LocalFile(clean_path(name), fd, flags)
        except Exception:
            os.close(fd)
            raise

    def stat(self, name: str) -> FileInfo:
        path = self.real_path(name)
        return self._info(path.name if path != self._root else "", path.stat())

    def list_dir(self, name: str) -> list[FileInfo]:
        entries = []
        with os.scandir(self.real_path(name)) as it:
            for entry in it:
                try:
                    st = entry.stat(follow_symlinks=False)
                except FileNotFoundError:
                    # Removed since the directory was read
                    continue
                entries.append(self._info(entry.name, st))
        return entries

    @staticmethod
    def _info(name: str, st: os.stat_result) -> FileInfo:
        return FileInfo(
            name=name,
            size=st.st_size,
            mtime=st.st_mtime,
            is_dir=stat_module.S_ISDIR(st.st_mode),
            mode=stat_module.S_IMODE(st.st_mode),
        )

    # ------------------------------------------------------------------
    # Tree mutations
    # ------------------------------------------------------------------

    def mkdir(self, name: str, mode: int = 0o755) -> None:
        os.mkdir(self.real_path(name), mode)

    def makedirs(self, path: str, mode: int = 0o755) -> None:
        os.makedirs(self.real_path(path), mode, exist_ok=True)

    def remove(self, name: str) -> None:
        path = self.real_path(name)
        if path.is_dir() and not path.is_symlink():
            os.rmdir(path)
        else:
            os.unlink(path)

    def remove_all(self, path: str) -> None:
        target = self.real_path(path)
        if target == self._root:
            for child in list(target.iterdir()):
                self.remove_all(str(child.relative_to(self._root)))
            return
        if target.is_dir() and not target.is_symlink():
            shutil.rmtree(target)
        elif target.exists() or target.is_symlink():
            target.unlink()

    def rename(self, old_name: str, new_name: str) -> None:
        os.replace(self.real_path(old_name), self.real_path(new_name))

    def chmod(self, name: str, mode: int) -> None:
        os.chmod(self.real_path(name), mode)

    def chown(self, name: str, uid: int, gid: int) -> None:
        os.chown(self.real_path(name), uid, gid)

    def chtimes(self, name: str, atime: float, mtime: float) -> None:
        os.utime(self.real_path(name), (atime, mtime))

    def __repr__(self) -> str:
        return f"LocalBackend({str(self._root)!r})"
