"""In-memory storage backend.

A thread-safe tree of nodes guarded by one re-entrant lock. Directory
listings are returned sorted by name, so listing order is deterministic.
Open handles keep their node alive: a removed file stays readable and
writable through handles opened before the removal, as on POSIX.
"""

from __future__ import annotations

import errno
import io
import os
import threading
import time
from dataclasses import dataclass, field

from snd_fs.core.models import FileInfo
from snd_fs.core.utils import clean_path, path_parts, split_path


def _os_error(code: int, name: str) -> OSError:
    exc_type = {
        errno.ENOENT: FileNotFoundError,
        errno.EEXIST: FileExistsError,
        errno.EISDIR: IsADirectoryError,
        errno.ENOTDIR: NotADirectoryError,
        errno.EACCES: PermissionError,
    }.get(code, OSError)
    return exc_type(code, os.strerror(code), name)


@dataclass
class _Node:
    is_dir: bool
    mode: int
    mtime: float = field(default_factory=time.time)
    atime: float = field(default_factory=time.time)
    uid: int = 0
    gid: int = 0
    data: bytearray = field(default_factory=bytearray)
    children: dict[str, _Node] = field(default_factory=dict)

    def touch(self) -> None:
        self.mtime = self.atime = time.time()


class MemoryFile:
    """Open file of a MemoryBackend."""

    def __init__(self, backend: MemoryBackend, name: str, node: _Node, flags: int) -> None:
        access = flags & (os.O_RDONLY | os.O_WRONLY | os.O_RDWR)
        self._backend = backend
        self._name = name
        self._node = node
        self._readable = access in (os.O_RDONLY, os.O_RDWR)
        self._writable = access in (os.O_WRONLY, os.O_RDWR)
        self._append = bool(flags & os.O_APPEND)
        self._pos = 0
        self._closed = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise ValueError("I/O operation on closed file")

    def read(self, size: int = -1) -> bytes:
        self._check_open()
        if not self._readable:
            raise io.UnsupportedOperation("File not open for reading")
        with self._backend._lock:
            data = self._node.data
            end = len(data) if size is None or size < 0 else min(len(data), self._pos + size)
            chunk = bytes(data[self._pos : end])
            self._pos = max(self._pos, end)
            return chunk

    def write(self, data: bytes) -> int:
        self._check_open()
        if not self._writable:
            raise io.UnsupportedOperation("File not open for writing")
        with self._backend._lock:
            buf = self._node.data
            if self._append:
                self._pos = len(buf)
            if self._pos > len(buf):
                buf.extend(b"\x00" * (self._pos - len(buf)))
            buf[self._pos : self._pos + len(data)] = data
            self._pos += len(data)
            self._node.touch()
            return len(data)

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        self._check_open()
        with self._backend._lock:
            if whence == os.SEEK_SET:
                base = 0
            elif whence == os.SEEK_CUR:
                base = self._pos
            elif whence == os.SEEK_END:
                base = len(self._node.data)
            else:
                raise ValueError(f"invalid whence ({whence})")
            if base + offset < 0:
                raise _os_error(errno.EINVAL, self._name)
            self._pos = base + offset
            return self._pos

    def tell(self) -> int:
        self._check_open()
        return self._pos

    def truncate(self, size: int | None = None) -> int:
        self._check_open()
        if not self._writable:
            raise io.UnsupportedOperation("File not open for writing")
        size = self._pos if size is None else size
        if size < 0:
            raise _os_error(errno.EINVAL, self._name)
        with self._backend._lock:
            buf = self._node.data
            if size < len(buf):
                del buf[size:]
            else:
                buf.extend(b"\x00" * (size - len(buf)))
            self._node.touch()
        return size

    def flush(self) -> None:
        self._check_open()

    def sync(self) -> None:
        self._check_open()

    def close(self) -> None:
        self._closed = True

    def __enter__(self) -> MemoryFile:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class MemoryBackend:
    """StorageBackend keeping the whole tree in memory."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._root = _Node(is_dir=True, mode=0o755)

    # ------------------------------------------------------------------
    # Node lookup (callers hold the lock)
    # ------------------------------------------------------------------

    def _lookup(self, name: str) -> _Node:
        node = self._root
        for part in path_parts(name):
            if not node.is_dir:
                raise _os_error(errno.ENOTDIR, clean_path(name))
            child = node.children.get(part)
            if child is None:
                raise _os_error(errno.ENOENT, clean_path(name))
            node = child
        return node

    def _parent_of(self, name: str) -> tuple[_Node, str]:
        parent_path, base = split_path(name)
        if not base:
            raise _os_error(errno.EEXIST, clean_path(name))
        parent = self._lookup(parent_path)
        if not parent.is_dir:
            raise _os_error(errno.ENOTDIR, clean_path(name))
        return parent, base

    @staticmethod
    def _info(name: str, node: _Node) -> FileInfo:
        return FileInfo(
            name=name,
            size=len(node.data) if not node.is_dir else 0,
            mtime=node.mtime,
            is_dir=node.is_dir,
            mode=node.mode,
        )

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def open(self, name: str) -> MemoryFile:
        return self.open_file(name, os.O_RDONLY)

    def open_file(self, name: str, flags: int, mode: int = 0o644) -> MemoryFile:
        path = clean_path(name)
        with self._lock:
            try:
                node = self._lookup(path)
            except FileNotFoundError:
                if not flags & os.O_CREAT:
                    raise
                parent, base = self._parent_of(path)
                node = _Node(is_dir=False, mode=mode & 0o7777)
                parent.children[base] = node
                parent.touch()
            else:
                if flags & os.O_CREAT and flags & os.O_EXCL:
                    raise _os_error(errno.EEXIST, path)
                if node.is_dir:
                    raise _os_error(errno.EISDIR, path)
                if flags & os.O_TRUNC and flags & (os.O_WRONLY | os.O_RDWR):
                    node.data.clear()
                    node.touch()
            return MemoryFile(self, path, node, flags)

    def stat(self, name: str) -> FileInfo:
        with self._lock:
            return self._info(split_path(name)[1], self._lookup(name))

    def list_dir(self, name: str) -> list[FileInfo]:
        with self._lock:
            node = self._lookup(name)
            if not node.is_dir:
                raise _os_error(errno.ENOTDIR, clean_path(name))
            return [
                self._info(child_name, node.children[child_name])
                for child_name in sorted(node.children)
            ]

    def read_bytes(self, name: str) -> bytes:
        """Whole content of a file (convenience for callers and tests)."""
        with self._lock:
            node = self._lookup(name)
            if node.is_dir:
                raise _os_error(errno.EISDIR, clean_path(name))
            return bytes(node.data)

    # ------------------------------------------------------------------
    # Tree mutations
    # ------------------------------------------------------------------

    def mkdir(self, name: str, mode: int = 0o755) -> None:
        with self._lock:
            parent, base = self._parent_of(name)
            if base in parent.children:
                raise _os_error(errno.EEXIST, clean_path(name))
            parent.children[base] = _Node(is_dir=True, mode=mode & 0o7777)
            parent.touch()

    def makedirs(self, path: str, mode: int = 0o755) -> None:
        with self._lock:
            node = self._root
            for part in path_parts(path):
                child = node.children.get(part)
                if child is None:
                    child = _Node(is_dir=True, mode=mode & 0o7777)
                    node.children[part] = child
                    node.touch()
                elif not child.is_dir:
                    raise _os_error(errno.ENOTDIR, clean_path(path))
                node = child

    def remove(self, name: str) -> None:
        with self._lock:
            parent, base = self._parent_of(name)
            node = parent.children.get(base)
            if node is None:
                raise _os_error(errno.ENOENT, clean_path(name))
            if node.is_dir and node.children:
                raise _os_error(errno.ENOTEMPTY, clean_path(name))
            del parent.children[base]
            parent.touch()

    def remove_all(self, path: str) -> None:
        with self._lock:
            if not path_parts(path):
                self._root.children.clear()
                self._root.touch()
                return
            try:
                parent, base = self._parent_of(path)
            except (FileNotFoundError, NotADirectoryError):
                return
            if parent.children.pop(base, None) is not None:
                parent.touch()

    def rename(self, old_name: str, new_name: str) -> None:
        old_path, new_path = clean_path(old_name), clean_path(new_name)
        with self._lock:
            old_parent, old_base = self._parent_of(old_path)
            node = old_parent.children.get(old_base)
            if node is None:
                raise _os_error(errno.ENOENT, old_path)
            if old_path == new_path:
                return
            if node.is_dir and new_path.startswith(old_path + "/"):
                raise _os_error(errno.EINVAL, new_path)
            new_parent, new_base = self._parent_of(new_path)
            target = new_parent.children.get(new_base)
            if target is not None and target.is_dir:
                if not node.is_dir:
                    raise _os_error(errno.EISDIR, new_path)
                if target.children:
                    raise _os_error(errno.ENOTEMPTY, new_path)
            elif target is not None and node.is_dir:
                raise _os_error(errno.ENOTDIR, new_path)
            del old_parent.children[old_base]
            new_parent.children[new_base] = node
            old_parent.touch()
            new_parent.touch()

    def chmod(self, name: str, mode: int) -> None:
        with self._lock:
            self._lookup(name).mode = mode & 0o7777

    def chown(self, name: str, uid: int, gid: int) -> None:
        with self._lock:
            node = self._lookup(name)
            node.uid, node.gid = uid, gid

    def chtimes(self, name: str, atime: float, mtime: float) -> None:
        with self._lock:
            node = self._lookup(name)
            node.atime, node.mtime = atime, mtime

    def owner(self, name: str) -> tuple[int, int]:
        """Numeric ``(uid, gid)`` of an entry."""
        with self._lock:
            node = self._lookup(name)
            return node.uid, node.gid

    def __repr__(self) -> str:
        with self._lock:
            return f"MemoryBackend(entries={len(self._root.children)})"


