"""Tests for the in-memory storage backend."""

from __future__ import annotations

import io
import os

import pytest

from snd_fs.adapters.memory_backend import MemoryBackend
from snd_fs.ports.storage import FileHandle, StorageBackend

pytestmark = pytest.mark.unit


def put(backend: MemoryBackend, name: str, data: bytes) -> None:
    with backend.open_file(name, os.O_WRONLY | os.O_CREAT | os.O_TRUNC) as f:
        f.write(data)


class TestProtocol:
    """Tests for protocol conformance."""

    def test_is_storage_backend(self, temporary: MemoryBackend) -> None:
        """Test MemoryBackend satisfies the StorageBackend protocol."""
        assert isinstance(temporary, StorageBackend)
        with temporary.open_file("/f", os.O_RDWR | os.O_CREAT) as f:
            assert isinstance(f, FileHandle)


class TestFiles:
    """Tests for file handles."""

    def test_write_then_read(self, temporary: MemoryBackend) -> None:
        """Test content written is read back."""
        put(temporary, "/f", b"hello")
        with temporary.open("/f") as f:
            assert f.read() == b"hello"
        assert temporary.read_bytes("f") == b"hello"
        assert temporary.stat("/f").size == 5

    def test_missing_file(self, temporary: MemoryBackend) -> None:
        """Test opening a missing file without O_CREAT fails."""
        with pytest.raises(FileNotFoundError):
            temporary.open("/missing")

    def test_missing_parent(self, temporary: MemoryBackend) -> None:
        """Test creating a file in a missing directory fails."""
        with pytest.raises(FileNotFoundError):
            temporary.open_file("/no/f", os.O_WRONLY | os.O_CREAT)

    def test_exclusive_create(self, temporary: MemoryBackend) -> None:
        """Test O_EXCL refuses an existing file."""
        put(temporary, "/f", b"x")
        with pytest.raises(FileExistsError):
            temporary.open_file("/f", os.O_WRONLY | os.O_CREAT | os.O_EXCL)

    def test_open_directory(self, temporary: MemoryBackend) -> None:
        """Test directories cannot be opened as files."""
        temporary.mkdir("/d")
        with pytest.raises(IsADirectoryError):
            temporary.open("/d")

    def test_append(self, temporary: MemoryBackend) -> None:
        """Test O_APPEND writes at the end."""
        put(temporary, "/f", b"ab")
        with temporary.open_file("/f", os.O_WRONLY | os.O_APPEND) as f:
            f.seek(0)
            f.write(b"cd")
        assert temporary.read_bytes("/f") == b"abcd"

    def test_seek_and_truncate(self, temporary: MemoryBackend) -> None:
        """Test positioning and resizing."""
        put(temporary, "/f", b"abcdef")
        with temporary.open_file("/f", os.O_RDWR) as f:
            assert f.seek(2) == 2
            assert f.read(2) == b"cd"
            assert f.tell() == 4
            f.truncate(3)
            assert f.seek(0, os.SEEK_END) == 3
        assert temporary.read_bytes("/f") == b"abc"

    def test_access_mode(self, temporary: MemoryBackend) -> None:
        """Test read-only handles refuse writes and write-only refuse reads."""
        put(temporary, "/f", b"x")
        with temporary.open("/f") as f, pytest.raises(io.UnsupportedOperation):
            f.write(b"y")
        with temporary.open_file("/f", os.O_WRONLY) as f, pytest.raises(io.UnsupportedOperation):
            f.read()

    def test_closed_handle(self, temporary: MemoryBackend) -> None:
        """Test I/O on a closed handle fails."""
        put(temporary, "/f", b"x")
        f = temporary.open("/f")
        f.close()
        assert f.closed
        with pytest.raises(ValueError):
            f.read()

    def test_removed_file_stays_readable(self, temporary: MemoryBackend) -> None:
        """Test open handles outlive removal."""
        put(temporary, "/f", b"data")
        f = temporary.open("/f")
        temporary.remove("/f")
        assert f.read() == b"data"
        f.close()


class TestTree:
    """Tests for directory operations."""

    def test_mkdir(self, temporary: MemoryBackend) -> None:
        """Test mkdir creates one level and refuses duplicates."""
        temporary.mkdir("/d", 0o700)
        info = temporary.stat("/d")
        assert info.is_dir
        assert info.mode == 0o700
        with pytest.raises(FileExistsError):
            temporary.mkdir("/d")
        with pytest.raises(FileNotFoundError):
            temporary.mkdir("/x/y")

    def test_makedirs(self, temporary: MemoryBackend) -> None:
        """Test makedirs creates parents and tolerates existing dirs."""
        temporary.makedirs("/a/b/c")
        temporary.makedirs("/a/b")
        assert [e.name for e in temporary.list_dir("/a/b")] == ["c"]

    def test_makedirs_over_file(self, temporary: MemoryBackend) -> None:
        """Test makedirs fails when a component is a file."""
        put(temporary, "/f", b"")
        with pytest.raises(NotADirectoryError):
            temporary.makedirs("/f/sub")

    def test_list_dir_sorted(self, temporary: MemoryBackend) -> None:
        """Test listings are sorted by name."""
        for name in ("c", "a", "b"):
            put(temporary, f"/{name}", b"")
        assert [e.name for e in temporary.list_dir("/")] == ["a", "b", "c"]

    def test_list_file(self, temporary: MemoryBackend) -> None:
        """Test listing a file fails."""
        put(temporary, "/f", b"")
        with pytest.raises(NotADirectoryError):
            temporary.list_dir("/f")

    def test_remove(self, temporary: MemoryBackend) -> None:
        """Test remove handles files and empty dirs only."""
        temporary.makedirs("/d/e")
        with pytest.raises(OSError):
            temporary.remove("/d")
        temporary.remove("/d/e")
        temporary.remove("/d")
        assert temporary.list_dir("/") == []
        with pytest.raises(FileNotFoundError):
            temporary.remove("/d")

    def test_remove_all(self, temporary: MemoryBackend) -> None:
        """Test remove_all removes trees and ignores missing paths."""
        temporary.makedirs("/d/e")
        put(temporary, "/d/e/f", b"x")
        temporary.remove_all("/d")
        temporary.remove_all("/missing/deeper")
        assert temporary.list_dir("/") == []

    def test_remove_all_root(self, temporary: MemoryBackend) -> None:
        """Test remove_all on the root empties it."""
        temporary.makedirs("/d")
        put(temporary, "/f", b"x")
        temporary.remove_all("/")
        assert temporary.list_dir("/") == []

    def test_rename(self, temporary: MemoryBackend) -> None:
        """Test rename moves entries and replaces files."""
        temporary.makedirs("/a")
        put(temporary, "/a/f", b"1")
        put(temporary, "/g", b"2")
        temporary.rename("/a/f", "/g")
        assert temporary.read_bytes("/g") == b"1"
        assert temporary.list_dir("/a") == []

    def test_rename_errors(self, temporary: MemoryBackend) -> None:
        """Test rename refuses impossible moves."""
        temporary.makedirs("/d/sub")
        put(temporary, "/f", b"")
        with pytest.raises(FileNotFoundError):
            temporary.rename("/missing", "/x")
        with pytest.raises(IsADirectoryError):
            temporary.rename("/f", "/d")
        with pytest.raises(NotADirectoryError):
            temporary.rename("/d", "/f")
        with pytest.raises(OSError):
            temporary.rename("/d", "/d/sub/inner")

    def test_metadata(self, temporary: MemoryBackend) -> None:
        """Test chmod, chown and chtimes."""
        put(temporary, "/f", b"")
        temporary.chmod("/f", 0o600)
        temporary.chown("/f", 1000, 100)
        temporary.chtimes("/f", 10.0, 20.0)
        info = temporary.stat("/f")
        assert info.mode == 0o600
        assert info.mtime == 20.0
        assert temporary.owner("/f") == (1000, 100)
        with pytest.raises(FileNotFoundError):
            temporary.chmod("/missing", 0o600)
