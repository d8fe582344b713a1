"""Tests for the local directory storage backend."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from snd_fs.adapters.local_backend import LocalBackend
from snd_fs.ports.storage import FileHandle, StorageBackend

pytestmark = pytest.mark.unit


@pytest.fixture
def backend(tmp_path: Path) -> LocalBackend:
    return LocalBackend(tmp_path / "root")


class TestRoot:
    """Tests for backend construction and path mapping."""

    def test_creates_root(self, tmp_path: Path) -> None:
        """Test the root directory is created when missing."""
        backend = LocalBackend(tmp_path / "a" / "b")
        assert backend.root.is_dir()
        assert isinstance(backend, StorageBackend)

    def test_missing_root_without_create(self, tmp_path: Path) -> None:
        """Test create=False requires an existing root."""
        with pytest.raises(FileNotFoundError):
            LocalBackend(tmp_path / "missing", create=False)

    def test_root_is_a_file(self, tmp_path: Path) -> None:
        """Test a file cannot be a root."""
        (tmp_path / "file").write_bytes(b"")
        with pytest.raises((NotADirectoryError, FileExistsError)):
            LocalBackend(tmp_path / "file")

    def test_paths_stay_under_root(self, backend: LocalBackend) -> None:
        """Test parent references cannot escape the root."""
        assert backend.real_path("/") == backend.root
        assert backend.real_path("../../etc/passwd") == backend.root / "etc" / "passwd"

    def test_temporary(self) -> None:
        """Test a private temporary directory is created."""
        backend = LocalBackend.temporary()
        try:
            assert backend.root.is_dir()
            assert backend.root.name.startswith("snd-fs-")
        finally:
            backend.remove_all("/")
            backend.root.rmdir()


class TestFiles:
    """Tests for file handles."""

    def test_write_then_read(self, backend: LocalBackend) -> None:
        """Test content round trips through the native filesystem."""
        with backend.open_file("/f", os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600) as f:
            assert isinstance(f, FileHandle)
            assert f.write(b"hello") == 5
            f.sync()
        assert (backend.root / "f").read_bytes() == b"hello"
        with backend.open("/f") as f:
            assert f.read() == b"hello"
            assert f.name == "/f"
        assert backend.stat("/f").size == 5

    def test_read_write_handle(self, backend: LocalBackend) -> None:
        """Test O_RDWR handles can seek, read and truncate."""
        with backend.open_file("/f", os.O_RDWR | os.O_CREAT) as f:
            f.write(b"abcdef")
            f.seek(1)
            assert f.read(2) == b"bc"
            f.truncate(4)
        assert backend.stat("/f").size == 4

    def test_append(self, backend: LocalBackend) -> None:
        """Test O_APPEND handles write at the end."""
        (backend.root / "f").write_bytes(b"ab")
        with backend.open_file("/f", os.O_WRONLY | os.O_APPEND) as f:
            f.write(b"cd")
        assert (backend.root / "f").read_bytes() == b"abcd"

    def test_open_errors(self, backend: LocalBackend) -> None:
        """Test errors of the native filesystem surface unchanged."""
        with pytest.raises(FileNotFoundError):
            backend.open("/missing")
        backend.mkdir("/d")
        with pytest.raises(IsADirectoryError):
            backend.open("/d")
        (backend.root / "f").write_bytes(b"")
        with pytest.raises(FileExistsError):
            backend.open_file("/f", os.O_WRONLY | os.O_CREAT | os.O_EXCL)


class TestTree:
    """Tests for directory operations."""

    def test_mkdir_and_list(self, backend: LocalBackend) -> None:
        """Test directories appear in listings."""
        backend.mkdir("/d")
        backend.makedirs("/a/b/c")
        backend.makedirs("/a/b")
        names = sorted(e.name for e in backend.list_dir("/"))
        assert names == ["a", "d"]
        assert all(e.is_dir for e in backend.list_dir("/"))
        with pytest.raises(FileExistsError):
            backend.mkdir("/d")

    def test_remove(self, backend: LocalBackend) -> None:
        """Test remove handles files and empty directories."""
        backend.makedirs("/d/e")
        (backend.root / "f").write_bytes(b"")
        backend.remove("/f")
        with pytest.raises(OSError):
            backend.remove("/d")
        backend.remove("/d/e")
        backend.remove("/d")
        assert backend.list_dir("/") == []

    def test_remove_all(self, backend: LocalBackend) -> None:
        """Test remove_all removes trees, files and missing paths."""
        backend.makedirs("/d/e")
        (backend.root / "d" / "e" / "f").write_bytes(b"x")
        (backend.root / "g").write_bytes(b"x")
        backend.remove_all("/d")
        backend.remove_all("/g")
        backend.remove_all("/missing")
        assert backend.list_dir("/") == []

    def test_remove_all_root_keeps_root(self, backend: LocalBackend) -> None:
        """Test clearing the root keeps the directory itself."""
        backend.makedirs("/d/e")
        (backend.root / "f").write_bytes(b"x")
        backend.remove_all("/")
        assert backend.root.is_dir()
        assert backend.list_dir("/") == []

    def test_rename(self, backend: LocalBackend) -> None:
        """Test rename moves files."""
        backend.makedirs("/a")
        (backend.root / "a" / "f").write_bytes(b"1")
        backend.rename("/a/f", "/g")
        assert (backend.root / "g").read_bytes() == b"1"
        with pytest.raises(FileNotFoundError):
            backend.rename("/a/f", "/h")

    def test_metadata(self, backend: LocalBackend) -> None:
        """Test chmod and chtimes."""
        (backend.root / "f").write_bytes(b"")
        backend.chmod("/f", 0o600)
        backend.chtimes("/f", 10.0, 20.0)
        info = backend.stat("/f")
        assert info.mode == 0o600
        assert info.mtime == 20.0

    def test_chown_to_self(self, backend: LocalBackend) -> None:
        """Test chown to the current owner succeeds."""
        (backend.root / "f").write_bytes(b"")
        st = (backend.root / "f").stat()
        backend.chown("/f", st.st_uid, st.st_gid)
