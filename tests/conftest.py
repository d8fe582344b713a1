"""Pytest fixtures for snd filesystem tests."""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable, Generator
from datetime import timedelta
from pathlib import Path
from typing import Any

import pytest

from snd_fs.adapters.local_backend import LocalBackend
from snd_fs.adapters.memory_backend import MemoryBackend, MemoryFile
from snd_fs.config import reset_settings
from snd_fs.core.models import Behavior
from snd_fs.filesystem import SndFs

# Long enough that the cleanup timer never fires during a unit test
QUIET_BEHAVIOR = Behavior(min_file_age=timedelta(hours=1))


class GatedBackend(MemoryBackend):
    """MemoryBackend whose mutations wait for ``gate`` to be set.

    Lets tests hold the worker inside a destination call. ``entered`` is set
    each time a call starts waiting on the gate.
    """

    def __init__(self) -> None:
        super().__init__()
        self.gate = threading.Event()
        self.gate.set()
        self.entered = threading.Event()
        self.calls: list[tuple[str, str]] = []

    def _wait(self, method: str, name: str) -> None:
        self.calls.append((method, name))
        self.entered.set()
        self.gate.wait()

    def open_file(self, name: str, flags: int, mode: int = 0o644) -> MemoryFile:
        if flags & (os.O_WRONLY | os.O_RDWR | os.O_APPEND):
            self._wait("open_file", name)
        return super().open_file(name, flags, mode)

    def mkdir(self, name: str, mode: int = 0o755) -> None:
        self._wait("mkdir", name)
        super().mkdir(name, mode)

    def makedirs(self, path: str, mode: int = 0o755) -> None:
        self._wait("makedirs", path)
        super().makedirs(path, mode)

    def remove(self, name: str) -> None:
        self._wait("remove", name)
        super().remove(name)

    def rename(self, old_name: str, new_name: str) -> None:
        self._wait("rename", old_name)
        super().rename(old_name, new_name)


def write_file(fs: SndFs, name: str, content: str | bytes) -> None:
    """Write a whole file through the filesystem and close it."""
    data = content.encode() if isinstance(content, str) else content
    handle = fs.open_file(name, os.O_CREAT | os.O_WRONLY | os.O_TRUNC, 0o644)
    handle.write(data)
    handle.close()


# ---------------------------------------------------------------------------
# Basic fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_settings() -> Generator[None, None, None]:
    """Never leak settings overrides between tests."""
    yield
    reset_settings()


@pytest.fixture
def temporary() -> MemoryBackend:
    """In-memory temporary backend."""
    return MemoryBackend()


@pytest.fixture
def destination() -> MemoryBackend:
    """In-memory destination backend."""
    return MemoryBackend()


@pytest.fixture
def gated_destination() -> Generator[GatedBackend, None, None]:
    """Destination backend whose mutations can be held by the test."""
    backend = GatedBackend()
    yield backend
    # Never leave a worker blocked at teardown
    backend.gate.set()


@pytest.fixture
def local_backends(tmp_path: Path) -> tuple[LocalBackend, LocalBackend]:
    """(temporary, destination) pair of local backends under tmp_path."""
    return LocalBackend(tmp_path / "temp"), LocalBackend(tmp_path / "dst")


@pytest.fixture
def test_logger() -> logging.Logger:
    """Logger propagating to the root, so caplog sees component records."""
    return logging.getLogger("snd_fs.tests")


@pytest.fixture
def make_fs(
    temporary: MemoryBackend, destination: MemoryBackend, test_logger: logging.Logger
) -> Generator[Callable[..., SndFs], None, None]:
    """Factory creating SndFs instances that are closed at teardown.

    Defaults to the in-memory ``temporary``/``destination`` fixtures and a
    behavior whose cleanup timer never fires.
    """
    created: list[SndFs] = []

    def _make(**kwargs: Any) -> SndFs:
        kwargs.setdefault("destination", destination)
        kwargs.setdefault("temporary", temporary)
        kwargs.setdefault("behavior", QUIET_BEHAVIOR)
        kwargs.setdefault("logger", test_logger)
        fs = SndFs(**kwargs)
        created.append(fs)
        return fs

    yield _make

    for fs in created:
        fs.close(timeout=5.0)


@pytest.fixture
def fs(make_fs: Callable[..., SndFs]) -> SndFs:
    """SndFs over in-memory backends."""
    return make_fs()


@pytest.fixture
def write() -> Callable[[SndFs, str, str | bytes], None]:
    """Helper writing a whole file through a filesystem."""
    return write_file
