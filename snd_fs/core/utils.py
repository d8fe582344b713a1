"""Shared path and open-flag helpers.

Backends address files with POSIX style paths relative to their root.
A leading ``/`` is ignored and ``..`` never climbs above the root, so
``"/a/b"``, ``"a/b"`` and ``"a/../a/b"`` all name the same entry.
"""

from __future__ import annotations

import os
import posixpath

ROOT = "/"

# Any of these makes an open handle write-capable
WRITE_FLAGS = os.O_WRONLY | os.O_RDWR | os.O_APPEND

# Dropped when reopening a file on the destination for a full copy
_COPY_DROPPED_FLAGS = (
    os.O_RDONLY | os.O_WRONLY | os.O_RDWR | os.O_APPEND | os.O_EXCL | os.O_CREAT | os.O_TRUNC
)


def clean_path(name: str) -> str:
    """Normalize a backend path to its canonical absolute form.

    Args:
        name: Path as given by the caller.

    Returns:
        Normalized path starting with ``/``. The root is ``"/"``.

    Example:
        >>> clean_path("a//b/../c/")
        '/a/c'
        >>> clean_path("../../etc")
        '/etc'
    """
    cleaned = posixpath.normpath(posixpath.join(ROOT, name or ""))
    # normpath keeps a leading "//" (POSIX allows it to be special)
    if cleaned.startswith("//"):
        cleaned = ROOT + cleaned.lstrip("/")
    return cleaned


def join_path(directory: str, name: str) -> str:
    """Join a directory and an entry name into a clean path."""
    return clean_path(posixpath.join(clean_path(directory), name))


def split_path(name: str) -> tuple[str, str]:
    """Split a clean path into ``(parent, base_name)``."""
    cleaned = clean_path(name)
    return posixpath.dirname(cleaned), posixpath.basename(cleaned)


def path_parts(name: str) -> list[str]:
    """Return the components of a path, root excluded."""
    cleaned = clean_path(name)
    return [part for part in cleaned.split("/") if part]


def has_write_flags(flags: int) -> bool:
    """Whether ``flags`` open a file for writing (write-only, read-write or append)."""
    return bool(flags & WRITE_FLAGS)


def copy_back_flags(flags: int) -> int:
    """Flags used to reopen a file on the destination for a full copy.

    The whole temporary file is streamed on every copy, so the destination
    is always opened write-only, created if missing and truncated. Append
    and exclusive-create are dropped because replaying them would duplicate
    content or fail on the second copy. Other flags (``O_SYNC`` and friends)
    are preserved.
    """
    return (flags & ~_COPY_DROPPED_FLAGS) | os.O_WRONLY | os.O_CREAT | os.O_TRUNC


def describe_flags(flags: int) -> str:
    """Human readable rendering of open flags for log messages."""
    access = flags & (os.O_RDONLY | os.O_WRONLY | os.O_RDWR)
    names = [{os.O_WRONLY: "O_WRONLY", os.O_RDWR: "O_RDWR"}.get(access, "O_RDONLY")]
    for flag, flag_name in (
        (os.O_APPEND, "O_APPEND"),
        (os.O_CREAT, "O_CREAT"),
        (os.O_EXCL, "O_EXCL"),
        (os.O_TRUNC, "O_TRUNC"),
    ):
        if flags & flag:
            names.append(flag_name)
    return "|".join(names)
