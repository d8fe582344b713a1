"""Operations carried by the worker queue. Pure data, no I/O.

Every side effect on the destination backend, every garbage collection
pass and every sync barrier travels through the same FIFO queue as one of
these variants. The worker dispatches on the variant type.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Any

# Facade mutations that are replayed verbatim on the destination
MIRRORED_METHODS = frozenset(
    {
        "mkdir",
        "makedirs",
        "remove",
        "remove_all",
        "rename",
        "chmod",
        "chown",
        "chtimes",
    }
)


@dataclass
class Operation:
    """Base class for queued operations."""

    queued_at: float = field(default_factory=time.time, kw_only=True)


@dataclass
class MirrorCall(Operation):
    """Replay of a facade mutation against the destination backend."""

    method: str
    args: tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        if self.method not in MIRRORED_METHODS:
            raise ValueError(f"Unsupported mirrored method: {self.method}")

    @property
    def path(self) -> str:
        """Path the call targets (first argument)."""
        return str(self.args[0]) if self.args else ""


@dataclass
class CopyBack(Operation):
    """Full copy of a temporary file to the destination.

    The temporary file is read when the worker executes the operation,
    not when it is queued.
    """

    name: str
    flags: int
    mode: int


@dataclass
class GCPass(Operation):
    """One garbage collection pass over the temporary backend."""


@dataclass
class Barrier(Operation):
    """Sync barrier: the worker sets ``done`` when it reaches this entry."""

    done: threading.Event = field(default_factory=threading.Event)


@dataclass
class Stop(Operation):
    """Sentinel ending the worker loop."""
