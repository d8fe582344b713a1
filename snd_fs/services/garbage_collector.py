"""Garbage collection of the temporary backend.

A pass walks the tree depth-first, pre-order, in the order the backend
lists entries, and applies the retention policy to every file:

    keep  = modified after cutoff (now - min_file_age)
            and (min_retained_files is None or files_kept < min_retained_files)
    otherwise delete

Directories that held entries when they were listed are always kept and
never evaluated. A directory emptied by a pass is therefore removed by a
later pass at the earliest, one tree level per pass.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from snd_fs.core.errors import TemporaryBackendError
from snd_fs.core.models import Behavior, FileInfo, GCPassResult
from snd_fs.core.utils import ROOT, join_path

if TYPE_CHECKING:
    from snd_fs.ports.storage import StorageBackend

logger = logging.getLogger(__name__)


@dataclass
class _PassState:
    """Counters of a single pass, threaded through the recursion."""

    cutoff: float
    files_kept: int = 0
    files_deleted: int = 0


class GarbageCollector:
    """Deletes old files from the temporary backend.

    Only the operation worker runs passes, so passes never overlap each
    other or a mirrored write.
    """

    def __init__(
        self,
        backend: StorageBackend,
        behavior: Behavior,
        log: logging.Logger | None = None,
    ) -> None:
        """Initialize the collector.

        Args:
            backend: Temporary backend to clean.
            behavior: Retention thresholds.
            log: Logger for pass and deletion messages.
        """
        self._backend = backend
        self._behavior = behavior
        self._log = log or logger

    def run(self, now: float | None = None) -> GCPassResult:
        """Run one pass.

        Args:
            now: Reference time as POSIX seconds (defaults to the current time).

        Returns:
            Counters of the pass.

        Raises:
            TemporaryBackendError: If a directory could not be listed.
        """
        started = time.monotonic()
        now = time.time() if now is None else now
        state = _PassState(cutoff=now - self._behavior.min_file_age.total_seconds())

        self._log.info("Starting garbage collection", extra={"cutoff": state.cutoff})
        root_entries = self._explore(ROOT, state)
        result = GCPassResult(
            files_kept=state.files_kept,
            files_deleted=state.files_deleted,
            cutoff=state.cutoff,
            root_entries=root_entries,
            duration_seconds=time.monotonic() - started,
        )
        self._log.info(
            "Finished garbage collection",
            extra={"files_kept": result.files_kept, "files_deleted": result.files_deleted},
        )
        return result

    def _explore(self, dir_path: str, state: _PassState) -> int:
        """Apply the policy below ``dir_path``.

        Returns:
            Number of entries the directory held when it was listed.
        """
        try:
            entries = self._backend.list_dir(dir_path)
        except OSError as e:
            raise TemporaryBackendError(e, operation="list_dir", path=dir_path) from e

        for entry in entries:
            sub_path = join_path(dir_path, entry.name)
            if entry.is_dir and self._explore(sub_path, state) > 0:
                # Non-empty dirs are always kept
                state.files_kept += 1
                continue

            if self._should_keep(entry, state):
                state.files_kept += 1
                continue

            self._delete(sub_path, state)

        return len(entries)

    def _should_keep(self, entry: FileInfo, state: _PassState) -> bool:
        if entry.mtime <= state.cutoff:
            return False
        minimum = self._behavior.min_retained_files
        return minimum is None or state.files_kept < minimum

    def _delete(self, path: str, state: _PassState) -> None:
        self._log.info("Deleting file", extra={"path": path})
        try:
            self._backend.remove(path)
        except OSError as e:
            self._log.error("Couldn't delete file", extra={"path": path, "err": str(e)})
        state.files_deleted += 1
