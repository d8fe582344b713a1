"""Operation queue and its single worker thread.

Follows the daemon-thread pattern used across the services:
- __init__: threading primitives, config
- start(): idempotent, creates daemon thread
- stop(timeout): stops the timer, queues the Stop sentinel, joins, logs stats
- _run(): FIFO loop waking up for the next operation or the next timer tick

Every destination mutation, every copy-back and every garbage collection
pass runs on this one thread, in queue order. The cleanup timer only queues
a GC pass when the queue is empty at tick time; a tick that finds pending
work is dropped.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from typing import TYPE_CHECKING, Any

from snd_fs.core.errors import FilesystemClosedError
from snd_fs.core.operations import Barrier, CopyBack, GCPass, MirrorCall, Operation, Stop
from snd_fs.services.mirrored_file import copy_back

if TYPE_CHECKING:
    from snd_fs.core.models import GCPassResult
    from snd_fs.ports.storage import StorageBackend
    from snd_fs.services.garbage_collector import GarbageCollector

logger = logging.getLogger(__name__)

# How often a blocked writer, or a stopping worker, re-checks the queue state
PUT_POLL_SECONDS = 0.5


class OperationWorker:
    """Bounded FIFO of operations drained by exactly one thread."""

    def __init__(
        self,
        temporary: StorageBackend,
        destination: StorageBackend,
        collector: GarbageCollector,
        capacity: int = 1000,
        cleanup_period: float = 600.0,
        log: logging.Logger | None = None,
    ) -> None:
        """Initialize the worker.

        Args:
            temporary: Backend copy-backs read from.
            destination: Backend every mirrored operation is applied to.
            collector: Garbage collector run on idle timer ticks.
            capacity: Maximum pending operations before submit() blocks.
            cleanup_period: Seconds between timer ticks.
            log: Logger for operation failures.
        """
        self._temporary = temporary
        self._destination = destination
        self._collector = collector
        self._cleanup_period = cleanup_period
        self._log = log or logger

        self._queue: queue.Queue[Operation] = queue.Queue(maxsize=capacity)

        # Threading primitives
        self._lock = threading.Lock()
        self._timer_stopped = threading.Event()
        self._stopping = False
        self._worker_thread: threading.Thread | None = None

        # Statistics
        self._stats_lock = threading.Lock()
        self._operations_executed = 0
        self._operations_failed = 0
        self._gc_passes = 0
        self._ticks_dropped = 0
        self._last_gc_result: GCPassResult | None = None

    @property
    def capacity(self) -> int:
        return self._queue.maxsize

    @property
    def is_alive(self) -> bool:
        return self._worker_thread is not None and self._worker_thread.is_alive()

    def start(self) -> None:
        """Start the worker thread.

        Safe to call multiple times - will only start if not already running.
        """
        with self._lock:
            if self._stopping:
                raise FilesystemClosedError("operation worker was stopped")
            if self.is_alive:
                logger.debug("Operation worker already running")
                return

            self._worker_thread = threading.Thread(
                target=self._run,
                name="snd-fs-worker",
                daemon=True,
            )
            self._worker_thread.start()
        logger.debug(
            "Operation worker started (capacity=%d, cleanup_period=%.3fs)",
            self.capacity,
            self._cleanup_period,
        )

    def stop(self, timeout: float | None = 5.0) -> None:
        """Stop the timer and let the worker exit after the queued operations.

        Operations already queued run before the worker exits. Operations
        submitted afterwards are rejected with FilesystemClosedError.

        Args:
            timeout: Maximum seconds to wait for the worker (None waits forever).
        """
        self._timer_stopped.set()
        with self._lock:
            first_call = not self._stopping
            self._stopping = True
        if self._worker_thread is None:
            return
        if first_call:
            try:
                self._queue.put(Stop(), timeout=timeout)
            except queue.Full:
                # The loop exits on its own once the queue drains
                logger.warning(
                    "Operation worker did not stop within timeout (%d operations pending)",
                    self._queue.qsize(),
                )
                return

        self._worker_thread.join(timeout=timeout)

        if self._worker_thread.is_alive():
            logger.warning(
                "Operation worker did not stop within timeout (%d operations pending)",
                self._queue.qsize(),
            )
        elif first_call:
            with self._stats_lock:
                logger.info(
                    "Operation worker stopped. Executed: %d, Failed: %d, GC passes: %d",
                    self._operations_executed,
                    self._operations_failed,
                    self._gc_passes,
                )

    def submit(self, operation: Operation) -> None:
        """Queue an operation, blocking while the queue is full.

        Raises:
            FilesystemClosedError: If the worker is stopping or gone.
        """
        if self._stopping:
            raise FilesystemClosedError()
        while True:
            try:
                self._queue.put(operation, timeout=PUT_POLL_SECONDS)
                return
            except queue.Full:
                if self._stopping or not self.is_alive:
                    raise FilesystemClosedError() from None

    def pending(self) -> int:
        """Number of operations waiting in the queue."""
        return self._queue.qsize()

    def get_stats(self) -> dict[str, Any]:
        """Get worker statistics.

        Returns:
            Dictionary with operation counters and queue state.
        """
        with self._stats_lock:
            return {
                "operations_executed": self._operations_executed,
                "operations_failed": self._operations_failed,
                "gc_passes": self._gc_passes,
                "ticks_dropped": self._ticks_dropped,
                "last_gc_result": self._last_gc_result,
                "queue_depth": self._queue.qsize(),
                "queue_capacity": self.capacity,
                "worker_alive": self.is_alive,
            }

    # =========================================================================
    # Worker loop
    # =========================================================================

    def _run(self) -> None:
        logger.debug("Operation worker loop started")
        next_tick = time.monotonic() + self._cleanup_period

        while True:
            if not self._timer_stopped.is_set() and time.monotonic() >= next_tick:
                next_tick = time.monotonic() + self._cleanup_period
                self._on_tick()

            timeout = (
                PUT_POLL_SECONDS
                if self._timer_stopped.is_set()
                else max(0.0, next_tick - time.monotonic())
            )
            try:
                operation = self._queue.get(timeout=timeout)
            except queue.Empty:
                if self._stopping:
                    break
                continue

            try:
                if isinstance(operation, Stop):
                    break
                self._execute(operation)
            finally:
                self._queue.task_done()

        logger.debug("Operation worker loop stopped")

    def _on_tick(self) -> None:
        """Queue a GC pass if nothing else is pending."""
        if self._queue.empty():
            try:
                self._queue.put_nowait(GCPass())
                return
            except queue.Full:
                pass
        with self._stats_lock:
            self._ticks_dropped += 1
        logger.debug("Cleanup tick dropped, operations pending")

    def _execute(self, operation: Operation) -> None:
        waited_ms = (time.time() - operation.queued_at) * 1000
        self._log.debug(
            "Running operation",
            extra={"operation": type(operation).__name__, "waited_ms": round(waited_ms, 3)},
        )
        try:
            if isinstance(operation, MirrorCall):
                getattr(self._destination, operation.method)(*operation.args)
            elif isinstance(operation, CopyBack):
                copy_back(self._temporary, self._destination, operation, self._log)
            elif isinstance(operation, GCPass):
                result = self._collector.run()
                with self._stats_lock:
                    self._gc_passes += 1
                    self._last_gc_result = result
            elif isinstance(operation, Barrier):
                operation.done.set()
            else:
                raise TypeError(f"Unknown operation: {operation!r}")
        except Exception as e:
            with self._stats_lock:
                self._operations_failed += 1
            self._log.error(
                "Couldn't run operation",
                extra=self._describe(operation) | {"err": str(e)},
                exc_info=True,
            )
        else:
            with self._stats_lock:
                self._operations_executed += 1

    @staticmethod
    def _describe(operation: Operation) -> dict[str, Any]:
        if isinstance(operation, MirrorCall):
            return {"operation": operation.method, "path": operation.path}
        if isinstance(operation, CopyBack):
            return {
                "operation": "copy_back",
                "path": operation.name,
                "file_flags": operation.flags,
                "file_mode": oct(operation.mode),
            }
        return {"operation": type(operation).__name__}
