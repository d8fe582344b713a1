"""Custom exceptions for the snd filesystem."""

from __future__ import annotations


class SndFsError(Exception):
    """Base exception for all snd filesystem errors."""

    pass


class ConfigurationError(SndFsError):
    """Raised when configuration is invalid."""

    pass


class NoDestinationError(ConfigurationError):
    """Raised when no destination backend was provided."""

    def __init__(self) -> None:
        super().__init__("destination FS needs to be specified")


class TemporaryBackendError(SndFsError):
    """Raised when an operation against the temporary backend fails.

    The temporary backend is the source of truth for callers, so its errors
    are surfaced synchronously. The original exception is chained as
    ``__cause__``.
    """

    def __init__(
        self,
        cause: BaseException,
        operation: str | None = None,
        path: str | None = None,
    ) -> None:
        """Initialize with the failing backend call.

        Args:
            cause: Exception raised by the temporary backend.
            operation: Name of the backend operation that failed.
            path: Path the operation targeted.
        """
        self.operation = operation
        self.path = path
        self.errno: int | None = getattr(cause, "errno", None)
        super().__init__(f"temporary FS had an issue: {cause}")
        self.__cause__ = cause


class MirrorError(SndFsError):
    """Raised inside the worker when replicating to the destination fails.

    Never reaches callers: the worker logs and discards it.
    """

    def __init__(
        self,
        message: str,
        path: str,
        flags: int | None = None,
        mode: int | None = None,
    ) -> None:
        self.path = path
        self.flags = flags
        self.mode = mode
        super().__init__(f"{message}: {path}")


class FilesystemClosedError(SndFsError):
    """Raised when work is submitted after the filesystem was closed."""

    def __init__(self, message: str = "filesystem is closed") -> None:
        super().__init__(message)


class SyncTimeoutError(SndFsError):
    """Raised when a sync barrier is not reached within its timeout."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"sync barrier not reached within {timeout:.3f}s")
