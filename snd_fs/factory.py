"""Filesystem factory wiring settings, backends and logging.

Usage:
    from snd_fs.adapters import LocalBackend
    from snd_fs.factory import create_filesystem

    fs = create_filesystem(destination=LocalBackend("/mnt/archive"))
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from snd_fs.adapters.local_backend import LocalBackend
from snd_fs.config import Settings, get_settings, settings_summary
from snd_fs.core.errors import TemporaryBackendError
from snd_fs.core.logging import configure_logging
from snd_fs.filesystem import SndFs

if TYPE_CHECKING:
    from snd_fs.ports.storage import StorageBackend

logger = logging.getLogger(__name__)


def create_filesystem(
    destination: StorageBackend | None,
    temporary: StorageBackend | None = None,
    settings: Settings | None = None,
    log: logging.Logger | None = None,
    setup_logging: bool = False,
) -> SndFs:
    """Create an SndFs configured from settings.

    Args:
        destination: Backend receiving mirrored operations.
        temporary: Temporary backend. When None, ``settings.temp_dir`` is
            used if set, else a fresh temporary directory.
        settings: Settings to use (defaults to ``get_settings()``).
        log: Logger handed to the filesystem.
        setup_logging: Configure the package logger from the settings.

    Returns:
        A started SndFs.

    Raises:
        NoDestinationError: If destination is None.
        TemporaryBackendError: If the temporary directory is unusable.
    """
    settings = settings or get_settings()

    if setup_logging:
        configure_logging(level=settings.log_level, json_format=settings.log_json)

    if temporary is None and settings.temp_dir is not None:
        try:
            temporary = LocalBackend(settings.temp_dir)
        except OSError as e:
            raise TemporaryBackendError(
                e, operation="open_root", path=str(settings.temp_dir)
            ) from e

    fs = SndFs(
        destination=destination,
        temporary=temporary,
        behavior=settings.to_behavior(),
        logger=log,
        close_timeout=settings.close_timeout_seconds,
    )
    logger.debug("Created %r with settings %s", fs, settings_summary(settings))
    return fs
