"""Structured logging for the snd filesystem.

Components log through the standard library with key/value context passed
as ``extra``::

    logger.error("Couldn't open copy destination file",
                 extra={"file_name": name, "file_flags": flags, "err": str(e)})

Features:
    - ContextFormatter: text lines with ``key=value`` context appended
    - JSONFormatter: one JSON object per record, context as fields
    - The package logger carries a NullHandler, so nothing is emitted until
      the application configures logging
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

PACKAGE_LOGGER = "snd_fs"

# Attributes every LogRecord has; anything else came in through ``extra``
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime", "taskName"}


def get_context(record: logging.LogRecord) -> dict[str, Any]:
    """Extract the ``extra`` context attached to a log record.

    Args:
        record: The log record.

    Returns:
        Mapping of context keys to values, in insertion order.
    """
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _RESERVED_ATTRS and not key.startswith("_")
    }


def _format_value(value: Any) -> str:
    text = str(value)
    if not text or any(c.isspace() for c in text) or '"' in text:
        return json.dumps(text)
    return text


class ContextFormatter(logging.Formatter):
    """Formatter that appends record context as ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with its context.

        Args:
            record: The log record to format.

        Returns:
            Formatted message followed by space separated context pairs.
        """
        message = super().format(record)
        context = get_context(record)
        if not context:
            return message

        pairs = " ".join(f"{key}={_format_value(value)}" for key, value in context.items())
        # Keep tracebacks on the lines after the context
        head, sep, tail = message.partition("\n")
        return f"{head} {pairs}{sep}{tail}"


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as a JSON object.

        Args:
            record: The log record to format.

        Returns:
            JSON-formatted log message.
        """
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key, value in get_context(record).items():
            log_data.setdefault(key, value)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def configure_logging(
    level: str = "INFO",
    json_format: bool = False,
    logger_name: str | None = PACKAGE_LOGGER,
) -> logging.Logger:
    """Configure logging for the snd filesystem.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR).
        json_format: Use JSON format for structured logging.
        logger_name: Logger to configure. ``None`` configures the root logger.

    Returns:
        The configured logger.
    """
    target = logging.getLogger(logger_name)
    target.setLevel(level)

    # Remove handlers installed by a previous call, keep the NullHandler
    for handler in target.handlers[:]:
        if not isinstance(handler, logging.NullHandler):
            target.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)

    if json_format:
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = ContextFormatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    console_handler.setFormatter(formatter)
    target.addHandler(console_handler)
    return target
