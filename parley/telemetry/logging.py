"""Logging setup for Parley.

Two formats are supported:
    - ParleyLogFormatter: human readable ``[time] [LEVEL] [COMPONENT] message``
    - JsonLogFormatter: one JSON object per line for machine parsing

The component defaults to the last segment of the logger name, so a record
from ``parley.routing.router`` is tagged ``[ROUTER]``. Backend and tier can
be attached through ``extra`` and are rendered by both formatters.

Example:
    >>> setup_logging("DEBUG")
    >>> logging.getLogger("parley.routing.router").info(
    ...     "Backend answered", extra={"backend": "ollama", "tier": "simple"}
    ... )
    [2026-01-11 10:15:32] [INFO] [ROUTER] Backend answered (backend=ollama tier=simple)
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional, Union


# =============================================================================
# Constants
# =============================================================================

LOG_MAX_BYTES = 10 * 1024 * 1024

LOG_BACKUP_COUNT = 5

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# Record attributes rendered as context by both formatters
CONTEXT_FIELDS = ("backend", "tier", "attempt", "latency_ms", "conversation_id", "error_code")

ROOT_LOGGER_NAME = "parley"


# =============================================================================
# Formatters
# =============================================================================


class ParleyLogFormatter(logging.Formatter):
    """Plain-text formatter with a component tag and optional context.

    Format:
        [TIMESTAMP] [LEVEL] [COMPONENT] Message (key=value ...)
    """

    STANDARD_FORMAT = "[%(asctime)s] [%(levelname)s] [%(component)s] %(message)s"

    DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

    def __init__(self) -> None:
        super().__init__(fmt=self.STANDARD_FORMAT, datefmt=self.DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "component"):
            record.component = record.name.split(".")[-1].upper()
        line = super().format(record)
        context = [
            f"{name}={getattr(record, name)}"
            for name in CONTEXT_FIELDS
            if getattr(record, name, None) is not None
        ]
        if context:
            # Keep tracebacks on their own lines after the context
            head, sep, tail = line.partition("\n")
            line = f"{head} ({' '.join(context)}){sep}{tail}"
        return line


class JsonLogFormatter(logging.Formatter):
    """JSON Lines formatter.

    Each record becomes a single-line object with ``timestamp`` (ISO 8601,
    UTC), ``level``, ``logger``, ``component`` and ``message``, plus any
    context fields present on the record and ``exception`` when exc_info
    is set.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "component": getattr(record, "component", record.name.split(".")[-1].upper()),
            "message": record.getMessage(),
        }

        for field_name in CONTEXT_FIELDS:
            value = getattr(record, field_name, None)
            if value is not None:
                if isinstance(value, float):
                    value = round(value, 2)
                entry[field_name] = value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, separators=(",", ":"), default=str)


# =============================================================================
# Setup
# =============================================================================


def setup_logging(
    level: Union[str, int] = "INFO",
    json_format: bool = False,
    log_file: Optional[Path] = None,
    max_bytes: int = LOG_MAX_BYTES,
    backup_count: int = LOG_BACKUP_COUNT,
) -> logging.Logger:
    """Configure the ``parley`` logger hierarchy.

    Installs a stderr handler and, when ``log_file`` is given, a
    RotatingFileHandler that always writes JSON Lines. Calling this again
    replaces the handlers installed by the previous call.

    Args:
        level: Level name or number.
        json_format: Use JsonLogFormatter on stderr instead of plain text.
        log_file: Optional path for a rotating JSON Lines log.
        max_bytes: Max size before rotation.
        backup_count: Number of rotated files to keep.

    Returns:
        The configured ``parley`` logger.
    """
    if isinstance(level, str):
        level = LOG_LEVELS.get(level.upper(), logging.INFO)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers.clear()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(JsonLogFormatter() if json_format else ParleyLogFormatter())
    logger.addHandler(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            filename=log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(JsonLogFormatter())
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger


__all__ = [
    "ParleyLogFormatter",
    "JsonLogFormatter",
    "setup_logging",
    "LOG_LEVELS",
    "CONTEXT_FIELDS",
]
