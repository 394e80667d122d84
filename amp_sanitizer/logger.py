"""
Logging configuration for the AMP conversion pipeline.

Console output is colored by level, an optional rotating file handler can
write either plain text or one JSON object per line.

Usage:
    from amp_sanitizer.logger import setup_logging, get_logger

    setup_logging(level="DEBUG", log_file="convert.log")

    logger = get_logger(__name__)
    logger.info("Converted %d embeds", count)
"""

import json
import logging
import sys
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

# Every module logger lives under this namespace
ROOT_LOGGER_NAME = "amp_sanitizer"

CONSOLE_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-40s | %(message)s"

DEFAULT_MAX_BYTES = 5 * 1024 * 1024  # 5MB
DEFAULT_BACKUP_COUNT = 3
DEFAULT_LOG_LEVEL = "WARNING"

COLORS = {
    "DEBUG": "\033[36m",  # Cyan
    "INFO": "\033[32m",  # Green
    "WARNING": "\033[33m",  # Yellow
    "ERROR": "\033[31m",  # Red
    "CRITICAL": "\033[35m",  # Magenta
    "RESET": "\033[0m",
}

# LogRecord attributes that are not user-supplied "extra" fields
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime", "taskName"}


class ColorFormatter(logging.Formatter):
    """Formatter that wraps the level name in ANSI color codes."""

    def format(self, record: logging.LogRecord) -> str:
        original_levelname = record.levelname
        color = COLORS.get(record.levelname, "")
        record.levelname = f"{color}{record.levelname}{COLORS['RESET']}"
        try:
            return super().format(record)
        finally:
            record.levelname = original_levelname


class JSONFormatter(logging.Formatter):
    """
    Formatter that renders each record as a single JSON object.

    Fields passed through ``extra=`` (for example ``handle`` or
    ``sanitizer``) are collected under the ``extra`` key.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra_fields = {
            k: v for k, v in record.__dict__.items() if k not in _RESERVED_ATTRS
        }
        if extra_fields:
            log_data["extra"] = extra_fields

        return json.dumps(log_data, default=str)


def setup_logging(
    level: str = DEFAULT_LOG_LEVEL,
    log_file: str | None = None,
    log_dir: Path | None = None,
    log_format: str = "text",
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
) -> logging.Logger:
    """
    Configure the ``amp_sanitizer`` logger hierarchy.

    Console output goes to stderr so that converted markup written to
    stdout stays clean when piped.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            DEBUG traces per-element sanitizer decisions, INFO summarizes
            each conversion run, WARNING reports dropped scripts and
            retried fetches.
        log_file: Optional file name; enables a rotating file handler.
        log_dir: Directory for ``log_file``, created when missing.
        log_format: "text" or "json" for the file handler.
        max_bytes: Size at which the log file rotates.
        backup_count: Number of rotated files to keep.

    Returns:
        The configured package logger.
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.DEBUG)
    console_handler.setFormatter(
        ColorFormatter(CONSOLE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    )
    root_logger.addHandler(console_handler)

    if log_file:
        if log_dir:
            log_path = log_dir / log_file
            log_path.parent.mkdir(parents=True, exist_ok=True)
        else:
            log_path = Path(log_file)

        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)

        if log_format.lower() == "json":
            file_handler.setFormatter(JSONFormatter())
        else:
            file_handler.setFormatter(
                logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
            )
        root_logger.addHandler(file_handler)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Return the logger for a module, normally called with ``__name__``."""
    return logging.getLogger(name)
