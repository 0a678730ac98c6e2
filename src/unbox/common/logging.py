"""Logging setup for the unbox command."""

import logging
import logging.handlers
import json
import sys
from typing import Any, Optional
from datetime import datetime, timezone
from pathlib import Path

from .errors import UnboxError

# Console formats by name; "json" is handled by JsonFormatter
CONSOLE_FORMATS = {
    "simple": ("%(levelname)-8s | %(name)s | %(message)s", None),
    "detailed": (
        "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s",
        "%Y-%m-%d %H:%M:%S",
    ),
}


class JsonFormatter(logging.Formatter):
    """One JSON object per record.

    Fields set through :class:`LogContext` (the archive being unpacked) are
    merged in, and a failing :class:`UnboxError` contributes its context.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info and record.exc_info[1] is not None:
            error = record.exc_info[1]
            log_data["error"] = {
                "type": type(error).__name__,
                "message": str(error),
            }
            if isinstance(error, UnboxError) and error.context:
                log_data["error"]["context"] = error.context

        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, default=str)


def make_formatter(format: str) -> logging.Formatter:
    """Return the formatter for a configured format name."""
    if format == "json":
        return JsonFormatter()
    fmt, datefmt = CONSOLE_FORMATS.get(format, CONSOLE_FORMATS["simple"])
    return logging.Formatter(fmt=fmt, datefmt=datefmt)


def setup_logging(
    level: str = "WARNING",
    format: str = "simple",
    log_file: Optional[Path] = None,
    max_file_size_mb: int = 10,
    backup_count: int = 5,
) -> None:
    """Configure logging.

    Console output always goes to stderr; stdout is reserved for the
    paths and reports the CLI prints.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: Format type (simple, detailed, json)
        log_file: Optional log file path, always written as JSON
        max_file_size_mb: Max log file size in MB
        backup_count: Number of backup files to keep
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(make_formatter(format))
    root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_file_size_mb * 1024 * 1024,
            backupCount=backup_count,
        )
        file_handler.setFormatter(JsonFormatter())
        root_logger.addHandler(file_handler)


class LogContext:
    """Context manager attaching fields to every record created inside it."""

    def __init__(self, logger: logging.Logger, **fields: Any) -> None:
        self.logger = logger
        self.fields = fields
        self.old_factory = None

    def __enter__(self) -> "LogContext":
        self.old_factory = logging.getLogRecordFactory()

        def record_factory(*args: Any, **kwargs: Any) -> logging.LogRecord:
            record = self.old_factory(*args, **kwargs)
            if not hasattr(record, "extra_fields"):
                record.extra_fields = {}
            record.extra_fields.update(self.fields)
            return record

        logging.setLogRecordFactory(record_factory)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        logging.setLogRecordFactory(self.old_factory)
