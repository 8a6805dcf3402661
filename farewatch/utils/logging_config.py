"""
Logging configuration for FareWatch.

Structured JSON logs in production, coloured human-readable logs in
development. Notification failures are logged under the
``farewatch.notifications`` logger tree so they can be routed separately
from scheduling failures.
"""

import json
import logging
import logging.handlers
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# LogRecord attributes that are not user supplied "extra" fields
_RESERVED_FIELDS = {
    "name", "msg", "args", "created", "filename", "funcName", "levelname",
    "levelno", "lineno", "module", "msecs", "message", "pathname", "process",
    "processName", "relativeCreated", "thread", "threadName", "exc_info",
    "exc_text", "stack_info", "taskName",
}


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Every record becomes one JSON object with timestamp, level, logger,
    message and source location, plus any ``extra=`` fields passed by the
    caller (e.g. ``task_id``, ``channel``).
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_FIELDS and not key.startswith("_"):
                log_data[key] = value

        return json.dumps(log_data, default=str)


class ColoredFormatter(logging.Formatter):
    """Colored formatter for console output in development."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
        "RESET": "\033[0m",
    }

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.COLORS['RESET']}"

        formatted = super().format(record)

        record.levelname = levelname
        return formatted


def setup_logging(
    level: str = "INFO",
    json_format: bool = False,
    log_file: str | None = None,
    console_output: bool = True,
    max_bytes: int = 10485760,  # 10MB
    backup_count: int = 5,
) -> None:
    """
    Configure the root logger for the application.

    Args:
        level: Log level name; unknown names fall back to INFO
        json_format: Use JSON on the console (production)
        log_file: Optional rotating log file; always written as JSON
        console_output: Attach a stdout handler
        max_bytes: Rotation size of the log file
        backup_count: Rotated files to keep

    Examples:
        >>> setup_logging(level="DEBUG")
        >>> setup_logging(level="INFO", json_format=True, log_file="logs/farewatch.log")
    """
    level = level.upper() if level and level.upper() in VALID_LEVELS else "INFO"
    numeric_level = getattr(logging, level)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    # Replace only the handlers we installed on a previous call
    for handler in list(root_logger.handlers):
        if getattr(handler, "_farewatch", False):
            root_logger.removeHandler(handler)

    if json_format:
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = ColoredFormatter(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(formatter)
        console_handler._farewatch = True
        root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(JSONFormatter())
        file_handler._farewatch = True
        root_logger.addHandler(file_handler)

    # Third-party loggers that are chatty at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str, extra_fields: Dict[str, Any] | None = None) -> logging.LoggerAdapter:
    """
    Get a logger that stamps ``extra_fields`` on every record.

    Examples:
        >>> logger = get_logger(__name__, {"task_id": 42})
        >>> logger.info("Executing task")
    """
    return logging.LoggerAdapter(logging.getLogger(name), extra_fields or {})
