"""
kbfeed Logging Configuration
============================

Console output is colored and tagged with the feed/entry being processed;
the optional log file is rotated and written as one JSON object per line so
scheduled runs can be grepped by feed id or entry GUID.
"""

import json
import logging
import logging.handlers
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Any, Optional

# Fields the component adapter attaches to every record
SCOPE_FIELDS = ("component", "feed_id", "entry_guid")

# Third-party loggers that are chatty at INFO
NOISY_LOGGERS = ("urllib3", "requests", "feedparser", "trafilatura", "charset_normalizer")

# Present on every LogRecord; anything else arrived through ``extra``
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime"}


class StructuredFormatter(logging.Formatter):
    """One JSON object per record.

    Scope fields are lifted to the top level; other ``extra`` values (error
    codes, durations) are nested under ``context``.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = {}
        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRS:
                continue
            if key in SCOPE_FIELDS:
                log_data[key] = value
            else:
                context[key] = value
        if context:
            log_data["context"] = context

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


class ColoredConsoleFormatter(logging.Formatter):
    """Human readable console lines: ``[time] LEVEL logger [feed guid] - message``."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")

        scope_parts = [
            str(getattr(record, field))
            for field in ("feed_id", "entry_guid")
            if getattr(record, field, None)
        ]
        scope = f" [{' '.join(scope_parts)}]" if scope_parts else ""

        line = (
            f"{color}[{timestamp}] {record.levelname:8}{self.RESET} "
            f"{record.name}{scope} - {record.getMessage()}"
        )
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logger(
    name: str = "kbfeed",
    level: str = "INFO",
    log_file: Optional[str] = None,
    console: bool = True,
    structured: bool = False,
    max_file_size: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """Attach console and/or rotating file handlers to a logger.

    Existing handlers are replaced, so calling this twice does not duplicate
    output. Console output goes to stderr; stdout is left to the CLI tables.

    Args:
        name: Logger name
        level: Logging level name
        log_file: Path of the JSON log file (optional)
        console: Whether to log to the console
        structured: JSON instead of colored lines on the console
        max_file_size: Bytes before the log file is rotated
        backup_count: Rotated files to keep

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))
    logger.handlers.clear()

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(StructuredFormatter() if structured else ColoredConsoleFormatter())
        logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path, maxBytes=max_file_size, backupCount=backup_count, encoding="utf-8"
        )
        file_handler.setFormatter(StructuredFormatter())
        logger.addHandler(file_handler)

    return logger


class LoggerAdapter(logging.LoggerAdapter):
    """Adds component, feed and entry scope to every message."""

    def process(self, msg: Any, kwargs: Dict[str, Any]) -> tuple:
        kwargs["extra"] = {**kwargs.get("extra", {}), **self.extra}
        return msg, kwargs


def get_logger_for_component(
    component_name: str,
    feed_id: Optional[str] = None,
    entry_guid: Optional[str] = None,
) -> LoggerAdapter:
    """Get a logger adapter scoped to a component and, optionally, a feed entry.

    Args:
        component_name: Name of the component (e.g., 'pipeline', 'knowledge_client')
        feed_id: Configured feed identifier
        entry_guid: GUID of the entry being processed

    Returns:
        Logger adapter writing to ``kbfeed.<component_name>``
    """
    scope = {"component": component_name}
    if feed_id:
        scope["feed_id"] = feed_id
    if entry_guid:
        scope["entry_guid"] = entry_guid

    return LoggerAdapter(logging.getLogger(f"kbfeed.{component_name}"), scope)


def configure_application_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    enable_console: bool = True,
    structured_logging: bool = False,
    max_file_size_mb: int = 10,
    backup_count: int = 5,
) -> None:
    """Configure the ``kbfeed`` logger tree for one process.

    Args:
        log_level: Level for all kbfeed loggers
        log_file: Path of the JSON log file
        enable_console: Whether to log to stderr
        structured_logging: JSON instead of colored lines on stderr
        max_file_size_mb: Log file size before rotation
        backup_count: Number of rotated log files to keep
    """
    setup_logger(
        name="kbfeed",
        level=log_level,
        log_file=log_file,
        console=enable_console,
        structured=structured_logging,
        max_file_size=max_file_size_mb * 1024 * 1024,
        backup_count=backup_count,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class PerformanceLogger:
    """Times a block and logs its duration on exit.

    ``duration`` holds the elapsed seconds once the block has finished.
    """

    def __init__(self, logger: logging.Logger, operation: str, **context):
        self.logger = logger
        self.operation = operation
        self.context = context
        self.duration: Optional[float] = None
        self._started: Optional[float] = None

    def __enter__(self) -> "PerformanceLogger":
        self._started = time.monotonic()
        self.logger.debug(f"Starting {self.operation}", extra=self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.duration = time.monotonic() - self._started
        context = {**self.context, "duration_seconds": round(self.duration, 3), "success": exc_type is None}

        if exc_type:
            self.logger.error(f"{self.operation} failed after {self.duration:.3f}s", extra=context)
        else:
            self.logger.info(f"{self.operation} completed in {self.duration:.3f}s", extra=context)
