"""
Centralized logging configuration for the design extraction core.

Human-readable output during development, structured JSON in production,
and a correlation ID per pipeline invocation so that concurrent runs can be
told apart in the log stream.

All modules should use:
    from design_extractor.logging_config import get_logger
    logger = get_logger(__name__)
"""

import json
import logging
import os
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterator, Optional

ROOT_LOGGER_NAME = "design_extractor"

# ---------------------------------------------------------------------------
# Correlation ID context (thread-safe via contextvars)
# ---------------------------------------------------------------------------
_correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")


def get_correlation_id() -> str:
    """Return the current correlation ID, or empty string if none set."""
    return _correlation_id.get()


def set_correlation_id(cid: str) -> None:
    """Set the correlation ID for the current context."""
    _correlation_id.set(cid)


def generate_correlation_id() -> str:
    """Generate a new correlation ID."""
    return str(uuid.uuid4())


@contextmanager
def correlation_scope(cid: Optional[str] = None) -> Iterator[str]:
    """Bind a correlation ID for the duration of a block and restore the previous one."""
    token = _correlation_id.set(cid or generate_correlation_id())
    try:
        yield _correlation_id.get()
    finally:
        _correlation_id.reset(token)


# ---------------------------------------------------------------------------
# Environment detection
# ---------------------------------------------------------------------------
def _get_environment() -> str:
    """Detect the current environment from APP_ENV or ENV."""
    return os.environ.get("APP_ENV", os.environ.get("ENV", "development")).lower()


def is_production() -> bool:
    return _get_environment() == "production"


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------
class StructuredJsonFormatter(logging.Formatter):
    """Formats log records as one JSON object per line.

    Every entry includes: timestamp, level, service, context, correlationId.
    Records logged with exc_info also carry stackTrace.
    """

    LEVEL_MAP = {
        "DEBUG": "debug",
        "INFO": "info",
        "WARNING": "warn",
        "ERROR": "error",
        "CRITICAL": "fatal",
    }

    def __init__(self, service: str = ROOT_LOGGER_NAME):
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": self.LEVEL_MAP.get(record.levelname, record.levelname.lower()),
            "service": self.service,
            "context": record.name,
            "correlationId": get_correlation_id() or None,
            "message": record.getMessage(),
        }

        if record.exc_info and record.exc_info[1] is not None:
            entry["stackTrace"] = self.formatException(record.exc_info)

        # Extra structured fields passed via `extra={"data": {...}}`
        if hasattr(record, "data") and isinstance(record.data, dict):
            entry["data"] = record.data

        return json.dumps(entry, default=str)


class DevelopmentFormatter(logging.Formatter):
    """Human-readable formatter for local development."""

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created, tz=timezone.utc).strftime(
            "%Y-%m-%d %H:%M:%S"
        )
        cid = get_correlation_id()
        cid_str = f" [{cid[:8]}]" if cid else ""
        base = f"{record.levelname}:\t{ts}\t{record.name}{cid_str}\t{record.getMessage()}"

        if record.exc_info and record.exc_info[1] is not None:
            base += "\n" + self.formatException(record.exc_info)

        return base


# ---------------------------------------------------------------------------
# Logger factory
# ---------------------------------------------------------------------------
_configured = False


def configure_logging(
    log_level: str = "INFO",
    service: str = ROOT_LOGGER_NAME,
    log_dir: Optional[Path] = None,
) -> None:
    """Configure the package logger.

    Call once at process startup (scripts do this). Library users who never
    call it get the defaults on the first get_logger() call.

    Args:
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        service: Service name included in every structured log entry.
        log_dir: Directory for a rotating JSON log file. Defaults to the
            LOG_DIR environment variable; no file is written when neither is set.
    """
    global _configured

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    if is_production():
        formatter = StructuredJsonFormatter(service=service)
    else:
        formatter = DevelopmentFormatter()

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    root_logger.addHandler(console)

    if log_dir is None and os.environ.get("LOG_DIR"):
        log_dir = Path(os.environ["LOG_DIR"])
    if log_dir is not None:
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                log_dir / "design_extractor.log",
                maxBytes=10 * 1024 * 1024,
                backupCount=5,
                encoding="utf-8",
            )
            file_handler.setFormatter(StructuredJsonFormatter(service=service))
            root_logger.addHandler(file_handler)
        except OSError:
            root_logger.warning(f"Could not initialize file logging in {log_dir}")

    root_logger.propagate = False
    _configured = True


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """Get a logger under the package root logger.

    Args:
        name: Logger name (typically __name__). Module names inside the
            package already start with the root name and are used as-is.
    """
    if not _configured:
        configure_logging()

    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)

    logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
    logger.propagate = True
    return logger
