"""Structured logging for deep population.

Records from the ``deep_populate`` logger tree carry event fields as
``extra`` attributes; ``StructuredFormatter`` renders them, together with
any active ``log_context`` fields, as one JSON object per line.
"""

import json
import logging
import sys
import time
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from . import constants

PACKAGE_LOGGER = "deep_populate"

# Copied into every asyncio task, so fetches inherit the caller's fields
_context: ContextVar[Dict[str, Any]] = ContextVar("deep_populate_log_context", default={})

# LogRecord attributes that are not event fields
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "taskName"}

_TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


class StructuredFormatter(logging.Formatter):
    """Render a record, its extra fields and the log context as JSON."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
            **_context.get(),
        }
        payload.update(
            (key, value) for key, value in vars(record).items() if key not in _STANDARD_ATTRS
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def setup_logging(
    format: str = constants.DEFAULT_LOG_FORMAT,
    level: str = constants.DEFAULT_LOG_LEVEL,
    log_file: Optional[str] = None
) -> None:
    """Install stdout (and optionally file) handlers on the package logger.

    Calling it again replaces the handlers from the previous call.

    Args:
        format: ``"json"`` for structured output, anything else for plain text
        level: Level name, case-insensitive; unknown names fall back to INFO
        log_file: Also append records to this file
    """
    formatter = StructuredFormatter() if format == "json" else logging.Formatter(_TEXT_FORMAT)

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.handlers.clear()
    package_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in handlers:
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_event(logger_name: str, event: str, level: int = logging.INFO, **fields) -> None:
    """Emit ``event`` as the message with ``fields`` attached."""
    get_logger(logger_name).log(level, event, extra=fields)


def log_error(logger_name: str, event: str, error: BaseException, **fields) -> None:
    """Emit ``event`` at ERROR with the error type and its traceback."""
    fields["error_type"] = type(error).__name__
    get_logger(logger_name).error(
        f"{event}: {error}",
        exc_info=(type(error), error, error.__traceback__),
        extra=fields
    )


def log_performance(logger_name: str, operation: str, duration_ms: float, **fields) -> None:
    """Emit an ``<operation>_completed`` DEBUG event carrying ``duration_ms``."""
    fields["duration_ms"] = duration_ms
    get_logger(logger_name).debug(f"{operation}_completed", extra=fields)


@contextmanager
def log_context(**fields):
    """Attach ``fields`` to every structured record emitted inside the block.

    Example:
        with log_context(root_type="Post"):
            await scheduler.run(request)
    """
    token = _context.set({**_context.get(), **fields})
    try:
        yield
    finally:
        _context.reset(token)


class Timer:
    """Measure a block in milliseconds; ``duration_ms`` is set on exit."""

    def __init__(self):
        self.duration_ms: Optional[float] = None
        self._started: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration_ms = (time.perf_counter() - self._started) * 1000
