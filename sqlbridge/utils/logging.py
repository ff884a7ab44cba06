"""Logging helpers for the ``sqlbridge`` logger namespace.

Modules log through :func:`get_logger` and pass structured data as
``extra={"extra_fields": {...}}``. Records emitted inside
:func:`correlation_scope` carry the scope's correlation ID, so the connection,
transaction and dispatch records of one unit of work can be grouped.
"""

import json
import logging
import sys
import uuid
from collections.abc import Iterable
from contextlib import contextmanager
from contextvars import ContextVar
from typing import IO, TYPE_CHECKING, Any, Optional, Union

if TYPE_CHECKING:
    from collections.abc import Iterator

__all__ = (
    "ROOT_LOGGER_NAME",
    "CorrelationIDFilter",
    "StructuredFormatter",
    "configure_logging",
    "correlation_scope",
    "get_correlation_id",
    "get_logger",
    "set_correlation_id",
)

ROOT_LOGGER_NAME = "sqlbridge"
SIMPLE_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_correlation_id: "ContextVar[Optional[str]]" = ContextVar("sqlbridge_correlation_id", default=None)


def set_correlation_id(correlation_id: Optional[str]) -> None:
    """Set (or clear, with ``None``) the correlation ID of the current context."""
    _correlation_id.set(correlation_id)


def get_correlation_id() -> Optional[str]:
    return _correlation_id.get()


@contextmanager
def correlation_scope(correlation_id: Optional[str] = None) -> "Iterator[str]":
    """Tag every record logged in the block with one correlation ID.

    Args:
        correlation_id: ID to use; a random hex ID when omitted.

    Yields:
        The correlation ID in effect.
    """
    token = _correlation_id.set(correlation_id or uuid.uuid4().hex)
    try:
        yield _correlation_id.get()  # type: ignore[misc]
    finally:
        _correlation_id.reset(token)


class CorrelationIDFilter(logging.Filter):
    """Copy the current correlation ID onto each record as ``correlation_id``."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id()  # type: ignore[attr-defined]
        return True


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: level, logger, message, correlation ID and ``extra_fields``."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        correlation_id = getattr(record, "correlation_id", None) or get_correlation_id()
        if correlation_id:
            entry["correlation_id"] = correlation_id
        entry.update(getattr(record, "extra_fields", None) or {})
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a logger under the ``sqlbridge`` namespace.

    ``get_logger("scope")`` and ``get_logger("sqlbridge.scope")`` name the same
    logger. Every logger gets exactly one :class:`CorrelationIDFilter`.
    """
    if name is None:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if name != ROOT_LOGGER_NAME and not name.startswith(f"{ROOT_LOGGER_NAME}."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    logger = logging.getLogger(name)
    if not any(isinstance(existing, CorrelationIDFilter) for existing in logger.filters):
        logger.addFilter(CorrelationIDFilter())
    return logger


def configure_logging(
    level: "Union[int, str]" = logging.INFO,
    *,
    structured: bool = True,
    stream: "Optional[IO[str]]" = None,
    handlers: "Iterable[logging.Handler]" = (),
) -> logging.Logger:
    """Route the ``sqlbridge`` namespace to its own handlers.

    Replaces any handlers already on the namespace logger and stops propagation
    to the root logger.

    Args:
        level: Level name or number.
        structured: JSON output (:class:`StructuredFormatter`) instead of plain text.
        stream: Stream of the console handler; ``sys.stderr`` when omitted.
        handlers: Additional handlers, used with their own formatters.

    Raises:
        ValueError: ``level`` is not a known level name.

    Returns:
        The namespace logger.
    """
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            msg = f"Unknown log level {level!r}"
            raise ValueError(msg)
        level = resolved
    logger = get_logger()
    logger.setLevel(level)
    logger.handlers.clear()

    console = logging.StreamHandler(stream or sys.stderr)
    console.setFormatter(StructuredFormatter() if structured else logging.Formatter(SIMPLE_FORMAT))
    console.addFilter(CorrelationIDFilter())
    logger.addHandler(console)
    for handler in handlers:
        logger.addHandler(handler)
    logger.propagate = False
    return logger
