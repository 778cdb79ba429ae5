"""
Structured Logging: JSON Lines with Bound Fields and Token Masking

Provides:
- One JSON object per record (timestamp, level, logger, thread, fields)
- Fields bound to a logger or to the current context (customer, offer, shard)
- Masking of session tokens, which are bearer credentials

Designed for centralized log aggregation (ELK, Loki).
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, Optional, TextIO


class LogLevel(IntEnum):
    """Log level enumeration."""
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50

    @classmethod
    def from_name(cls, name: str) -> LogLevel:
        return cls[name.upper()]


# Fields attached to every record emitted in the current context
_bound_fields: ContextVar[dict[str, Any]] = ContextVar("stakemesh_log_fields", default={})

# Anything on a logging.LogRecord outside this set was passed via `extra`.
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None))
) | {"message", "asctime", "taskName"}

# Field names whose values are session tokens
_TOKEN_FIELDS = frozenset({"token", "session_token"})
_TOKEN_VISIBLE_CHARS = 2


def mask_token(value: Any) -> str:
    """Keep a short prefix of a token for correlation; hide the rest."""
    text = str(value)
    return text[:_TOKEN_VISIBLE_CHARS] + "*" * max(0, len(text) - _TOKEN_VISIBLE_CHARS)


@dataclass
class JsonLine:
    """One serialized log entry."""
    timestamp: str
    level: str
    message: str
    logger_name: str
    thread: Optional[str] = None
    fields: dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> str:
        data: dict[str, Any] = {
            "@timestamp": self.timestamp,
            "level": self.level,
            "logger": self.logger_name,
            "message": self.message,
        }
        if self.thread:
            data["thread"] = self.thread

        for key, value in self.fields.items():
            data[key] = mask_token(value) if key in _TOKEN_FIELDS else value

        return json.dumps(data, default=str)


class JsonFormatter(logging.Formatter):
    """Render records as JSON lines, merging context and `extra` fields."""

    def format(self, record: logging.LogRecord) -> str:
        fields = dict(_bound_fields.get())
        fields.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS
        )

        if record.exc_info:
            fields["exception"] = self.formatException(record.exc_info)

        return JsonLine(
            timestamp=datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            level=record.levelname,
            message=record.getMessage(),
            logger_name=record.name,
            thread=record.threadName,
            fields=fields,
        ).to_json()


class StructuredLogger:
    """
    Logger taking fields as keyword arguments.

    Usage:
        logger = StructuredLogger("stakemesh.session.sweeper")
        logger.info("Expired sessions removed", removed=12)

        shard_log = logger.bind(shard=3)
        with StructuredLogger.context(offer_id=888):
            shard_log.debug("Sweep pass complete")
    """

    __slots__ = ("_logger", "_fields")

    def __init__(self, name: str, **fields: Any) -> None:
        self._logger = logging.getLogger(name)
        self._fields = fields

    def debug(self, message: str, **fields: Any) -> None:
        self._emit(LogLevel.DEBUG, message, fields)

    def info(self, message: str, **fields: Any) -> None:
        self._emit(LogLevel.INFO, message, fields)

    def warning(self, message: str, **fields: Any) -> None:
        self._emit(LogLevel.WARNING, message, fields)

    def error(self, message: str, **fields: Any) -> None:
        self._emit(LogLevel.ERROR, message, fields)

    def exception(self, message: str, **fields: Any) -> None:
        """ERROR with the traceback of the exception being handled."""
        self._logger.error(message, exc_info=True, extra={**self._fields, **fields})

    def _emit(self, level: LogLevel, message: str, fields: dict[str, Any]) -> None:
        if self._logger.isEnabledFor(level):
            self._logger.log(level, message, extra={**self._fields, **fields})

    def bind(self, **fields: Any) -> StructuredLogger:
        """Same logger with extra fields on every record."""
        return StructuredLogger(self._logger.name, **{**self._fields, **fields})

    @property
    def name(self) -> str:
        return self._logger.name

    @staticmethod
    def context(**fields: Any) -> LogContext:
        """Bind fields to every record emitted inside a ``with`` block."""
        return LogContext(fields)


class LogContext:
    """Scoped addition to the context-bound log fields."""

    __slots__ = ("_fields", "_reset_token")

    def __init__(self, fields: dict[str, Any]) -> None:
        self._fields = fields
        self._reset_token = None

    def __enter__(self) -> LogContext:
        self._reset_token = _bound_fields.set({**_bound_fields.get(), **self._fields})
        return self

    def __exit__(self, *args: Any) -> None:
        if self._reset_token is not None:
            _bound_fields.reset(self._reset_token)
            self._reset_token = None


def setup_logging(
    level: LogLevel = LogLevel.INFO,
    json_output: bool = True,
    stream: Optional[TextIO] = None,
) -> None:
    """
    Configure the ``stakemesh`` logger hierarchy.

    Replaces any handlers installed by an earlier call.

    Args:
        level: Minimum log level
        json_output: JSON lines instead of plain text
        stream: Output stream (default: stderr)
    """
    package_logger = logging.getLogger("stakemesh")
    package_logger.setLevel(level)
    package_logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(
        JsonFormatter()
        if json_output
        else logging.Formatter(
            "%(asctime)s %(levelname)-8s [%(threadName)s] %(name)s: %(message)s"
        )
    )
    package_logger.addHandler(handler)
