"""Structured JSON logging for the Armario service.

Every record carries the correlation id of the user operation that produced
it. Identity details and inline photo payloads never reach the log output.
"""

from __future__ import annotations

import contextlib
import contextvars
import json
import logging
import os
import re
import uuid
from typing import IO, Any, Dict, Iterator

CORRELATION_ID: contextvars.ContextVar[str | None] = contextvars.ContextVar("correlation_id", default=None)
CURRENT_OPERATION: contextvars.ContextVar[str | None] = contextvars.ContextVar("operation", default=None)

# Attributes every LogRecord has; anything else was passed through ``extra``.
_RESERVED_RECORD_KEYS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}
_REDACT_KEYS = frozenset(
    {
        "owner_id",
        "email",
        "display_name",
        "photo_url",
        "image_url",
        "photo_data_uri",
        "password",
        "new_password",
        "id_token",
        "refresh_token",
        "description",
    }
)
_REDACTED = "[redacted]"
_EMAIL_PATTERN = re.compile(r"[\w.\-+]+@[\w.\-]+")
_HANDLER_FLAG = "_armario_json_handler"


class JsonFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        message = record.getMessage()
        payload: Dict[str, Any] = {
            "timestamp": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S%z"),
            "level": record.levelname,
            "logger": record.name,
            "event": getattr(record, "event", message),
            "message": message,
            "correlation_id": getattr(record, "correlation_id", None) or CORRELATION_ID.get(),
            "operation": getattr(record, "operation", None) or CURRENT_OPERATION.get(),
        }
        for key, value in vars(record).items():
            if key in _RESERVED_RECORD_KEYS or key in payload:
                continue
            payload[key] = _REDACTED if key in _REDACT_KEYS else redact_for_log(value)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, ensure_ascii=False)


def configure_logging(level: int | str | None = None, stream: IO[str] | None = None) -> None:
    """Install the JSON handler on the root logger.

    Calling it again swaps the previously installed JSON handler instead of
    stacking a second one; handlers installed by other code are left alone.
    """

    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_FLAG, False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(stream)
    handler.setFormatter(JsonFormatter())
    setattr(handler, _HANDLER_FLAG, True)
    root.addHandler(handler)
    root.setLevel(level or os.getenv("LOG_LEVEL", "INFO"))


def _redact_string(value: str) -> str:
    if value.startswith("data:"):
        return "[redacted-data-uri]"
    return _EMAIL_PATTERN.sub("[redacted-email]", value)


def redact_for_log(payload: Any) -> Any:
    """Scrub identity fields, emails and inline images from nested data."""

    if isinstance(payload, dict):
        return {
            key: _REDACTED if key in _REDACT_KEYS else redact_for_log(value)
            for key, value in payload.items()
        }
    if isinstance(payload, (list, tuple, set)):
        return [redact_for_log(item) for item in payload]
    if isinstance(payload, str):
        return _redact_string(payload)
    if payload is None or isinstance(payload, (bool, int, float)):
        return payload
    return str(payload)


def get_logger(name: str) -> logging.Logger:
    if not logging.getLogger().handlers:
        configure_logging()
    return logging.getLogger(name)


def ensure_correlation_id(correlation_id: str | None = None) -> str:
    """Adopt ``correlation_id`` if given, else reuse or mint the current one."""

    if correlation_id:
        CORRELATION_ID.set(correlation_id)
        return correlation_id
    current = CORRELATION_ID.get()
    if not current:
        current = uuid.uuid4().hex
        CORRELATION_ID.set(current)
    return current


@contextlib.contextmanager
def correlation_context(correlation_id: str | None = None) -> Iterator[str]:
    """Set a correlation id for the duration of the block."""

    token = CORRELATION_ID.set(correlation_id or ensure_correlation_id())
    try:
        yield CORRELATION_ID.get()
    finally:
        CORRELATION_ID.reset(token)


def log_event(logger: logging.Logger, level: int, event: str, **fields: Any) -> None:
    """Log ``event`` with redacted ``fields`` as structured extras."""

    correlation_id = ensure_correlation_id(fields.pop("correlation_id", None))
    exc_info = fields.pop("exc_info", None)
    extra = {key: value for key, value in redact_for_log(fields).items() if key not in _RESERVED_RECORD_KEYS}
    extra.update(event=event, correlation_id=correlation_id)
    logger.log(level, event, exc_info=exc_info, extra=extra)


@contextlib.contextmanager
def operation_context(name: str, correlation_id: str | None = None) -> Iterator[str]:
    """Scope one user-initiated operation: its name and a correlation id."""

    operation_token = CURRENT_OPERATION.set(name)
    try:
        with correlation_context(correlation_id or ensure_correlation_id()) as scoped_id:
            yield scoped_id
    finally:
        CURRENT_OPERATION.reset(operation_token)


__all__ = [
    "CORRELATION_ID",
    "CURRENT_OPERATION",
    "JsonFormatter",
    "configure_logging",
    "correlation_context",
    "ensure_correlation_id",
    "get_logger",
    "log_event",
    "operation_context",
    "redact_for_log",
]
