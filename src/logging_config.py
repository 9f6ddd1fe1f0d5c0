"""
Ticketing Admin Client - Structured Logging Configuration
=========================================================
JSON or console logging for the client, with per-call context.

Every API call runs inside a LogContextManager, so records emitted by the
fault hook, the session store or a query controller during that call carry
the same request_id and endpoint. Credentials never reach a handler:
TokenRedactionFilter masks bearer tokens in messages and drops secret
fields from the record extras.

Usage:
    from src.logging_config import configure_logging, log_event

    configure_logging()
    log_event("session_cleared")
"""

from __future__ import annotations

import json
import logging
import os
import re
import sys
import threading
import traceback
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from src.config import get_settings

SERVICE_NAME = "ticketing-admin-client"


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


# =============================================================================
# Call Context
# =============================================================================


class LogContext:
    """
    Thread-local fields attached to every record.

    request_id and endpoint are scoped to one API call (see
    LogContextManager). role follows the session store and outlives calls.
    """

    FIELDS = ("request_id", "endpoint", "role", "duration_ms")

    _local = threading.local()

    @classmethod
    def _get(cls, name: str) -> Any:
        return getattr(cls._local, name, None)

    @classmethod
    def _set(cls, name: str, value: Any) -> None:
        setattr(cls._local, name, value)

    @classmethod
    def get_request_id(cls) -> str | None:
        return cls._get("request_id")

    @classmethod
    def set_request_id(cls, request_id: str | None) -> None:
        cls._set("request_id", request_id)

    @classmethod
    def get_endpoint(cls) -> str | None:
        return cls._get("endpoint")

    @classmethod
    def set_endpoint(cls, endpoint: str | None) -> None:
        cls._set("endpoint", endpoint)

    @classmethod
    def get_role(cls) -> str | None:
        return cls._get("role")

    @classmethod
    def set_role(cls, role: str | None) -> None:
        """Set by SessionStore whenever the credential changes."""
        cls._set("role", role)

    @classmethod
    def set_duration_ms(cls, duration_ms: float | None) -> None:
        cls._set("duration_ms", duration_ms)

    @classmethod
    def clear(cls) -> None:
        for name in cls.FIELDS:
            cls._set(name, None)

    @classmethod
    def snapshot(cls) -> dict[str, Any]:
        """Non-null context fields."""
        values = {name: cls._get(name) for name in cls.FIELDS}
        return {k: v for k, v in values.items() if v is not None}


class LogContextManager:
    """
    Scope a request id and endpoint to one API call, restoring the outer
    values on exit so nested calls behave.

    Example:
        with LogContextManager(request_id="abc", endpoint="/api/tickets"):
            ...
    """

    def __init__(self, *, request_id: str | None = None, endpoint: str | None = None) -> None:
        self._values = {"request_id": request_id, "endpoint": endpoint}
        self._saved: dict[str, Any] = {}

    def __enter__(self) -> LogContextManager:
        for name, value in self._values.items():
            self._saved[name] = LogContext._get(name)
            LogContext._set(name, value)
        return self

    def __exit__(self, *exc_info: Any) -> None:
        for name, value in self._saved.items():
            LogContext._set(name, value)
        self._saved.clear()


# =============================================================================
# Redaction
# =============================================================================


_BEARER_RE = re.compile(r"(Bearer\s+)[^\s'\"]+", re.IGNORECASE)
SECRET_FIELDS = frozenset({"token", "auth_token", "password", "twofa_code", "authorization"})


class TokenRedactionFilter(logging.Filter):
    """Masks bearer credentials in the message and removes secret extras."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = _BEARER_RE.sub(r"\1[redacted]", message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        for name in SECRET_FIELDS & record.__dict__.keys():
            delattr(record, name)
        return True


# =============================================================================
# Formatters
# =============================================================================


_RECORD_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", None, None).__dict__) | {"message", "taskName"}


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RECORD_ATTRS and not key.startswith("_")
    }


def _json_default(obj: Any) -> str:
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return str(obj.value)
    return str(obj)


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: base fields, call context, then extras."""

    def __init__(
        self,
        *,
        service_name: str = SERVICE_NAME,
        environment: str = "production",
        include_extra_fields: bool = True,
    ) -> None:
        super().__init__()
        self.service_name = service_name
        self.environment = environment
        self.include_extra_fields = include_extra_fields

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry: dict[str, Any] = {
            "timestamp": created.strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
            "environment": self.environment,
        }
        if record.pathname:
            entry.update(file=Path(record.pathname).name, line=record.lineno, function=record.funcName)
        if record.exc_info:
            exc_type, exc, _ = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__ if exc_type else None,
                "message": str(exc) if exc else None,
                "traceback": "".join(traceback.format_exception(*record.exc_info)),
            }
        entry.update(LogContext.snapshot())
        if self.include_extra_fields:
            entry.update(_extra_fields(record))
        return json.dumps(entry, default=_json_default, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """Single-line coloured output for local runs (`DEBUG=true`)."""

    COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelno, "")
        clock = datetime.fromtimestamp(record.created, tz=timezone.utc).strftime("%H:%M:%S.%f")[:-3]
        extras = " ".join(f"{k}={v}" for k, v in _extra_fields(record).items())
        line = (
            f"{color}{record.levelname:<8}{self.RESET} {clock} "
            f"[{LogContext.get_request_id() or '-'}] {record.name}: {record.getMessage()}"
        )
        if extras:
            line = f"{line} ({extras})"
        if record.exc_info:
            line += "\n" + "".join(traceback.format_exception(*record.exc_info))
        return line


# =============================================================================
# Setup
# =============================================================================


def _resolve_level(level: str | int | None) -> int:
    if isinstance(level, int):
        return level
    name = level if level is not None else os.environ.get("LOG_LEVEL", "INFO")
    return getattr(logging, str(name).upper(), logging.INFO)


def _use_json(log_format: str | None) -> bool:
    log_format = (log_format or os.environ.get("LOG_FORMAT", "")).lower()
    if log_format in ("json", "console"):
        return log_format == "json"
    return not get_settings().debug_mode


def configure_logging(
    *,
    level: str | int | None = None,
    service_name: str = SERVICE_NAME,
    environment: str = "production",
    log_format: str | None = None,
) -> None:
    """
    Replace the root handlers with one stdout handler.

    Args:
        level: Level name or number; defaults to LOG_LEVEL, then INFO.
        service_name: `service` field of JSON records.
        environment: `environment` field of JSON records.
        log_format: "json" or "console"; defaults to LOG_FORMAT, then
            console in debug mode and JSON otherwise.
    """
    resolved = _resolve_level(level)
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(resolved)
    handler.addFilter(TokenRedactionFilter())
    if _use_json(log_format):
        handler.setFormatter(StructuredFormatter(service_name=service_name, environment=environment))
    else:
        handler.setFormatter(ConsoleFormatter())

    root = logging.getLogger()
    root.setLevel(resolved)
    root.handlers.clear()
    root.addHandler(handler)


# =============================================================================
# Helpers
# =============================================================================


def log_event(event_name: str, level: str | LogLevel = LogLevel.INFO, **extra_fields: Any) -> None:
    """
    Log a named event on the `src.events` logger.

    Example:
        log_event("query_completed", resource="admin_tickets", total=20)
    """
    name = level.value if isinstance(level, LogLevel) else str(level).upper()
    logging.getLogger("src.events").log(_resolve_level(name), event_name, extra=extra_fields)


def log_error(event_name: str, exc: Exception | None = None, **extra_fields: Any) -> None:
    """Log a failure on the `src.errors` logger, with the exception attached."""
    exc_info = (type(exc), exc, exc.__traceback__) if exc is not None else None
    logging.getLogger("src.errors").error(event_name, exc_info=exc_info, extra=extra_fields)


def log_performance(operation: str, duration_ms: float, **extra_fields: Any) -> None:
    """DEBUG event `<operation>_completed` with the rounded duration."""
    log_event(f"{operation}_completed", LogLevel.DEBUG, duration_ms=round(duration_ms, 2), **extra_fields)
