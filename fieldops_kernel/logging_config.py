"""
Structured JSON logging for the derived-view layer.

Every record is one JSON object per line with ``ts``, ``level``,
``logger`` and ``message``, followed by the bound context fields and any
``extra=`` keys.  Money and dates serialise as strings so a balance logged
as ``Decimal("1250.50")`` reads back exactly.

Context fields are request scoped (contextvars) and apply to every logger
under ``fieldops``:

    correlation_id  ties together one refresh of a view
    actor_id        the console user who triggered it
    source          where the records came from ("mirror", "snapshot")
    view            the derived view being computed
    trace_id        the engine invocation, when known
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any, Iterator
from uuid import UUID

_LOGGER_PREFIX = "fieldops"

CONTEXT_FIELDS = ("correlation_id", "actor_id", "source", "view", "trace_id")

_context: ContextVar[dict[str, str]] = ContextVar("fieldops_log_context", default={})


class LogContext:
    """Request-scoped fields merged into every log line."""

    @staticmethod
    def _check(fields: dict[str, Any]) -> dict[str, str]:
        unknown = set(fields) - set(CONTEXT_FIELDS)
        if unknown:
            raise TypeError(f"Unknown log context fields: {', '.join(sorted(unknown))}")
        return {k: v for k, v in fields.items() if v is not None}

    @classmethod
    def set(cls, **fields: str | None) -> None:
        """Update the given fields; None leaves a field as it was."""
        _context.set({**_context.get(), **cls._check(fields)})

    @classmethod
    def get_all(cls) -> dict[str, str]:
        current = _context.get()
        return {name: current[name] for name in CONTEXT_FIELDS if name in current}

    @classmethod
    def clear(cls) -> None:
        _context.set({})

    @classmethod
    @contextmanager
    def bind(cls, **fields: str | None) -> Iterator[type["LogContext"]]:
        """Set fields for the duration of a ``with`` block."""
        token = _context.set({**_context.get(), **cls._check(fields)})
        try:
            yield cls
        finally:
            _context.reset(token)


def _json_default(value: Any) -> Any:
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return repr(value)


# Attributes every LogRecord carries; anything else came from ``extra=``.
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    for name, value in vars(exc).items():
        if not name.startswith("_") and name != "code":
            fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for name, value in vars(record).items():
            if name not in _RECORD_ATTRS:
                payload.setdefault(name, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


def get_logger(name: str) -> logging.Logger:
    """Logger ``fieldops.<name>``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach a JSON handler to the ``fieldops`` logger.

    Only the first call has any effect; later calls (from the CLI, or a
    second service in the same process) keep the existing handler and level.
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    out = handler or logging.StreamHandler(stream or sys.stderr)
    out.setFormatter(StructuredFormatter())

    logger = logging.getLogger(_LOGGER_PREFIX)
    logger.setLevel(level)
    logger.propagate = False
    logger.addHandler(out)


def reset_logging() -> None:
    """Undo ``configure_logging``.  Test use only."""
    global _configured
    with _lock:
        _configured = False
    logger = logging.getLogger(_LOGGER_PREFIX)
    logger.handlers.clear()
    logger.setLevel(logging.WARNING)
    logger.propagate = True
