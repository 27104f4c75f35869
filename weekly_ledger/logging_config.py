"""
Structured JSON logging for the weekly ledger.

Every record under the ``weekly_ledger`` logger is written as one JSON line:

    {"ts": "...", "level": "INFO", "logger": "weekly_ledger.services.ledger_store",
     "message": "write_conflict_retry", "operation": "merge_upsert",
     "party_id": "...", "week_key": "...:2025-W45", "attempt": 2}

Three sources are merged into a line, in this order:

* the fixed header (ts, level, logger, message);
* the request-scoped fields held in ``LogContext`` (operation, actor,
  party and week key of the write being performed);
* the ``extra={...}`` mapping given at the call site.

When an exception is attached, its class name, message, ``code`` and public
attributes (``week_key``, ``attempts``, ``candidates`` ...) are flattened
into ``exc_*`` fields so conflicts and lookup misses can be queried without
parsing tracebacks.
"""

from __future__ import annotations

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
from contextvars import ContextVar, Token
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Iterator

ROOT_LOGGER_NAME = "weekly_ledger"


class LogContext:
    """Request-scoped log fields, safe across threads and asyncio tasks."""

    FIELDS: tuple[str, ...] = (
        "request_id",
        "actor_id",
        "operation",
        "party_id",
        "week_key",
    )

    _vars: dict[str, ContextVar[str | None]] = {
        name: ContextVar(f"weekly_ledger_log_{name}", default=None) for name in FIELDS
    }

    @classmethod
    def set(cls, **fields: str | None) -> None:
        """Set the given fields; None leaves a field unchanged."""
        for name, value in fields.items():
            if value is not None:
                cls._var(name).set(value)

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return {
            name: var.get() for name, var in cls._vars.items() if var.get() is not None
        }

    @classmethod
    def clear(cls) -> None:
        for var in cls._vars.values():
            var.set(None)

    @classmethod
    @contextmanager
    def bind(cls, **fields: str | None) -> Iterator[type[LogContext]]:
        """Set fields for the duration of a block, then restore them."""
        tokens: list[tuple[ContextVar[str | None], Token]] = []
        for name, value in fields.items():
            if value is not None:
                var = cls._var(name)
                tokens.append((var, var.set(value)))
        try:
            yield cls
        finally:
            for var, token in reversed(tokens):
                var.reset(token)

    @classmethod
    def _var(cls, name: str) -> ContextVar[str | None]:
        try:
            return cls._vars[name]
        except KeyError:
            raise TypeError(f"Unknown log context field: {name}") from None


# Attributes every LogRecord carries; anything else came in through extra=.
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _to_json(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    # UUID, Decimal and anything else unknown
    return str(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    for name, value in vars(exc).items():
        if not name.startswith("_") and name not in ("args", "code"):
            fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        line: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for name, value in vars(record).items():
            if name not in _RECORD_ATTRS:
                line.setdefault(name, value)

        if record.exc_info and record.exc_info[1] is not None:
            line.update(_exception_fields(record.exc_info[1]))
            line["traceback"] = self.formatException(record.exc_info)

        return json.dumps(line, default=_to_json)


def get_logger(name: str) -> logging.Logger:
    """Child of the ``weekly_ledger`` logger, e.g. ``get_logger("services.annotation")``."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


_handler: logging.Handler | None = None
_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach a JSON handler to the ``weekly_ledger`` logger.

    Only the first call has any effect, so library entry points (engine
    setup, the gateway) can call it unconditionally.
    """
    global _handler
    with _lock:
        if _handler is not None:
            return
        target = _handler = handler or logging.StreamHandler(stream or sys.stderr)

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level)
    root.propagate = False
    target.setFormatter(StructuredFormatter())
    root.addHandler(target)


def reset_logging() -> None:
    """Undo configure_logging. FOR TESTING ONLY."""
    global _handler
    with _lock:
        attached, _handler = _handler, None
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if attached is not None:
        root.removeHandler(attached)
    root.setLevel(logging.WARNING)
