"""
Structured JSON logging for the expense kernel.

Every record under the ``expense_kernel`` logger becomes one JSON line::

    {"ts": ..., "level": "INFO", "logger": "expense_kernel.services.expense_workflow",
     "message": "expense_created", "actor_id": "3", "expense_id": "101", "amount": "40.00"}

Request-scoped ids (actor, expense, correlation, request) live in
``LogContext`` and are merged into every record logged inside
``LogContext.bind(...)``.  Decimals, dates and enums in ``extra=`` are
rendered as strings so amounts keep their scale.
"""

import json
import logging
import sys
import threading
from collections.abc import Mapping
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any

_EMPTY: Mapping[str, str] = MappingProxyType({})

_context: ContextVar[Mapping[str, str]] = ContextVar("expense_log_context", default=_EMPTY)


class LogContext:
    """Request-scoped fields attached to every record.  Safe across threads and tasks."""

    FIELDS = frozenset({"correlation_id", "request_id", "actor_id", "expense_id"})

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(_context.get())

    @classmethod
    def clear(cls) -> None:
        _context.set(_EMPTY)

    @classmethod
    def bind(cls, **fields: Any) -> "_Binding":
        """Overlay ``fields`` for the duration of a ``with`` block.

        Values are stringified so integer ids can be passed directly.  ``None``
        values and names outside ``FIELDS`` are ignored.
        """
        return _Binding(
            {k: str(v) for k, v in fields.items() if v is not None and k in cls.FIELDS}
        )


class _Binding:
    def __init__(self, fields: dict[str, str]):
        self._fields = fields
        self._token = None

    def __enter__(self) -> type[LogContext]:
        merged = {**_context.get(), **self._fields}
        self._token = _context.set(MappingProxyType(merged))
        return LogContext

    def __exit__(self, *exc: Any) -> None:
        _context.reset(self._token)


# Attributes every LogRecord carries; anything else arrived through ``extra=``.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "taskName"}


def _to_json(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: base keys, bound context, then extras."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context.get(),
        }
        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and key not in payload
        )
        if record.exc_info and record.exc_info[1] is not None:
            payload.update(self._exception_fields(record))
        return json.dumps(payload, default=_to_json)

    def _exception_fields(self, record: logging.LogRecord) -> dict[str, Any]:
        exc = record.exc_info[1]
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        code = getattr(exc, "code", None)
        if code is not None:
            fields["exc_code"] = code
        # Kernel errors keep their context as public attributes.
        fields.update(
            (f"exc_{name}", value)
            for name, value in vars(exc).items()
            if not name.startswith("_")
        )
        fields["traceback"] = self.formatException(record.exc_info)
        return fields


_ROOT = "expense_kernel"


def get_logger(name: str) -> logging.Logger:
    """Logger for ``expense_kernel.<name>``."""
    return logging.getLogger(f"{_ROOT}.{name}")


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Install the JSON handler on the ``expense_kernel`` logger.  Later calls are no-ops."""
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    root = logging.getLogger(_ROOT)
    root.setLevel(level)
    root.propagate = False
    installed = handler or logging.StreamHandler(stream or sys.stderr)
    installed.setFormatter(StructuredFormatter())
    root.addHandler(installed)


def reset_logging() -> None:
    """Undo ``configure_logging``.  Tests only."""
    global _configured
    with _lock:
        _configured = False
    root = logging.getLogger(_ROOT)
    root.handlers.clear()
    root.setLevel(logging.WARNING)
