"""
Structured JSON logging for the stock kernel.

Every record under the ``stock_kernel`` logger is rendered as one JSON
object per line.  Request-scoped fields (organization, operation, ...)
live in ``LogContext`` and are stamped onto every record emitted while
they are bound; ``extra=`` keys passed at the call site are copied in as
top-level fields.

Usage::

    logger = get_logger("services.movement_engine")
    with LogContext.bind(organization_id=org_id, operation="transfer_stock"):
        logger.info("transfer_created", extra={"transfer_id": str(tid)})
"""

from __future__ import annotations

import json
import logging
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any, TextIO
from uuid import UUID

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

ROOT_LOGGER_NAME = "stock_kernel"

CONTEXT_FIELDS = (
    "correlation_id",
    "organization_id",
    "operation",
    "reference_id",
    "actor_id",
)

_context_vars: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"stock_log_{name}", default=None) for name in CONTEXT_FIELDS
}


class LogContext:
    """Request-scoped log fields, safe across threads and tasks."""

    @staticmethod
    def set(**fields: Any) -> None:
        """Update the given fields; ``None`` values leave a field untouched."""
        for name, value in fields.items():
            if value is not None:
                _context_vars[name].set(str(value))

    @staticmethod
    def get_all() -> dict[str, str]:
        return {
            name: var.get()
            for name, var in _context_vars.items()
            if var.get() is not None
        }

    @staticmethod
    def clear() -> None:
        for var in _context_vars.values():
            var.set(None)

    @staticmethod
    @contextmanager
    def bind(**fields: Any) -> Iterator[type[LogContext]]:
        """Set fields for the duration of a ``with`` block, then restore them."""
        tokens = [
            (_context_vars[name], _context_vars[name].set(str(value)))
            for name, value in fields.items()
            if value is not None and name in _context_vars
        ]
        try:
            yield LogContext
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


# LogRecord attributes that are never copied into the payload as extras.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(value: Any) -> Any:
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    # StockKernelError subclasses keep their structured details as attributes.
    for name, value in vars(exc).items():
        if name != "code" and not name.startswith("_"):
            fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """Render a record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RESERVED_ATTRS and key not in payload
        )

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


def get_logger(name: str) -> logging.Logger:
    """Return ``stock_kernel.<name>``."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


_state_lock = threading.Lock()
_configured = False


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: TextIO | None = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach a JSON handler to the ``stock_kernel`` logger.

    Only the first call has an effect until ``reset_logging()`` runs.  The
    hierarchy does not propagate to the root logger, so host applications
    keep their own formatting.
    """
    global _configured
    with _state_lock:
        if _configured:
            return
        _configured = True

    if handler is None:
        handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(StructuredFormatter())

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False
    logger.addHandler(handler)


def reset_logging() -> None:
    """Detach handlers and allow ``configure_logging()`` again (tests)."""
    global _configured
    with _state_lock:
        _configured = False
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.handlers.clear()
    logger.setLevel(logging.WARNING)
