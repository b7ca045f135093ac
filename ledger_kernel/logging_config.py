"""
Structured JSON logging for the ledger kernel.

Every record is written as one JSON object per line::

    {"ts": "...", "level": "INFO", "logger": "ledger_kernel.services.asset_ledger",
     "message": "asset_issued", "operation": "mint", "asset_id": "DOT",
     "account_id": "alice", "amount": "1000"}

Call-scoped fields (correlation id, actor, asset, account, operation) live in
a single ContextVar and are merged into every line written while they are
bound.  Integers outside the IEEE-754 safe range are written as strings so
that JSON consumers never round a 256-bit amount.
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
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import fields, is_dataclass
from datetime import UTC, datetime
from enum import Enum
from types import MappingProxyType
from typing import Any
from uuid import UUID

_LOGGER_PREFIX = "ledger_kernel"

# ---------------------------------------------------------------------------
# Context propagation
# ---------------------------------------------------------------------------

_EMPTY: Mapping[str, str] = MappingProxyType({})
_context: ContextVar[Mapping[str, str]] = ContextVar("ledger_log_context", default=_EMPTY)


class LogContext:
    """
    Call-scoped log fields, safe across threads and asyncio tasks.

    The current mapping is immutable; every update installs a new one, so
    ``bind()`` can restore the previous state with a ContextVar token.
    """

    FIELDS = ("correlation_id", "actor_id", "asset_id", "account_id", "operation")

    @classmethod
    def _merged(cls, updates: dict[str, Any], strict: bool) -> Mapping[str, str]:
        merged = dict(_context.get())
        for name, value in updates.items():
            if name not in cls.FIELDS:
                if strict:
                    raise TypeError(f"unknown log context field: {name!r}")
                continue
            if value is not None:
                merged[name] = str(value)
        return MappingProxyType(merged)

    @classmethod
    def set(cls, **updates: Any) -> None:
        """Set fields for the rest of the current context. None values are skipped."""
        _context.set(cls._merged(updates, strict=True))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(_context.get())

    @classmethod
    def clear(cls) -> None:
        _context.set(_EMPTY)

    @classmethod
    @contextmanager
    def bind(cls, **updates: Any) -> Iterator[type["LogContext"]]:
        """Set fields for the duration of a ``with`` block; unknown names are ignored."""
        token = _context.set(cls._merged(updates, strict=False))
        try:
            yield cls
        finally:
            _context.reset(token)


# ---------------------------------------------------------------------------
# JSON Formatter
# ---------------------------------------------------------------------------

_MAX_SAFE_INT = 2**53 - 1

_RESERVED_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}


def _jsonable(value: Any) -> Any:
    """Convert a log value into something json.dumps writes losslessly."""
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, int):
        return value if -_MAX_SAFE_INT <= value <= _MAX_SAFE_INT else str(value)
    if isinstance(value, Enum):
        return _jsonable(value.value)
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: _jsonable(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Mapping):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(v) for v in value]
    return value


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    out: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        out["exc_code"] = code
    # LedgerKernelError subclasses keep their details as plain attributes
    for name, value in vars(exc).items():
        if not name.startswith("_") and name not in ("args", "code"):
            out[f"exc_{name}"] = value
    return out


class StructuredFormatter(logging.Formatter):
    """Envelope, then context fields, then ``extra=`` fields, then exception details."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(LogContext.get_all())
        for name, value in vars(record).items():
            if name not in _RESERVED_ATTRS and name not in payload:
                payload[name] = value

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps({k: _jsonable(v) for k, v in payload.items()}, default=str)


# ---------------------------------------------------------------------------
# Logger factory and initialization
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the ledger_kernel namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_installed: logging.Handler | None = None
_lock = threading.Lock()


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> logging.Handler:
    """
    Install the JSON handler on the ``ledger_kernel`` logger.

    Only the first call has an effect; later calls return the handler
    already installed. Hosts call this once at startup.
    """
    global _installed
    with _lock:
        if _installed is not None:
            return _installed
        h = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
        h.setFormatter(StructuredFormatter())
        root = logging.getLogger(_LOGGER_PREFIX)
        root.addHandler(h)
        root.setLevel(level)
        root.propagate = False
        _installed = h
        return h


def reset_logging() -> None:
    """Remove all ledger_kernel handlers and restore defaults. FOR TESTING ONLY."""
    global _installed
    with _lock:
        root = logging.getLogger(_LOGGER_PREFIX)
        for h in list(root.handlers):
            root.removeHandler(h)
        root.setLevel(logging.WARNING)
        root.propagate = True
        _installed = None
