"""Database layer - engine, base classes and column types."""

from ledger_kernel.db.base import Base, TrackedBase
from ledger_kernel.db.engine import LedgerDatabase, create_ledger_engine
from ledger_kernel.db.types import AmountString

__all__ = [
    "LedgerDatabase",
    "create_ledger_engine",
    "Base",
    "TrackedBase",
    "AmountString",
]
