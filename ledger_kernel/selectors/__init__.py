"""Selectors for the ledger kernel (read side)."""

from ledger_kernel.selectors.base import BaseSelector
from ledger_kernel.selectors.ledger_selector import (
    HolderBalance,
    InvariantReport,
    LedgerSelector,
)

__all__ = [
    "BaseSelector",
    "HolderBalance",
    "InvariantReport",
    "LedgerSelector",
]
