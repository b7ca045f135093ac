"""ORM models for the ledger's balance store."""

from ledger_kernel.models.asset import Asset
from ledger_kernel.models.balance import AccountBalance

__all__ = [
    "Asset",
    "AccountBalance",
]
