"""Services for the ledger kernel (write side)."""

from ledger_kernel.services.asset_ledger import AssetLedger
from ledger_kernel.services.balance_store import BalanceStore
from ledger_kernel.services.genesis import load_genesis
from ledger_kernel.services.transfer_entrypoint import (
    TransferEntryPoint,
    TransferReceipt,
    TransferRequest,
)

__all__ = [
    "AssetLedger",
    "BalanceStore",
    "TransferEntryPoint",
    "TransferReceipt",
    "TransferRequest",
    "load_genesis",
]
