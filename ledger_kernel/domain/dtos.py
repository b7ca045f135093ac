"""
DTOs -- immutable records passed across the store boundary.

Responsibility:
    Plain frozen dataclasses returned by the BalanceStore and the
    selectors instead of ORM instances, and the issuance transforms the
    mutation engine applies to an AssetRecord.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace

from ledger_kernel.domain.amount import Amount, saturating_add, saturating_sub


@dataclass(frozen=True, slots=True)
class AssetRecord:
    """
    Per-asset totals.

    Contract:
        total_issuance equals the sum of all balances of the asset and
        account_count equals the number of accounts with a positive
        balance, at every externally observable point.
    """

    total_issuance: Amount = 0
    account_count: int = 0


@dataclass(frozen=True, slots=True)
class BalanceEntry:
    """One stored (asset, account) balance row."""

    asset_id: str
    account_id: str
    amount: Amount


# A pure transform applied to the AssetRecord inside a balance mutation.
# It may raise a LedgerKernelError to abort the mutation before any write.
IssuanceAdjust = Callable[[AssetRecord], AssetRecord]


def keep_issuance(record: AssetRecord) -> AssetRecord:
    """Leave issuance untouched (balance-only mutation)."""
    return record


def increase_issuance(amount: Amount) -> IssuanceAdjust:
    """Transform adding ``amount`` to total issuance, saturating."""

    def adjust(record: AssetRecord) -> AssetRecord:
        return replace(
            record, total_issuance=saturating_add(record.total_issuance, amount)
        )

    return adjust


def decrease_issuance(amount: Amount) -> IssuanceAdjust:
    """Transform subtracting ``amount`` from total issuance, saturating."""

    def adjust(record: AssetRecord) -> AssetRecord:
        return replace(
            record, total_issuance=saturating_sub(record.total_issuance, amount)
        )

    return adjust
