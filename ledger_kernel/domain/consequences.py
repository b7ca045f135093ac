"""
Deposit and withdrawal consequence codes.

Pure classification values produced by the validation pass
(``can_deposit`` / ``can_withdraw``). They are never stored. A non-success
consequence converts into the matching typed exception via
``into_result``.
"""

from __future__ import annotations

from enum import Enum

from ledger_kernel.exceptions import (
    BalanceOverflowError,
    IssuanceUnderflowError,
    NoFundsError,
    UnknownAssetError,
)


class DepositConsequence(str, Enum):
    """Outcome of checking whether a deposit can succeed."""

    SUCCESS = "success"
    UNKNOWN_ASSET = "unknown_asset"
    OVERFLOW = "overflow"

    @property
    def is_success(self) -> bool:
        return self is DepositConsequence.SUCCESS

    def into_result(self, asset_id: str, account_id: str, amount: int) -> None:
        """Raise the typed error for this consequence; return on SUCCESS."""
        if self is DepositConsequence.UNKNOWN_ASSET:
            raise UnknownAssetError(asset_id)
        if self is DepositConsequence.OVERFLOW:
            raise BalanceOverflowError(asset_id, account_id, amount)


class WithdrawConsequence(str, Enum):
    """Outcome of checking whether a withdrawal can succeed."""

    SUCCESS = "success"
    UNKNOWN_ASSET = "unknown_asset"
    UNDERFLOW = "underflow"
    NO_FUNDS = "no_funds"

    @property
    def is_success(self) -> bool:
        return self is WithdrawConsequence.SUCCESS

    def into_result(self, asset_id: str, account_id: str, amount: int) -> None:
        """Raise the typed error for this consequence; return on SUCCESS."""
        if self is WithdrawConsequence.UNKNOWN_ASSET:
            raise UnknownAssetError(asset_id)
        if self is WithdrawConsequence.UNDERFLOW:
            raise IssuanceUnderflowError(asset_id, account_id, amount)
        if self is WithdrawConsequence.NO_FUNDS:
            raise NoFundsError(asset_id, account_id, amount)
