"""
Module: ledger_kernel.selectors.ledger_selector
Responsibility: Holder listings, balance sums and invariant verification
    over the stored asset records and balances.
Architecture position: Kernel > Selectors.  Reads models directly; no
    service dependency.

Invariants checked (never enforced -- this is the audit side):
    ISSUANCE_CONSERVATION -- total_issuance == sum of stored balances.
    ACCOUNT_COUNT -- account_count == number of stored balance rows.
    NO_NEGATIVE_BALANCES -- no stored balance is zero or negative.

    Outstanding Debt/Credit values legitimately break conservation until
    their scope closes; verify only between operations.

Failure modes:
    - UnknownAssetError from verify_asset for an asset with no record.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ledger_kernel.domain.amount import Amount
from ledger_kernel.exceptions import UnknownAssetError
from ledger_kernel.models.asset import Asset
from ledger_kernel.models.balance import AccountBalance
from ledger_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class HolderBalance:
    """One account holding an asset."""

    account_id: str
    amount: Amount


@dataclass(frozen=True)
class InvariantReport:
    """Result of checking one asset's stored state."""

    asset_id: str
    total_issuance: Amount
    balance_sum: Amount
    account_count: int
    holder_count: int
    nonpositive_balances: tuple[str, ...] = ()

    @property
    def issuance_matches(self) -> bool:
        return self.total_issuance == self.balance_sum

    @property
    def account_count_matches(self) -> bool:
        return self.account_count == self.holder_count

    @property
    def is_valid(self) -> bool:
        return (
            self.issuance_matches
            and self.account_count_matches
            and not self.nonpositive_balances
        )

    def violations(self) -> list[str]:
        problems = []
        if not self.issuance_matches:
            problems.append(
                f"total_issuance {self.total_issuance} != "
                f"sum of balances {self.balance_sum}"
            )
        if not self.account_count_matches:
            problems.append(
                f"account_count {self.account_count} != "
                f"holders {self.holder_count}"
            )
        for account_id in self.nonpositive_balances:
            problems.append(f"non-positive stored balance for {account_id}")
        return problems


class LedgerSelector(BaseSelector[AccountBalance]):
    """
    Selector for asset holders and ledger integrity checks.

    Guarantees:
        - Amounts are summed in Python; stored values are 256-bit strings
          and are not summable in SQL.
        - snapshot_hash() is deterministic for a given stored state.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    def holders(self, asset_id: str) -> list[HolderBalance]:
        """Accounts with a stored balance in ``asset_id``, by account id."""
        stmt = (
            select(AccountBalance.account_id, AccountBalance.amount)
            .where(AccountBalance.asset_id == asset_id)
            .order_by(AccountBalance.account_id)
        )
        return [
            HolderBalance(account_id=account_id, amount=amount)
            for account_id, amount in self.session.execute(stmt).all()
        ]

    def sum_balances(self, asset_id: str) -> Amount:
        return sum(h.amount for h in self.holders(asset_id))

    def count_holders(self, asset_id: str) -> int:
        stmt = (
            select(func.count())
            .select_from(AccountBalance)
            .where(AccountBalance.asset_id == asset_id)
        )
        return self.session.execute(stmt).scalar_one()

    def account_assets(self, account_id: str) -> dict[str, Amount]:
        """Every asset ``account_id`` holds, with its balance."""
        stmt = (
            select(AccountBalance.asset_id, AccountBalance.amount)
            .where(AccountBalance.account_id == account_id)
            .order_by(AccountBalance.asset_id)
        )
        return dict(self.session.execute(stmt).all())

    def verify_asset(self, asset_id: str) -> InvariantReport:
        asset = self.session.get(Asset, asset_id)
        if asset is None:
            raise UnknownAssetError(asset_id)
        holders = self.holders(asset_id)
        return InvariantReport(
            asset_id=asset_id,
            total_issuance=asset.total_issuance,
            balance_sum=sum(h.amount for h in holders),
            account_count=asset.account_count,
            holder_count=len(holders),
            nonpositive_balances=tuple(
                h.account_id for h in holders if h.amount <= 0
            ),
        )

    def verify_all(self) -> list[InvariantReport]:
        stmt = select(Asset.asset_id).order_by(Asset.asset_id)
        return [
            self.verify_asset(asset_id)
            for asset_id in self.session.execute(stmt).scalars()
        ]

    def snapshot_hash(self, asset_id: str) -> str:
        """
        SHA-256 over the asset record and its sorted balances.

        Two stores with the same state for ``asset_id`` hash equally.
        """
        asset = self.session.get(Asset, asset_id)
        if asset is None:
            raise UnknownAssetError(asset_id)
        digest = hashlib.sha256()
        digest.update(
            f"{asset_id}|{asset.total_issuance}|{asset.account_count}\n".encode()
        )
        for holder in self.holders(asset_id):
            digest.update(f"{holder.account_id}|{holder.amount}\n".encode())
        return digest.hexdigest()
