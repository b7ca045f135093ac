"""
BalanceStore -- key-value access to asset records and account balances.

Responsibility:
    The storage contract the mutation engine is written against:

        get_asset(id) -> AssetRecord | None
        put_asset(id, record)
        contains_asset(id) -> bool
        get_balance(id, account) -> Amount      (zero if absent)
        put_balance(id, account, amount)
        remove_balance(id, account)

    plus ``atomic()``, which groups the writes of one logical operation so
    that they become visible together or not at all.

Architecture position:
    Kernel > Services.  Backed by the ORM models in ledger_kernel.models.
    Returns DTOs (AssetRecord, BalanceEntry), never ORM instances.

Invariants enforced:
    ATOMIC_MUTATION -- ``atomic()`` runs inside a SAVEPOINT; an exception
        rolls back every write made inside it and re-raises.
    A zero balance is never stored: ``put_balance(..., 0)`` deletes the row.

Failure modes:
    - UnknownAssetError from put_balance when the asset row is missing.
"""

from __future__ import annotations

from collections.abc import Generator, Iterator
from contextlib import contextmanager

from sqlalchemy import func, select

from ledger_kernel.domain.amount import Amount
from ledger_kernel.domain.dtos import AssetRecord, BalanceEntry
from ledger_kernel.exceptions import UnknownAssetError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.asset import Asset
from ledger_kernel.models.balance import AccountBalance
from ledger_kernel.services.base import BaseService

logger = get_logger("services.balance_store")


class BalanceStore(BaseService):
    """SQLAlchemy-backed map (assets) and double map (balances)."""

    # -- asset map ----------------------------------------------------------

    def get_asset(self, asset_id: str) -> AssetRecord | None:
        row = self.session.get(Asset, asset_id)
        if row is None:
            return None
        return AssetRecord(
            total_issuance=row.total_issuance,
            account_count=row.account_count,
        )

    def put_asset(self, asset_id: str, record: AssetRecord) -> None:
        row = self.session.get(Asset, asset_id)
        if row is None:
            self.session.add(
                Asset(
                    asset_id=asset_id,
                    total_issuance=record.total_issuance,
                    account_count=record.account_count,
                )
            )
        else:
            row.total_issuance = record.total_issuance
            row.account_count = record.account_count
        self.session.flush()

    def contains_asset(self, asset_id: str) -> bool:
        return self.session.get(Asset, asset_id) is not None

    def asset_ids(self) -> list[str]:
        """All asset ids, sorted."""
        stmt = select(Asset.asset_id).order_by(Asset.asset_id)
        return list(self.session.execute(stmt).scalars())

    def asset_count(self) -> int:
        stmt = select(func.count()).select_from(Asset)
        return self.session.execute(stmt).scalar_one()

    # -- balance double map -------------------------------------------------

    def get_balance(self, asset_id: str, account_id: str) -> Amount:
        row = self.session.get(AccountBalance, (asset_id, account_id))
        return 0 if row is None else row.amount

    def put_balance(self, asset_id: str, account_id: str, amount: Amount) -> None:
        if amount == 0:
            self.remove_balance(asset_id, account_id)
            return
        if not self.contains_asset(asset_id):
            raise UnknownAssetError(asset_id)
        row = self.session.get(AccountBalance, (asset_id, account_id))
        if row is None:
            self.session.add(
                AccountBalance(
                    asset_id=asset_id,
                    account_id=account_id,
                    amount=amount,
                )
            )
        else:
            row.amount = amount
        self.session.flush()

    def remove_balance(self, asset_id: str, account_id: str) -> None:
        row = self.session.get(AccountBalance, (asset_id, account_id))
        if row is not None:
            self.session.delete(row)
            self.session.flush()

    def iter_balances(self, asset_id: str) -> Iterator[BalanceEntry]:
        """Stored (nonzero) balances of an asset, ordered by account id."""
        stmt = (
            select(AccountBalance)
            .where(AccountBalance.asset_id == asset_id)
            .order_by(AccountBalance.account_id)
        )
        for row in self.session.execute(stmt).scalars():
            yield BalanceEntry(
                asset_id=row.asset_id,
                account_id=row.account_id,
                amount=row.amount,
            )

    # -- write grouping -----------------------------------------------------

    @contextmanager
    def atomic(self) -> Generator[BalanceStore, None, None]:
        """
        Group writes into one all-or-nothing unit.

        Usage:
            with store.atomic():
                store.put_asset(...)
                store.put_balance(...)
        """
        savepoint = self.session.begin_nested()
        try:
            yield self
        except Exception:
            savepoint.rollback()
            logger.debug("store_write_group_rolled_back")
            raise
        savepoint.commit()
