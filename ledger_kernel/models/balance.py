"""
Module: ledger_kernel.models.balance
Responsibility: ORM persistence for per-(asset, account) balances.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - A row exists only while the balance is strictly positive.  A missing
      row means a zero balance; the row is deleted when the balance returns
      to zero.
"""

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase
from ledger_kernel.db.types import AmountString


class AccountBalance(TrackedBase):
    """Balance of one account in one asset."""

    __tablename__ = "account_balances"

    __table_args__ = (
        Index("idx_account_balance_account", "account_id"),
    )

    asset_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("assets.asset_id"),
        primary_key=True,
    )

    account_id: Mapped[str] = mapped_column(
        String(128),
        primary_key=True,
    )

    amount: Mapped[int] = mapped_column(
        AmountString(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<AccountBalance {self.asset_id}/{self.account_id} {self.amount}>"
