"""
Module: ledger_kernel.models.asset
Responsibility: ORM persistence for per-asset totals -- one row per asset
    that has been created.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    ISSUANCE_CONSERVATION -- total_issuance equals the sum of the asset's
        AccountBalance rows at every committed state (enforced by
        AssetLedger, not this model).
    ACCOUNT_COUNT -- account_count equals the number of AccountBalance rows
        of the asset (enforced by AssetLedger).

Failure modes:
    - IntegrityError on INSERT of a duplicate asset_id (create_asset checks
      first and raises AssetAlreadyExistsError instead).
"""

from sqlalchemy import BigInteger, CheckConstraint, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase
from ledger_kernel.db.types import AmountString


class Asset(TrackedBase):
    """
    Asset record: total issuance and number of holding accounts.

    Rows are created by create_asset and never deleted.
    """

    __tablename__ = "assets"

    __table_args__ = (
        CheckConstraint("account_count >= 0", name="ck_asset_account_count"),
    )

    asset_id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
    )

    total_issuance: Mapped[int] = mapped_column(
        AmountString(),
        nullable=False,
        default=0,
    )

    account_count: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )

    def __repr__(self) -> str:
        return (
            f"<Asset {self.asset_id} issuance={self.total_issuance} "
            f"accounts={self.account_count}>"
        )
