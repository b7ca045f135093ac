"""
AssetLedger -- the balance mutation engine.

Responsibility:
    Creates assets and applies deposits, withdrawals, transfers, mints and
    burns against the BalanceStore while keeping total issuance equal to
    the sum of balances and account_count equal to the number of holders.
    It is the single concrete implementation of the Inspect, Mutate,
    Unbalanced and Balanced capabilities.

Architecture position:
    Kernel > Services.  Uses BalanceStore for all reads/writes, an
    injected AccountLifecycle for zero/nonzero transitions and an injected
    EventSink for notifications.

Invariants enforced:
    ATOMIC_MUTATION -- every public mutation runs a pure validation pass
        (can_deposit / can_withdraw) first and only then writes, inside one
        BalanceStore.atomic() group.  A failed call changes nothing.
    ISSUANCE_CONSERVATION -- mint/burn move issuance together with the
        balance; transfer leaves it unchanged; increase_balance /
        decrease_balance change issuance only through the caller-supplied
        issuance_adjust transform.
    ACCOUNT_COUNT -- account_count is incremented on every zero->nonzero
        transition and decremented on every nonzero->zero transition.

Failure modes:
    - UnknownAssetError, BalanceOverflowError, IssuanceUnderflowError,
      NoFundsError from the validation pass.
    - AssetAlreadyExistsError from create_asset.
    - InvalidAmountError for amounts outside [0, 2**256 - 1].

Operation summary:

    Operation          | issuance       | emits
    -------------------|----------------|-------------
    create_asset       | set to 0       | AssetCreated
    mint               | += amount      | Issued
    burn               | -= amount      | Burned
    transfer           | unchanged      | Transferred
    increase_balance   | issuance_adjust| (none)
    decrease_balance   | issuance_adjust| (none)
    set_balance        | unchanged      | (none)
    set_total_issuance | set            | (none)
"""

from __future__ import annotations

from dataclasses import replace

from sqlalchemy.orm import Session

from ledger_kernel.domain.accounts import AccountLifecycle, NullAccountLifecycle
from ledger_kernel.domain.amount import (
    MAX_ACCOUNT_COUNT,
    Amount,
    checked_add,
    checked_sub,
    saturating_sub,
    validate_amount,
)
from ledger_kernel.domain.capabilities import Balanced, Mutate
from ledger_kernel.domain.consequences import DepositConsequence, WithdrawConsequence
from ledger_kernel.domain.dtos import (
    AssetRecord,
    IssuanceAdjust,
    decrease_issuance,
    increase_issuance,
    keep_issuance,
)
from ledger_kernel.domain.events import (
    AssetCreated,
    Burned,
    EventSink,
    Issued,
    LedgerEvent,
    LoggingEventSink,
    Transferred,
)
from ledger_kernel.exceptions import (
    AssetAlreadyExistsError,
    BalanceOverflowError,
    UnknownAssetError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.services.balance_store import BalanceStore
from ledger_kernel.services.base import BaseService

logger = get_logger("services.asset_ledger")

MAX_ASSET_ID_LENGTH = 64


class AssetLedger(BaseService, Mutate, Balanced):
    """
    Multi-asset ledger over one SQLAlchemy session.

    Contract:
        All writes happen inside the caller's transaction; the ledger
        never commits.  Lifecycle hooks and events fire after the write
        group of an operation has succeeded.
    """

    def __init__(
        self,
        session: Session,
        events: EventSink | None = None,
        accounts: AccountLifecycle | None = None,
    ):
        """
        Args:
            session: SQLAlchemy session owning the transaction.
            events: Sink for ledger notifications. Defaults to a
                structured-log sink.
            accounts: Account reference subsystem. Defaults to a no-op.
        """
        BaseService.__init__(self, session)
        Balanced.__init__(self)
        self.store = BalanceStore(session)
        self._events = events or LoggingEventSink()
        self._accounts = accounts or NullAccountLifecycle()

    # =========================================================================
    # Assets
    # =========================================================================

    def create_asset(self, asset_id: str) -> None:
        """
        Create an asset with zero issuance and no holders.

        Raises:
            AssetAlreadyExistsError: If the asset already has a record.
            ValueError: If asset_id is empty or longer than 64 characters.
        """
        if not asset_id or not isinstance(asset_id, str) or len(asset_id) > MAX_ASSET_ID_LENGTH:
            raise ValueError(
                f"Asset id must be a non-empty string of at most "
                f"{MAX_ASSET_ID_LENGTH} characters, got {asset_id!r}"
            )
        with LogContext.bind(operation="create_asset", asset_id=asset_id):
            if self.store.contains_asset(asset_id):
                logger.info("asset_create_rejected", extra={"error_code": AssetAlreadyExistsError.code})
                raise AssetAlreadyExistsError(asset_id)
            with self.store.atomic():
                self.store.put_asset(asset_id, AssetRecord())
            logger.info("asset_created")
            self._emit(AssetCreated(asset_id))

    def asset_exists(self, asset_id: str) -> bool:
        return self.store.contains_asset(asset_id)

    def asset_details(self, asset_id: str) -> AssetRecord:
        """
        Strict asset lookup.

        Raises:
            UnknownAssetError: If the asset has no record.
        """
        record = self.store.get_asset(asset_id)
        if record is None:
            raise UnknownAssetError(asset_id)
        return record

    def account_count(self, asset_id: str) -> int:
        return self.asset_details(asset_id).account_count

    # =========================================================================
    # Inspect
    # =========================================================================

    def balance(self, asset_id: str, account_id: str) -> Amount:
        return self.store.get_balance(asset_id, account_id)

    def total_issuance(self, asset_id: str) -> Amount:
        """Total issuance; zero for an unknown asset (see asset_details)."""
        record = self.store.get_asset(asset_id)
        return 0 if record is None else record.total_issuance

    def can_deposit(
        self, asset_id: str, account_id: str, amount: Amount
    ) -> DepositConsequence:
        """Whether ``amount`` could be credited to ``account_id``. Pure."""
        validate_amount(amount)
        record = self.store.get_asset(asset_id)
        if record is None:
            return DepositConsequence.UNKNOWN_ASSET
        if checked_add(record.total_issuance, amount) is None:
            return DepositConsequence.OVERFLOW

        balance = self.store.get_balance(asset_id, account_id)
        if balance == 0:
            if checked_add(record.account_count, 1, MAX_ACCOUNT_COUNT) is None:
                return DepositConsequence.OVERFLOW
        if checked_add(balance, amount) is None:
            return DepositConsequence.OVERFLOW
        return DepositConsequence.SUCCESS

    def can_withdraw(
        self, asset_id: str, account_id: str, amount: Amount
    ) -> WithdrawConsequence:
        """Whether ``amount`` could be debited from ``account_id``. Pure."""
        validate_amount(amount)
        record = self.store.get_asset(asset_id)
        if record is None:
            return WithdrawConsequence.UNKNOWN_ASSET
        if checked_sub(record.total_issuance, amount) is None:
            return WithdrawConsequence.UNDERFLOW

        balance = self.store.get_balance(asset_id, account_id)
        if checked_sub(balance, amount) is None:
            return WithdrawConsequence.NO_FUNDS
        return WithdrawConsequence.SUCCESS

    # =========================================================================
    # Balance mutation
    # =========================================================================

    def increase_balance(
        self,
        asset_id: str,
        account_id: str,
        amount: Amount,
        issuance_adjust: IssuanceAdjust = keep_issuance,
    ) -> Amount:
        """
        Credit ``amount`` to ``account_id``.

        Issuance changes only as ``issuance_adjust`` says; the default
        leaves it untouched (the Unbalanced behaviour).  Zero is a no-op.

        Returns:
            The amount credited.
        """
        validate_amount(amount)
        if amount == 0:
            return 0
        self._check_deposit(asset_id, account_id, amount)

        old_balance = self.store.get_balance(asset_id, account_id)
        created = old_balance == 0
        with self.store.atomic():
            record = issuance_adjust(self.store.get_asset(asset_id))
            if created:
                record = replace(record, account_count=record.account_count + 1)
            self.store.put_asset(asset_id, record)
            self.store.put_balance(asset_id, account_id, old_balance + amount)

        if created:
            self._accounts.on_account_created(account_id)
        logger.debug(
            "balance_increased",
            extra={"amount": str(amount), "target_account": account_id},
        )
        return amount

    def decrease_balance(
        self,
        asset_id: str,
        account_id: str,
        amount: Amount,
        issuance_adjust: IssuanceAdjust = keep_issuance,
    ) -> Amount:
        """
        Debit ``amount`` from ``account_id``.

        Removes the balance row when it reaches zero.  Zero is a no-op.

        Returns:
            The amount debited.
        """
        validate_amount(amount)
        if amount == 0:
            return 0
        self._check_withdraw(asset_id, account_id, amount)

        new_balance = self.store.get_balance(asset_id, account_id) - amount
        removed = new_balance == 0
        with self.store.atomic():
            record = issuance_adjust(self.store.get_asset(asset_id))
            if removed:
                record = replace(
                    record, account_count=saturating_sub(record.account_count, 1)
                )
            self.store.put_asset(asset_id, record)
            self.store.put_balance(asset_id, account_id, new_balance)

        if removed:
            self._accounts.on_account_removed(account_id)
        logger.debug(
            "balance_decreased",
            extra={"amount": str(amount), "target_account": account_id},
        )
        return amount

    # =========================================================================
    # Mutate
    # =========================================================================

    def mint(self, asset_id: str, account_id: str, amount: Amount) -> None:
        """Create ``amount`` new value in ``account_id``."""
        with LogContext.bind(operation="mint", asset_id=asset_id, account_id=account_id):
            self.increase_balance(
                asset_id, account_id, amount, increase_issuance(amount)
            )
            logger.info("asset_issued", extra={"amount": str(amount)})
            self._emit(Issued(asset_id, account_id, amount))

    def burn(self, asset_id: str, account_id: str, amount: Amount) -> None:
        """Destroy ``amount`` of value held by ``account_id``."""
        with LogContext.bind(operation="burn", asset_id=asset_id, account_id=account_id):
            self.decrease_balance(
                asset_id, account_id, amount, decrease_issuance(amount)
            )
            logger.info("asset_burned", extra={"amount": str(amount)})
            self._emit(Burned(asset_id, account_id, amount))

    def transfer(
        self, asset_id: str, source: str, dest: str, amount: Amount
    ) -> None:
        """
        Move ``amount`` from ``source`` to ``dest``.

        Zero amounts and self-transfers change nothing but still emit
        Transferred.

        Raises:
            UnknownAssetError: If the asset has no record, even for zero.
        """
        with LogContext.bind(operation="transfer", asset_id=asset_id, account_id=source):
            validate_amount(amount)
            if not self.store.contains_asset(asset_id):
                logger.info("transfer_rejected", extra={"error_code": UnknownAssetError.code})
                raise UnknownAssetError(asset_id)

            if amount != 0 and source != dest:
                self._move(asset_id, source, dest, amount)

            logger.info(
                "asset_transferred",
                extra={"dest": dest, "amount": str(amount)},
            )
            self._emit(Transferred(asset_id, source, dest, amount))

    def _move(self, asset_id: str, source: str, dest: str, amount: Amount) -> None:
        self._check_withdraw(asset_id, source, amount)
        self._check_deposit(asset_id, dest, amount)

        source_balance = self.store.get_balance(asset_id, source) - amount
        dest_before = self.store.get_balance(asset_id, dest)
        source_removed = source_balance == 0
        dest_created = dest_before == 0

        with self.store.atomic():
            record = self.store.get_asset(asset_id)
            count = record.account_count
            if dest_created:
                count += 1
            if source_removed:
                count = saturating_sub(count, 1)
            self.store.put_asset(asset_id, replace(record, account_count=count))
            self.store.put_balance(asset_id, dest, dest_before + amount)
            self.store.put_balance(asset_id, source, source_balance)

        if dest_created:
            self._accounts.on_account_created(dest)
        if source_removed:
            self._accounts.on_account_removed(source)

    # =========================================================================
    # Unbalanced
    # =========================================================================

    def set_balance(self, asset_id: str, account_id: str, amount: Amount) -> None:
        """
        Set the balance of ``account_id`` without touching issuance.

        Raw write: issuance is not consulted. account_count and the
        lifecycle hooks still follow the zero/nonzero transition.

        Raises:
            UnknownAssetError: If the asset has no record.
            BalanceOverflowError: If a new holder would overflow
                account_count.
        """
        validate_amount(amount)
        record = self.store.get_asset(asset_id)
        if record is None:
            raise UnknownAssetError(asset_id)
        current = self.store.get_balance(asset_id, account_id)
        if amount == current:
            return

        created = current == 0
        removed = amount == 0
        count = record.account_count
        if created:
            count = checked_add(count, 1, MAX_ACCOUNT_COUNT)
            if count is None:
                raise BalanceOverflowError(asset_id, account_id, amount)
        elif removed:
            count = saturating_sub(count, 1)

        with self.store.atomic():
            self.store.put_asset(asset_id, replace(record, account_count=count))
            self.store.put_balance(asset_id, account_id, amount)

        if created:
            self._accounts.on_account_created(account_id)
        elif removed:
            self._accounts.on_account_removed(account_id)

    def set_total_issuance(self, asset_id: str, amount: Amount) -> None:
        validate_amount(amount)
        record = self.store.get_asset(asset_id)
        if record is None:
            logger.warning(
                "set_total_issuance_unknown_asset",
                extra={"target_asset": asset_id},
            )
            return
        with self.store.atomic():
            self.store.put_asset(asset_id, replace(record, total_issuance=amount))

    # =========================================================================
    # Internals
    # =========================================================================

    def _check_deposit(self, asset_id: str, account_id: str, amount: Amount) -> None:
        consequence = self.can_deposit(asset_id, account_id, amount)
        if not consequence.is_success:
            logger.info(
                "deposit_check_failed",
                extra={"consequence": consequence.value, "target_account": account_id},
            )
        consequence.into_result(asset_id, account_id, amount)

    def _check_withdraw(self, asset_id: str, account_id: str, amount: Amount) -> None:
        consequence = self.can_withdraw(asset_id, account_id, amount)
        if not consequence.is_success:
            logger.info(
                "withdraw_check_failed",
                extra={"consequence": consequence.value, "target_account": account_id},
            )
        consequence.into_result(asset_id, account_id, amount)

    def _emit(self, event: LedgerEvent) -> None:
        self._events.emit(event)
