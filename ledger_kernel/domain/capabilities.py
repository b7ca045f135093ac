"""
Capability interfaces -- the surfaces through which callers use a ledger.

Responsibility:
    Declares the four capability sets as abstract interfaces:

        Inspect     read balances/issuance, pre-flight deposits/withdrawals
        Mutate      mint, burn, transfer (issuance-aware, emit events)
        Unbalanced  raw balance and issuance setters; increase/decrease
                    change balances only and leave issuance to the caller
        Balanced    Debt/Credit accounting built entirely on Unbalanced

    There is one concrete implementation, AssetLedger
    (ledger_kernel.services.asset_ledger). Callers should depend on the
    narrowest interface they need.

Architecture position:
    Kernel > Domain. No I/O; concrete storage lives in services/.

Invariants enforced:
    IMBALANCE_FINALIZATION -- Balanced.deposit/withdraw refuse to run
    without an open imbalance_scope(), so no Debt/Credit can exist
    outside a scope that will finalize it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager

from ledger_kernel.domain.amount import Amount, checked_add, validate_amount
from ledger_kernel.domain.consequences import DepositConsequence, WithdrawConsequence
from ledger_kernel.domain.imbalance import (
    Credit,
    Debt,
    ImbalanceScope,
    OffsetOutcome,
    SettlementResult,
)
from ledger_kernel.exceptions import (
    AssetError,
    AssetMismatchError,
    BalanceError,
    BalanceOverflowError,
    ImbalanceContractError,
    NoFundsError,
    NoImbalanceScopeError,
    PolarityError,
)
from ledger_kernel.logging_config import get_logger

logger = get_logger("domain.capabilities")


class Inspect(ABC):
    """Read-only view of a multi-asset ledger."""

    @abstractmethod
    def balance(self, asset_id: str, account_id: str) -> Amount:
        """Balance of ``account_id`` in ``asset_id``; zero if none."""
        ...

    @abstractmethod
    def total_issuance(self, asset_id: str) -> Amount:
        """Total issuance of ``asset_id``."""
        ...

    @abstractmethod
    def can_deposit(
        self, asset_id: str, account_id: str, amount: Amount
    ) -> DepositConsequence:
        ...

    @abstractmethod
    def can_withdraw(
        self, asset_id: str, account_id: str, amount: Amount
    ) -> WithdrawConsequence:
        ...


class Mutate(Inspect):
    """Issuance-aware mutations."""

    @abstractmethod
    def mint(self, asset_id: str, account_id: str, amount: Amount) -> None:
        ...

    @abstractmethod
    def burn(self, asset_id: str, account_id: str, amount: Amount) -> None:
        ...

    @abstractmethod
    def transfer(
        self, asset_id: str, source: str, dest: str, amount: Amount
    ) -> None:
        ...


class Unbalanced(Inspect):
    """
    Raw setters that may break the issuance invariant.

    Only the Balanced layer should call these directly; it pairs every
    balance change with a Debt/Credit that restores the invariant.
    """

    @abstractmethod
    def set_balance(self, asset_id: str, account_id: str, amount: Amount) -> None:
        """Set the balance of ``account_id`` to ``amount``."""
        ...

    @abstractmethod
    def set_total_issuance(self, asset_id: str, amount: Amount) -> None:
        """Set total issuance of ``asset_id``; no-op for unknown assets."""
        ...

    def decrease_balance(
        self, asset_id: str, account_id: str, amount: Amount
    ) -> Amount:
        """
        Reduce the balance by ``amount`` without touching issuance.

        Returns:
            The amount removed.

        Raises:
            NoFundsError: If the balance is smaller than ``amount``;
                nothing is changed.
        """
        old_balance = self.balance(asset_id, account_id)
        if old_balance < amount:
            raise NoFundsError(asset_id, account_id, amount)
        self.set_balance(asset_id, account_id, old_balance - amount)
        return amount

    def increase_balance(
        self, asset_id: str, account_id: str, amount: Amount
    ) -> Amount:
        """
        Raise the balance by ``amount`` without touching issuance.

        Returns:
            The amount added.

        Raises:
            BalanceOverflowError: If the new balance would overflow;
                nothing is changed.
        """
        old_balance = self.balance(asset_id, account_id)
        new_balance = checked_add(old_balance, amount)
        if new_balance is None:
            raise BalanceOverflowError(asset_id, account_id, amount)
        if new_balance != old_balance:
            self.set_balance(asset_id, account_id, new_balance)
        return amount


class Balanced(Unbalanced):
    """
    Debt/Credit accounting on top of Unbalanced.

    A mint is ``deposit`` left to finalize; a burn is ``withdraw`` left to
    finalize; an internal transfer is ``withdraw`` resolved into the
    destination account, which leaves issuance untouched.
    """

    def __init__(self) -> None:
        self._imbalance_scopes: list[ImbalanceScope] = []

    @contextmanager
    def imbalance_scope(self) -> Iterator[ImbalanceScope]:
        """
        Open a scope that finalizes every imbalance still live at exit.

        Scopes nest; new imbalances join the innermost one.
        """
        scope = ImbalanceScope()
        self._imbalance_scopes.append(scope)
        try:
            with scope:
                yield scope
        finally:
            self._imbalance_scopes.pop()

    def _current_scope(self, operation: str) -> ImbalanceScope:
        if not self._imbalance_scopes:
            raise NoImbalanceScopeError(operation)
        return self._imbalance_scopes[-1]

    def zero_debt(self, asset_id: str) -> Debt:
        return Debt(self, self._current_scope("zero_debt"), asset_id, 0)

    def zero_credit(self, asset_id: str) -> Credit:
        return Credit(self, self._current_scope("zero_credit"), asset_id, 0)

    def deposit(self, asset_id: str, account_id: str, amount: Amount) -> Debt:
        """
        Increase the balance and return the matching Debt.

        Issuance is untouched until the Debt is consumed or finalized, so
        the overflow check counts the live Debts of every open scope.
        """
        scope = self._current_scope("deposit")
        validate_amount(amount)
        if amount:
            owed = self._pending_debt(asset_id)
            issuance = self.total_issuance(asset_id)
            if owed and checked_add(issuance + owed, amount) is None:
                logger.info(
                    "deposit_refused_pending_debt",
                    extra={"pending_debt": str(owed), "amount": str(amount)},
                )
                raise BalanceOverflowError(asset_id, account_id, amount)
        added = self.increase_balance(asset_id, account_id, amount)
        return Debt(self, scope, asset_id, added)

    def withdraw(self, asset_id: str, account_id: str, amount: Amount) -> Credit:
        """
        Decrease the balance and return the matching Credit.

        Issuance is untouched until the Credit is consumed or finalized.
        """
        scope = self._current_scope("withdraw")
        removed = self.decrease_balance(asset_id, account_id, amount)
        return Credit(self, scope, asset_id, removed)

    def resolve(self, account_id: str, credit: Credit) -> SettlementResult:
        """
        Retire ``credit`` by paying it into ``account_id``.

        On success the credit is fully consumed. If the deposit is refused,
        the original credit is returned unconsumed in a failed result so
        the caller can redirect it or let it finalize.
        """
        self._ensure_own(credit, Credit, "resolve")
        asset_id = credit.asset_id
        amount = credit.peek()
        try:
            debt = self.deposit(asset_id, account_id, amount)
        except (AssetError, BalanceError) as exc:
            logger.info(
                "resolve_refused",
                extra={"error_code": exc.code, "amount": str(amount)},
            )
            return SettlementResult.failed(credit, exc)
        result = credit.offset(debt)
        if not result.is_exact:
            raise ImbalanceContractError(
                f"Deposit of {amount} did not cancel the credit it resolves"
            )
        return SettlementResult.ok()

    def settle(self, account_id: str, debt: Debt) -> SettlementResult:
        """
        Pay ``debt`` out of ``account_id``.

        On success the result carries any leftover Credit (a zero Credit on
        exact cancellation). If the withdrawal is refused, the original
        debt is returned unconsumed in a failed result.
        """
        self._ensure_own(debt, Debt, "settle")
        asset_id = debt.asset_id
        amount = debt.peek()
        try:
            credit = self.withdraw(asset_id, account_id, amount)
        except (AssetError, BalanceError) as exc:
            logger.info(
                "settle_refused",
                extra={"error_code": exc.code, "amount": str(amount)},
            )
            return SettlementResult.failed(debt, exc)
        result = credit.offset(debt)
        if result.outcome is OffsetOutcome.NONE:
            return SettlementResult.ok(self.zero_credit(asset_id))
        if result.outcome is OffsetOutcome.SAME:
            return SettlementResult.ok(result.remainder)
        logger.error(
            "settle_withdrew_less_than_debt",
            extra={"amount": str(amount)},
        )
        return SettlementResult.failed(result.remainder)

    def _pending_debt(self, asset_id: str) -> Amount:
        return sum(
            imbalance.peek()
            for scope in self._imbalance_scopes
            for imbalance in scope.pending
            if isinstance(imbalance, Debt) and imbalance.asset_id == asset_id
        )

    def _ensure_own(self, imbalance, expected: type, operation: str) -> None:
        if not isinstance(imbalance, expected):
            raise PolarityError(operation, expected.__name__, imbalance.kind)
        if imbalance.ledger is not self:
            raise AssetMismatchError(imbalance.asset_id, imbalance.asset_id)
