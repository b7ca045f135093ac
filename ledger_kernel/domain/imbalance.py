"""
Imbalance -- Debt/Credit values that must be reconciled exactly once.

Responsibility:
    Represents value that has been added to (Debt) or removed from
    (Credit) account balances but not yet reflected in total issuance.
    Each value is consumed exactly once: by combining it with other
    imbalances (offset, merge, split, ...) or by finalization, which
    adjusts total issuance to restore the invariant.

Architecture position:
    Kernel > Domain. Values are created only by the Balanced capability
    (ledger_kernel.domain.capabilities) and by operations on existing
    values. They hold a reference to the ledger that issued them and to
    the ImbalanceScope that owns them.

Invariants enforced:
    IMBALANCE_FINALIZATION -- every value is registered with an open
        ImbalanceScope. When the scope exits, on any code path, every
        value still live is finalized:
            Debt   -> total_issuance += amount
            Credit -> total_issuance -= amount
    A consumed value cannot be used again, and values cannot be copied
    or pickled.

Failure modes:
    - AssetMismatchError when combining values of different assets or
      different ledgers. Both operands stay live.
    - PolarityError when offsetting same-polarity values or merging
      opposite ones.
    - ImbalanceConsumedError on any use after consumption.
    - ImbalanceCopyError on copy.copy / copy.deepcopy / pickle.

Usage:
    with ledger.imbalance_scope():
        credit = ledger.withdraw("DOT", "alice", 40)
        result = ledger.resolve("bob", credit)
        # internal transfer: issuance untouched
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar

from ledger_kernel.domain.amount import (
    Amount,
    saturating_add,
    saturating_sub,
    validate_amount,
)
from ledger_kernel.exceptions import (
    AssetMismatchError,
    ImbalanceConsumedError,
    ImbalanceContractError,
    ImbalanceCopyError,
    LedgerKernelError,
    PolarityError,
)
from ledger_kernel.logging_config import get_logger

if TYPE_CHECKING:
    from ledger_kernel.domain.capabilities import Unbalanced

logger = get_logger("domain.imbalance")


class Polarity(str, Enum):
    """Direction of an unreconciled issuance difference."""

    DEBT = "debt"
    CREDIT = "credit"


# ---------------------------------------------------------------------------
# Drop handlers
# ---------------------------------------------------------------------------


class ImbalanceDropHandler(ABC):
    """What happens to total issuance when an imbalance is finalized."""

    def __init__(self, unbalanced: Unbalanced):
        self._unbalanced = unbalanced

    @abstractmethod
    def handle(self, asset_id: str, amount: Amount) -> None:
        ...


class IncreaseIssuance(ImbalanceDropHandler):
    """Finalizer for Debt: issuance catches up with the added balance."""

    def handle(self, asset_id: str, amount: Amount) -> None:
        current = self._unbalanced.total_issuance(asset_id)
        self._unbalanced.set_total_issuance(
            asset_id, saturating_add(current, amount)
        )


class DecreaseIssuance(ImbalanceDropHandler):
    """Finalizer for Credit: issuance drops by the removed balance."""

    def handle(self, asset_id: str, amount: Amount) -> None:
        current = self._unbalanced.total_issuance(asset_id)
        self._unbalanced.set_total_issuance(
            asset_id, saturating_sub(current, amount)
        )


# ---------------------------------------------------------------------------
# Imbalance values
# ---------------------------------------------------------------------------


class Imbalance:
    """
    A single-owner, must-consume amount of one asset.

    Contract:
        Created only by the Balanced capability or by operations on other
        imbalances, never directly by callers. Every instance belongs to
        exactly one ImbalanceScope until it is consumed.

    Guarantees:
        - Consumed at most once; finalized at most once.
        - Never copied.
    """

    polarity: ClassVar[Polarity]
    drop_handler: ClassVar[type[ImbalanceDropHandler]]

    __slots__ = ("_ledger", "_scope", "_asset_id", "_amount", "_consumed")

    def __init__(
        self,
        ledger: Unbalanced,
        scope: ImbalanceScope,
        asset_id: str,
        amount: Amount,
    ):
        self._ledger = ledger
        self._scope = scope
        self._asset_id = asset_id
        self._amount = amount
        self._consumed = False
        scope.adopt(self)

    # -- inspection ---------------------------------------------------------

    @property
    def kind(self) -> str:
        return type(self).__name__

    @property
    def asset_id(self) -> str:
        return self._asset_id

    @property
    def ledger(self) -> Unbalanced:
        return self._ledger

    @property
    def is_consumed(self) -> bool:
        return self._consumed

    def peek(self) -> Amount:
        """The amount this imbalance represents."""
        self._ensure_live()
        return self._amount

    # -- consumption --------------------------------------------------------

    def offset(self, other: Imbalance) -> OffsetResult:
        """
        Cancel against an opposite-polarity imbalance of the same asset.

        Both operands are consumed. The result says whether they canceled
        exactly, or carries the remainder with the polarity of the larger
        side.

        Raises:
            PolarityError: If ``other`` has the same polarity.
            AssetMismatchError: If the assets or ledgers differ.
        """
        self._ensure_live()
        other._ensure_live()
        if other.polarity is self.polarity:
            raise PolarityError("offset", self.kind, other.kind)
        self._ensure_compatible(other)

        mine, theirs = self._amount, other._amount
        self._consume()
        other._consume()

        if mine == theirs:
            return OffsetResult(OffsetOutcome.NONE)
        if mine > theirs:
            return OffsetResult(
                OffsetOutcome.SAME, self._spawn(type(self), mine - theirs)
            )
        return OffsetResult(
            OffsetOutcome.OTHER, self._spawn(type(other), theirs - mine)
        )

    def merge(self, other: Imbalance) -> Imbalance:
        """Combine two same-polarity imbalances into a new one."""
        self._ensure_live()
        other._ensure_live()
        if other.polarity is not self.polarity:
            raise PolarityError("merge", self.kind, other.kind)
        self._ensure_compatible(other)
        total = saturating_add(self._amount, other._amount)
        self._consume()
        other._consume()
        return self._spawn(type(self), total)

    def subsume(self, other: Imbalance) -> None:
        """Absorb a same-polarity imbalance into this one."""
        self._ensure_live()
        other._ensure_live()
        if other.polarity is not self.polarity:
            raise PolarityError("subsume", self.kind, other.kind)
        self._ensure_compatible(other)
        self._amount = saturating_add(self._amount, other._amount)
        other._consume()

    def split(self, amount: Amount) -> tuple[Imbalance, Imbalance]:
        """
        Split into ``(min(amount, self), rest)``. Consumes this imbalance.
        """
        validate_amount(amount)
        self._ensure_live()
        first = min(amount, self._amount)
        second = self._amount - first
        self._consume()
        return (
            self._spawn(type(self), first),
            self._spawn(type(self), second),
        )

    def extract(self, amount: Amount) -> Imbalance:
        """Move up to ``amount`` out of this imbalance into a new one."""
        validate_amount(amount)
        self._ensure_live()
        taken = min(amount, self._amount)
        self._amount -= taken
        return self._spawn(type(self), taken)

    def drop_zero(self) -> bool:
        """
        Consume this imbalance if it is zero.

        Returns:
            True if it was zero and is now consumed, False otherwise
            (the imbalance is left untouched).
        """
        self._ensure_live()
        if self._amount != 0:
            return False
        self._consume()
        return True

    def finalize(self) -> None:
        """
        Consume now, adjusting total issuance by the amount.

        Zero amounts are consumed without touching the store.
        """
        self._ensure_live()
        amount = self._amount
        # consumed before the handler runs so a failing handler is never re-run
        self._consume()
        if amount == 0:
            return
        self.drop_handler(self._ledger).handle(self._asset_id, amount)
        logger.debug(
            "imbalance_finalized",
            extra={
                "polarity": self.polarity.value,
                "imbalance_asset_id": self._asset_id,
                "amount": str(amount),
            },
        )

    # -- context manager ----------------------------------------------------

    def __enter__(self) -> Imbalance:
        self._ensure_live()
        return self

    def __exit__(self, *exc: Any) -> None:
        if not self._consumed:
            self.finalize()

    # -- single ownership ---------------------------------------------------

    def __copy__(self) -> Imbalance:
        raise ImbalanceCopyError(self.kind)

    def __deepcopy__(self, memo: dict) -> Imbalance:
        raise ImbalanceCopyError(self.kind)

    def __reduce_ex__(self, protocol: Any) -> Any:
        raise ImbalanceCopyError(self.kind)

    def __repr__(self) -> str:
        state = "consumed" if self._consumed else "live"
        return f"{self.kind}({self._asset_id!r}, {self._amount}, {state})"

    # -- internals ----------------------------------------------------------

    def _ensure_live(self) -> None:
        if self._consumed:
            raise ImbalanceConsumedError(self.kind, self._asset_id)

    def _ensure_compatible(self, other: Imbalance) -> None:
        if other._asset_id != self._asset_id or other._ledger is not self._ledger:
            raise AssetMismatchError(self._asset_id, other._asset_id)

    def _consume(self) -> None:
        self._consumed = True
        self._scope.release(self)

    def _spawn(self, cls: type[Imbalance], amount: Amount) -> Imbalance:
        return cls(self._ledger, self._scope, self._asset_id, amount)


class Debt(Imbalance):
    """
    Balances were increased without issuance: issuance owes ``amount``.

    Finalizing a Debt increases total issuance.
    """

    __slots__ = ()
    polarity = Polarity.DEBT
    drop_handler = IncreaseIssuance


class Credit(Imbalance):
    """
    Balances were decreased without issuance: issuance overcounts by
    ``amount``.

    Finalizing a Credit decreases total issuance.
    """

    __slots__ = ()
    polarity = Polarity.CREDIT
    drop_handler = DecreaseIssuance


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class OffsetOutcome(str, Enum):
    """How an offset resolved."""

    NONE = "none"  # exact cancellation
    SAME = "same"  # remainder has the left operand's polarity
    OTHER = "other"  # remainder has the right operand's polarity


@dataclass(frozen=True)
class OffsetResult:
    """Result of Imbalance.offset()."""

    outcome: OffsetOutcome
    remainder: Imbalance | None = None

    @property
    def is_exact(self) -> bool:
        return self.outcome is OffsetOutcome.NONE


@dataclass(frozen=True)
class SettlementResult:
    """
    Result of Balanced.resolve() / Balanced.settle().

    On success ``imbalance`` is the leftover value handed back to the
    caller (None for resolve, a possibly-zero Credit for settle). On
    failure ``imbalance`` is the original, unconsumed input and ``error``
    says why the balance change was refused.
    """

    success: bool
    imbalance: Imbalance | None = None
    error: LedgerKernelError | None = None

    @classmethod
    def ok(cls, leftover: Imbalance | None = None) -> SettlementResult:
        return cls(success=True, imbalance=leftover)

    @classmethod
    def failed(
        cls,
        original: Imbalance,
        error: LedgerKernelError | None = None,
    ) -> SettlementResult:
        return cls(success=False, imbalance=original, error=error)


# ---------------------------------------------------------------------------
# Scope guard
# ---------------------------------------------------------------------------


class ImbalanceScope:
    """
    Owns every imbalance created while it is open and finalizes the live
    ones when it closes.

    Contract:
        Closing happens exactly once, from ``__exit__``, on normal exit and
        on exception alike. Values are finalized newest first. If a
        finalizer raises, the remaining values are still finalized and the
        first error is re-raised after the loop.
    """

    def __init__(self) -> None:
        self._live: dict[int, Imbalance] = {}
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> list[Imbalance]:
        """Live imbalances, oldest first."""
        return list(self._live.values())

    def adopt(self, imbalance: Imbalance) -> Imbalance:
        if self._closed:
            raise ImbalanceContractError(
                f"Cannot create {imbalance.kind} in a closed imbalance scope"
            )
        self._live[id(imbalance)] = imbalance
        return imbalance

    def release(self, imbalance: Imbalance) -> None:
        self._live.pop(id(imbalance), None)

    def close(self, unwinding: bool = False) -> None:
        if self._closed:
            return
        pending = list(reversed(self._live.values()))
        if pending:
            log = logger.warning if unwinding else logger.debug
            log(
                "imbalance_scope_finalizing",
                extra={"pending": len(pending), "unwinding": unwinding},
            )
        first_error: BaseException | None = None
        for imbalance in pending:
            try:
                imbalance.finalize()
            except Exception as exc:  # keep finalizing the rest
                logger.error(
                    "imbalance_finalize_failed",
                    extra={"imbalance": repr(imbalance)},
                    exc_info=True,
                )
                if first_error is None:
                    first_error = exc
        self._closed = True
        if first_error is not None:
            raise first_error

    def __enter__(self) -> ImbalanceScope:
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close(unwinding=exc_type is not None)
