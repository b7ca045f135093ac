"""
Debt/Credit value semantics against an in-memory Balanced implementation.

Verifies:
- Finalization on scope exit (normal, exception, escaped values)
- offset / merge / subsume / split / extract / drop_zero
- Single ownership: no copy, no pickle, no reuse after consumption
- Default Unbalanced increase/decrease built on set_balance
"""

import copy
import pickle

import pytest

from ledger_kernel.domain.amount import MAX_AMOUNT
from ledger_kernel.domain.capabilities import Balanced
from ledger_kernel.domain.consequences import DepositConsequence, WithdrawConsequence
from ledger_kernel.domain.imbalance import (
    Credit,
    Debt,
    ImbalanceScope,
    OffsetOutcome,
)
from ledger_kernel.exceptions import (
    AssetMismatchError,
    BalanceOverflowError,
    ImbalanceConsumedError,
    ImbalanceContractError,
    ImbalanceCopyError,
    InvalidAmountError,
    NoFundsError,
    NoImbalanceScopeError,
    PolarityError,
)


class InMemoryLedger(Balanced):
    """Dict-backed Balanced; only the abstract methods are implemented."""

    def __init__(self, *assets: str, failing: tuple[str, ...] = ()):
        super().__init__()
        self.balances: dict[tuple[str, str], int] = {}
        self.issuance: dict[str, int] = {a: 0 for a in assets}
        self.failing = set(failing)

    def balance(self, asset_id, account_id):
        return self.balances.get((asset_id, account_id), 0)

    def total_issuance(self, asset_id):
        return self.issuance.get(asset_id, 0)

    def can_deposit(self, asset_id, account_id, amount):
        return DepositConsequence.SUCCESS

    def can_withdraw(self, asset_id, account_id, amount):
        return WithdrawConsequence.SUCCESS

    def set_balance(self, asset_id, account_id, amount):
        self.balances[(asset_id, account_id)] = amount

    def set_total_issuance(self, asset_id, amount):
        if asset_id in self.failing:
            raise RuntimeError(f"issuance store unavailable for {asset_id}")
        if asset_id in self.issuance:
            self.issuance[asset_id] = amount

    def sum_balances(self, asset_id):
        return sum(v for (a, _), v in self.balances.items() if a == asset_id)


@pytest.fixture
def mem():
    return InMemoryLedger("DOT", "KSM")


# ---------------------------------------------------------------------------
# Unbalanced defaults
# ---------------------------------------------------------------------------


class TestUnbalancedDefaults:
    def test_increase_and_decrease(self, mem):
        assert mem.increase_balance("DOT", "alice", 10) == 10
        assert mem.decrease_balance("DOT", "alice", 4) == 4
        assert mem.balance("DOT", "alice") == 6
        assert mem.total_issuance("DOT") == 0

    def test_decrease_without_funds(self, mem):
        mem.set_balance("DOT", "alice", 3)
        with pytest.raises(NoFundsError):
            mem.decrease_balance("DOT", "alice", 4)
        assert mem.balance("DOT", "alice") == 3

    def test_increase_overflow(self, mem):
        mem.set_balance("DOT", "alice", MAX_AMOUNT)
        with pytest.raises(BalanceOverflowError):
            mem.increase_balance("DOT", "alice", 1)
        assert mem.balance("DOT", "alice") == MAX_AMOUNT


# ---------------------------------------------------------------------------
# Finalization
# ---------------------------------------------------------------------------


class TestFinalization:
    def test_deposit_requires_scope(self, mem):
        with pytest.raises(NoImbalanceScopeError) as exc_info:
            mem.deposit("DOT", "alice", 5)
        assert exc_info.value.operation == "deposit"
        assert mem.balance("DOT", "alice") == 0

    def test_withdraw_requires_scope(self, mem):
        mem.set_balance("DOT", "alice", 5)
        with pytest.raises(NoImbalanceScopeError):
            mem.withdraw("DOT", "alice", 5)
        assert mem.balance("DOT", "alice") == 5

    def test_unconsumed_debt_raises_issuance(self, mem):
        with mem.imbalance_scope():
            debt = mem.deposit("DOT", "alice", 100)
            assert mem.total_issuance("DOT") == 0
            assert debt.peek() == 100
        assert mem.total_issuance("DOT") == 100
        assert debt.is_consumed

    def test_unconsumed_credit_lowers_issuance(self, mem):
        mem.set_balance("DOT", "alice", 100)
        mem.issuance["DOT"] = 100
        with mem.imbalance_scope():
            mem.withdraw("DOT", "alice", 30)
        assert mem.total_issuance("DOT") == 70
        assert mem.sum_balances("DOT") == 70

    def test_finalized_on_exception(self, mem):
        with pytest.raises(ValueError):
            with mem.imbalance_scope():
                mem.deposit("DOT", "alice", 42)
                raise ValueError("caller failed after deposit")
        assert mem.total_issuance("DOT") == 42

    def test_finalized_on_early_return(self, mem):
        def pay(amount):
            with mem.imbalance_scope():
                mem.deposit("DOT", "alice", amount)
                if amount > 10:
                    return "large"
                return "small"

        assert pay(50) == "large"
        assert mem.total_issuance("DOT") == 50

    def test_escaped_value_is_consumed(self, mem):
        with mem.imbalance_scope():
            debt = mem.deposit("DOT", "alice", 1)
        with pytest.raises(ImbalanceConsumedError):
            debt.peek()

    def test_explicit_finalize_runs_once(self, mem):
        with mem.imbalance_scope() as scope:
            debt = mem.deposit("DOT", "alice", 9)
            debt.finalize()
            assert mem.total_issuance("DOT") == 9
            assert scope.pending == []
            with pytest.raises(ImbalanceConsumedError):
                debt.finalize()
        assert mem.total_issuance("DOT") == 9

    def test_value_as_context_manager(self, mem):
        with mem.imbalance_scope():
            with mem.deposit("DOT", "alice", 3) as debt:
                assert debt.peek() == 3
            assert mem.total_issuance("DOT") == 3

    def test_nested_scopes(self, mem):
        with mem.imbalance_scope() as outer:
            mem.deposit("DOT", "alice", 1)
            with mem.imbalance_scope() as inner:
                mem.deposit("DOT", "bob", 2)
                assert len(inner.pending) == 1
            assert mem.total_issuance("DOT") == 2
            assert len(outer.pending) == 1
        assert mem.total_issuance("DOT") == 3

    def test_failing_finalizer_does_not_skip_others(self):
        failing = InMemoryLedger("DOT", "BAD", failing=("BAD",))
        with pytest.raises(RuntimeError):
            with failing.imbalance_scope():
                failing.deposit("BAD", "alice", 5)
                failing.deposit("DOT", "alice", 7)
        assert failing.total_issuance("DOT") == 7

    def test_closed_scope_rejects_new_values(self, mem):
        scope = ImbalanceScope()
        scope.close()
        with pytest.raises(ImbalanceContractError):
            Debt(mem, scope, "DOT", 1)

    def test_zero_values_finalize_without_writes(self):
        failing = InMemoryLedger("BAD", failing=("BAD",))
        with failing.imbalance_scope():
            failing.zero_debt("BAD")
            failing.zero_credit("BAD")


# ---------------------------------------------------------------------------
# Combination
# ---------------------------------------------------------------------------


class TestOffset:
    def test_exact_cancellation(self, mem):
        mem.set_balance("DOT", "alice", 10)
        mem.issuance["DOT"] = 10
        with mem.imbalance_scope() as scope:
            credit = mem.withdraw("DOT", "alice", 10)
            debt = mem.deposit("DOT", "bob", 10)
            result = credit.offset(debt)
            assert result.outcome is OffsetOutcome.NONE
            assert result.is_exact
            assert result.remainder is None
            assert scope.pending == []
        assert mem.total_issuance("DOT") == 10

    def test_remainder_keeps_left_polarity(self, mem):
        with mem.imbalance_scope():
            debt = mem.deposit("DOT", "alice", 10)
            credit = mem.withdraw("DOT", "alice", 4)
            result = debt.offset(credit)
            assert result.outcome is OffsetOutcome.SAME
            assert isinstance(result.remainder, Debt)
            assert result.remainder.peek() == 6
        assert mem.total_issuance("DOT") == 6

    def test_remainder_with_right_polarity(self, mem):
        mem.set_balance("DOT", "alice", 10)
        mem.issuance["DOT"] = 10
        with mem.imbalance_scope():
            credit = mem.withdraw("DOT", "alice", 10)
            debt = mem.deposit("DOT", "bob", 4)
            result = debt.offset(credit)
            assert result.outcome is OffsetOutcome.OTHER
            assert isinstance(result.remainder, Credit)
            assert result.remainder.peek() == 6
        assert mem.total_issuance("DOT") == 4
        assert mem.sum_balances("DOT") == 4

    def test_asset_mismatch_leaves_both_live(self, mem):
        mem.set_balance("KSM", "alice", 5)
        mem.issuance["KSM"] = 5
        with mem.imbalance_scope():
            debt = mem.deposit("DOT", "alice", 5)
            credit = mem.withdraw("KSM", "alice", 5)
            with pytest.raises(AssetMismatchError):
                debt.offset(credit)
            assert not debt.is_consumed
            assert not credit.is_consumed
        assert mem.total_issuance("DOT") == 5
        assert mem.total_issuance("KSM") == 0

    def test_different_ledgers_mismatch(self, mem):
        other = InMemoryLedger("DOT")
        with mem.imbalance_scope(), other.imbalance_scope():
            debt = mem.deposit("DOT", "alice", 1)
            credit = other.zero_credit("DOT")
            with pytest.raises(AssetMismatchError):
                debt.offset(credit)

    def test_same_polarity_offset_rejected(self, mem):
        with mem.imbalance_scope():
            a = mem.deposit("DOT", "alice", 1)
            b = mem.deposit("DOT", "bob", 1)
            with pytest.raises(PolarityError):
                a.offset(b)


class TestSplitMerge:
    def test_split(self, mem):
        with mem.imbalance_scope():
            debt = mem.deposit("DOT", "alice", 100)
            first, rest = debt.split(30)
            assert (first.peek(), rest.peek()) == (30, 70)
            assert debt.is_consumed
        assert mem.total_issuance("DOT") == 100

    def test_split_more_than_available(self, mem):
        with mem.imbalance_scope():
            first, rest = mem.deposit("DOT", "alice", 10).split(50)
            assert (first.peek(), rest.peek()) == (10, 0)

    def test_merge(self, mem):
        with mem.imbalance_scope() as scope:
            merged = mem.deposit("DOT", "alice", 3).merge(mem.deposit("DOT", "bob", 4))
            assert merged.peek() == 7
            assert scope.pending == [merged]
        assert mem.total_issuance("DOT") == 7

    def test_merge_opposite_rejected(self, mem):
        with mem.imbalance_scope():
            with pytest.raises(PolarityError):
                mem.zero_debt("DOT").merge(mem.zero_credit("DOT"))

    def test_subsume(self, mem):
        with mem.imbalance_scope():
            debt = mem.deposit("DOT", "alice", 3)
            other = mem.deposit("DOT", "bob", 4)
            debt.subsume(other)
            assert debt.peek() == 7
            assert other.is_consumed
        assert mem.total_issuance("DOT") == 7

    def test_extract(self, mem):
        with mem.imbalance_scope():
            debt = mem.deposit("DOT", "alice", 10)
            part = debt.extract(4)
            assert (debt.peek(), part.peek()) == (6, 4)
        assert mem.total_issuance("DOT") == 10

    def test_drop_zero(self, mem):
        with mem.imbalance_scope():
            assert mem.zero_debt("DOT").drop_zero()
            debt = mem.deposit("DOT", "alice", 1)
            assert not debt.drop_zero()
            assert not debt.is_consumed

    @pytest.mark.parametrize("amount", [-5, MAX_AMOUNT + 1, 2.5, True])
    def test_split_rejects_invalid_amount(self, mem, amount):
        with mem.imbalance_scope() as scope:
            debt = mem.deposit("DOT", "alice", 10)
            with pytest.raises(InvalidAmountError):
                debt.split(amount)
            assert not debt.is_consumed
            assert debt.peek() == 10
            assert scope.pending == [debt]
        assert mem.total_issuance("DOT") == mem.sum_balances("DOT") == 10

    @pytest.mark.parametrize("amount", [-7, MAX_AMOUNT + 1, "3"])
    def test_extract_rejects_invalid_amount(self, mem, amount):
        with mem.imbalance_scope() as scope:
            debt = mem.deposit("DOT", "alice", 10)
            with pytest.raises(InvalidAmountError):
                debt.extract(amount)
            assert debt.peek() == 10
            assert scope.pending == [debt]
        assert mem.total_issuance("DOT") == mem.sum_balances("DOT") == 10

    def test_invalid_amount_checked_before_liveness(self, mem):
        with mem.imbalance_scope():
            debt = mem.deposit("DOT", "alice", 1)
            debt.finalize()
            with pytest.raises(InvalidAmountError):
                debt.extract(-1)
            with pytest.raises(ImbalanceConsumedError):
                debt.extract(1)


class TestSingleOwnership:
    def test_copy_rejected(self, mem):
        with mem.imbalance_scope():
            debt = mem.deposit("DOT", "alice", 1)
            with pytest.raises(ImbalanceCopyError):
                copy.copy(debt)
            with pytest.raises(ImbalanceCopyError):
                copy.deepcopy(debt)

    def test_pickle_rejected(self, mem):
        with mem.imbalance_scope():
            credit = mem.zero_credit("DOT")
            with pytest.raises(ImbalanceCopyError):
                pickle.dumps(credit)

    def test_use_after_consume(self, mem):
        with mem.imbalance_scope():
            a = mem.deposit("DOT", "alice", 2)
            b = mem.deposit("DOT", "bob", 2)
            a.merge(b)
            for call in (a.peek, lambda: a.split(1), lambda: a.extract(1), a.drop_zero):
                with pytest.raises(ImbalanceConsumedError):
                    call()

    def test_repr_shows_state(self, mem):
        with mem.imbalance_scope():
            debt = mem.deposit("DOT", "alice", 2)
            assert repr(debt) == "Debt('DOT', 2, live)"
        assert repr(debt) == "Debt('DOT', 2, consumed)"


class TestResolveSettle:
    def test_resolve_moves_value_without_issuance_change(self, mem):
        mem.set_balance("DOT", "alice", 10)
        mem.issuance["DOT"] = 10
        with mem.imbalance_scope():
            credit = mem.withdraw("DOT", "alice", 4)
            result = mem.resolve("bob", credit)
            assert result.success
            assert result.imbalance is None
            assert credit.is_consumed
        assert mem.balance("DOT", "bob") == 4
        assert mem.total_issuance("DOT") == 10

    def test_settle_refused_returns_debt(self, mem):
        with mem.imbalance_scope():
            debt = mem.deposit("DOT", "bob", 5)
            result = mem.settle("alice", debt)
            assert not result.success
            assert result.imbalance is debt
            assert isinstance(result.error, NoFundsError)
            assert not debt.is_consumed
        assert mem.total_issuance("DOT") == 5

    def test_resolve_rejects_debt(self, mem):
        with mem.imbalance_scope():
            with pytest.raises(PolarityError):
                mem.resolve("bob", mem.zero_debt("DOT"))

    def test_settle_rejects_foreign_value(self, mem):
        other = InMemoryLedger("DOT")
        with other.imbalance_scope():
            foreign = other.zero_debt("DOT")
            with pytest.raises(AssetMismatchError):
                mem.settle("alice", foreign)

    def test_short_deposit_during_resolve_is_contract_error(self):
        class ShortLedger(InMemoryLedger):
            def increase_balance(self, asset_id, account_id, amount, **kwargs):
                super().increase_balance(asset_id, account_id, amount)
                return amount - 1

        short = ShortLedger("DOT")
        short.set_balance("DOT", "alice", 10)
        short.issuance["DOT"] = 10
        with short.imbalance_scope():
            credit = short.withdraw("DOT", "alice", 4)
            with pytest.raises(ImbalanceContractError):
                short.resolve("bob", credit)
            assert credit.is_consumed


class TestPendingDebtOverflow:
    def test_live_debts_count_toward_issuance_limit(self, mem):
        with mem.imbalance_scope() as scope:
            first = mem.deposit("DOT", "alice", MAX_AMOUNT)
            with pytest.raises(BalanceOverflowError):
                mem.deposit("DOT", "bob", 1)
            assert scope.pending == [first]
            assert mem.balance("DOT", "bob") == 0
        assert mem.total_issuance("DOT") == mem.sum_balances("DOT") == MAX_AMOUNT

    def test_outer_scope_debts_counted(self, mem):
        with mem.imbalance_scope():
            mem.deposit("DOT", "alice", MAX_AMOUNT - 5)
            with mem.imbalance_scope():
                mem.deposit("DOT", "bob", 5)
                with pytest.raises(BalanceOverflowError):
                    mem.deposit("DOT", "carol", 1)
        assert mem.total_issuance("DOT") == mem.sum_balances("DOT") == MAX_AMOUNT

    def test_other_assets_and_finalized_debts_ignored(self, mem):
        with mem.imbalance_scope():
            mem.deposit("KSM", "alice", MAX_AMOUNT)
            debt = mem.deposit("DOT", "alice", MAX_AMOUNT - 1)
            debt.finalize()
            mem.deposit("DOT", "bob", 1)
        assert mem.total_issuance("DOT") == MAX_AMOUNT
        assert mem.total_issuance("KSM") == MAX_AMOUNT
