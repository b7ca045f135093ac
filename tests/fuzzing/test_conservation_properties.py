"""
Property-based tests for the issuance and account-count invariants.

Hypothesis drives random sequences of mint / burn / transfer and of
Balanced withdraw+resolve / deposit+settle against a fresh in-memory
database per example. After every step:

- total_issuance == sum of stored balances
- account_count == number of stored (nonzero) balances
- a rejected operation leaves the store byte-for-byte unchanged
"""

from contextlib import contextmanager

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from ledger_kernel.db.engine import LedgerDatabase
from ledger_kernel.domain.accounts import ReferenceCounter
from ledger_kernel.domain.amount import MAX_AMOUNT
from ledger_kernel.domain.events import RecordingEventSink
from ledger_kernel.exceptions import BalanceError
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.services.asset_ledger import AssetLedger

ACCOUNTS = ("alice", "bob", "carol", "dave")
ASSET = "DOT"

accounts = st.sampled_from(ACCOUNTS)
small_amounts = st.integers(min_value=0, max_value=1_000)
any_amounts = st.one_of(small_amounts, st.integers(min_value=0, max_value=MAX_AMOUNT))

operations = st.lists(
    st.tuples(
        st.sampled_from(["mint", "burn", "transfer", "withdraw_resolve", "deposit_settle"]),
        accounts,
        accounts,
        any_amounts,
    ),
    min_size=1,
    max_size=25,
)

fuzz_settings = settings(
    max_examples=40,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
)


@contextmanager
def _ledger():
    database = LedgerDatabase.from_url("sqlite://")
    database.create_tables()
    session = database.session()
    try:
        ledger = AssetLedger(session, events=RecordingEventSink(), accounts=ReferenceCounter())
        ledger.create_asset(ASSET)
        yield ledger
    finally:
        session.close()
        database.dispose()


def _apply(ledger: AssetLedger, op: str, a: str, b: str, amount: int) -> None:
    if op == "mint":
        ledger.mint(ASSET, a, amount)
    elif op == "burn":
        ledger.burn(ASSET, a, amount)
    elif op == "transfer":
        ledger.transfer(ASSET, a, b, amount)
    elif op == "withdraw_resolve":
        with ledger.imbalance_scope():
            credit = ledger.withdraw(ASSET, a, amount)
            ledger.resolve(b, credit)
    elif op == "deposit_settle":
        with ledger.imbalance_scope():
            debt = ledger.deposit(ASSET, a, amount)
            ledger.settle(b, debt)


class TestConservationProperties:
    @fuzz_settings
    @given(ops=operations)
    def test_invariants_hold_after_every_step(self, ops):
        with _ledger() as ledger:
            selector = LedgerSelector(ledger.session)
            for op, a, b, amount in ops:
                before = selector.snapshot_hash(ASSET)
                try:
                    _apply(ledger, op, a, b, amount)
                except BalanceError:
                    assert selector.snapshot_hash(ASSET) == before
                report = selector.verify_asset(ASSET)
                assert report.is_valid, (op, a, b, amount, report.violations())

    @fuzz_settings
    @given(ops=operations)
    def test_reference_counts_match_holders(self, ops):
        with _ledger() as ledger:
            for op, a, b, amount in ops:
                try:
                    _apply(ledger, op, a, b, amount)
                except BalanceError:
                    pass
            refs = ledger._accounts
            for account in ACCOUNTS:
                holds = ledger.balance(ASSET, account) > 0
                assert refs.is_alive(account) == holds

    @fuzz_settings
    @given(start=small_amounts, amount=any_amounts, a=accounts, b=accounts)
    def test_transfer_preserves_issuance(self, start, amount, a, b):
        with _ledger() as ledger:
            ledger.mint(ASSET, a, start)
            try:
                ledger.transfer(ASSET, a, b, amount)
            except BalanceError:
                pass
            assert ledger.total_issuance(ASSET) == start
            if a == b:
                assert ledger.balance(ASSET, a) == start
