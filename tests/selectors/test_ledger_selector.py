"""LedgerSelector: holders, sums and invariant verification."""

import pytest
from sqlalchemy import text

from ledger_kernel.exceptions import UnknownAssetError
from ledger_kernel.selectors.ledger_selector import HolderBalance, LedgerSelector


@pytest.fixture
def selector(session):
    return LedgerSelector(session)


@pytest.fixture
def populated(ledger, dot):
    ledger.mint(dot, "carol", 5)
    ledger.mint(dot, "alice", 2**255)
    ledger.mint(dot, "bob", 7)
    ledger.burn(dot, "carol", 5)
    return dot


class TestHolders:
    def test_holders_sorted_without_zero_rows(self, selector, populated):
        assert selector.holders(populated) == [
            HolderBalance("alice", 2**255),
            HolderBalance("bob", 7),
        ]
        assert selector.count_holders(populated) == 2

    def test_sum_exceeds_64_bits(self, selector, populated):
        assert selector.sum_balances(populated) == 2**255 + 7

    def test_account_assets(self, selector, ledger, populated):
        ledger.create_asset("KSM")
        ledger.mint("KSM", "bob", 3)
        assert selector.account_assets("bob") == {"DOT": 7, "KSM": 3}
        assert selector.account_assets("nobody") == {}


class TestVerify:
    def test_valid_after_operations(self, selector, populated):
        report = selector.verify_asset(populated)
        assert report.is_valid
        assert report.violations() == []
        assert report.total_issuance == 2**255 + 7

    def test_unknown_asset(self, selector):
        with pytest.raises(UnknownAssetError):
            selector.verify_asset("NOPE")

    def test_detects_tampered_issuance(self, selector, session, populated):
        session.execute(
            text("UPDATE assets SET total_issuance = '1' WHERE asset_id = :a"),
            {"a": populated},
        )
        session.expire_all()
        report = selector.verify_asset(populated)
        assert not report.issuance_matches
        assert report.account_count_matches
        assert not report.is_valid

    def test_detects_tampered_account_count(self, selector, session, populated):
        session.execute(
            text("UPDATE assets SET account_count = 9 WHERE asset_id = :a"),
            {"a": populated},
        )
        session.expire_all()
        report = selector.verify_asset(populated)
        assert not report.account_count_matches
        assert "account_count 9 != holders 2" in report.violations()

    def test_verify_all(self, selector, ledger, populated):
        ledger.create_asset("KSM")
        reports = selector.verify_all()
        assert [r.asset_id for r in reports] == ["DOT", "KSM"]
        assert all(r.is_valid for r in reports)


class TestSnapshotHash:
    def test_same_state_same_hash(self, selector, ledger, populated):
        before = selector.snapshot_hash(populated)
        ledger.transfer(populated, "bob", "dave", 7)
        assert selector.snapshot_hash(populated) != before
        ledger.transfer(populated, "dave", "bob", 7)
        assert selector.snapshot_hash(populated) == before
