"""
Pytest fixtures for the ledger kernel test suite.

Provides:
- A fresh SQLite in-memory database per test (tables created, dropped after)
- A session, an AssetLedger with recording event sink and reference counter
- Structured log capture

Every test gets its own database; nothing is shared across tests.
"""

import json
import logging
from collections.abc import Generator
from contextlib import contextmanager
from io import StringIO

import pytest
from sqlalchemy.orm import Session

from ledger_kernel.db.engine import LedgerDatabase
from ledger_kernel.domain.accounts import ReferenceCounter
from ledger_kernel.domain.events import RecordingEventSink
from ledger_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from ledger_kernel.services.asset_ledger import AssetLedger

IN_MEMORY_URL = "sqlite://"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture ledger_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, ledger):
            ledger.create_asset("DOT")
            logs = captured_logs()
            assert any(r["message"] == "asset_created" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("ledger_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


@contextmanager
def fresh_database() -> Generator[LedgerDatabase, None, None]:
    """A brand-new in-memory database with all tables created."""
    database = LedgerDatabase.from_url(IN_MEMORY_URL)
    database.create_tables()
    try:
        yield database
    finally:
        database.dispose()


@pytest.fixture
def database() -> Generator[LedgerDatabase, None, None]:
    with fresh_database() as db:
        yield db


@pytest.fixture
def session(database: LedgerDatabase) -> Generator[Session, None, None]:
    session = database.session()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# =============================================================================
# Ledger fixtures
# =============================================================================


@pytest.fixture
def sink() -> RecordingEventSink:
    return RecordingEventSink()


@pytest.fixture
def accounts() -> ReferenceCounter:
    return ReferenceCounter()


@pytest.fixture
def ledger(session, sink, accounts) -> AssetLedger:
    return AssetLedger(session, events=sink, accounts=accounts)


@pytest.fixture
def dot(ledger, sink) -> str:
    """An existing asset "DOT" with no holders; the sink starts empty."""
    ledger.create_asset("DOT")
    sink.clear()
    return "DOT"
