"""
Module: ledger_kernel.db.engine
Responsibility: SQLAlchemy engine construction, session factory and
    transactional scope for the ledger's balance store.
Architecture position: Kernel > DB.  May import from db/base.py.  MUST NOT
    import from services/, selectors/ or outer layers (create_tables
    imports models/ lazily so that Base.metadata is populated).

Invariants enforced:
    - Explicit lifecycle: a LedgerDatabase is constructed once at startup
      and passed by handle to whoever needs a session.  There is no
      module-level engine.
    - SQLite connections emit their own BEGIN so that SAVEPOINT (used by
      BalanceStore.atomic) behaves as on PostgreSQL.

Failure modes:
    - Connection pool exhaustion if pool_size + max_overflow is exceeded
      (PostgreSQL only).
    - Any exception inside session_scope() rolls the whole transaction back
      and is re-raised.
"""

from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ledger_kernel.logging_config import get_logger

logger = get_logger("db.engine")


def create_ledger_engine(
    database_url: str,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 10,
    pool_pre_ping: bool = True,
) -> Engine:
    """
    Create an engine for ``database_url``.

    SQLite in-memory URLs share one connection (StaticPool) so every
    session sees the same database.

    Args:
        database_url: SQLAlchemy URL (sqlite:// or postgresql://...).
        echo: If True, log all SQL statements.
        pool_size: Connections kept in the pool (server databases only).
        max_overflow: Connections beyond pool_size (server databases only).
        pool_pre_ping: Test connections before use (server databases only).

    Returns:
        SQLAlchemy Engine instance.
    """
    url = make_url(database_url)

    if url.get_backend_name() == "sqlite":
        kwargs: dict = {"echo": echo}
        if url.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
            kwargs["connect_args"] = {"check_same_thread": False}
        engine = create_engine(url, **kwargs)
        _install_sqlite_savepoint_support(engine)
    else:
        engine = create_engine(
            url,
            echo=echo,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=pool_pre_ping,
            isolation_level="READ COMMITTED",
        )

    logger.info(
        "engine_initialized",
        extra={"dialect": engine.dialect.name, "echo": echo},
    )
    return engine


def _install_sqlite_savepoint_support(engine: Engine) -> None:
    """Let SQLAlchemy, not pysqlite, decide where transactions begin."""

    @event.listens_for(engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")


class LedgerDatabase:
    """
    Handle on the ledger's database: engine plus session factory.

    Contract:
        Constructed once per process (or per test) and passed explicitly.
        ``session_scope()`` is the host transaction boundary: it commits on
        normal exit and rolls back on exception.  Services never commit.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self._session_factory: sessionmaker[Session] = sessionmaker(
            bind=engine, expire_on_commit=False
        )

    @classmethod
    def from_url(
        cls,
        database_url: str,
        echo: bool = False,
        pool_size: int = 5,
        max_overflow: int = 10,
    ) -> "LedgerDatabase":
        return cls(
            create_ledger_engine(
                database_url,
                echo=echo,
                pool_size=pool_size,
                max_overflow=max_overflow,
            )
        )

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    def session(self) -> Session:
        """Get a new session.  The caller owns commit/rollback/close."""
        return self._session_factory()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope around a series of operations.

        Usage:
            with database.session_scope() as session:
                ledger = AssetLedger(session)
                ledger.mint("DOT", "alice", 100)
                # Commits on successful exit, rolls back on exception
        """
        session = self.session()
        logger.debug("transaction_started")
        try:
            yield session
            session.commit()
            logger.debug("transaction_committed")
        except Exception:
            session.rollback()
            logger.warning("transaction_rolled_back", exc_info=True)
            raise
        finally:
            session.close()

    def create_tables(self) -> None:
        """Create all ledger tables (idempotent)."""
        from ledger_kernel.db.base import Base
        import ledger_kernel.models  # noqa: F401

        Base.metadata.create_all(self.engine)
        logger.info("tables_created", extra={"tables": sorted(Base.metadata.tables)})

    def drop_tables(self) -> None:
        """Drop all ledger tables. Use with caution - primarily for testing."""
        from ledger_kernel.db.base import Base
        import ledger_kernel.models  # noqa: F401

        Base.metadata.drop_all(self.engine)

    def dispose(self) -> None:
        """Release all pooled connections."""
        self.engine.dispose()
