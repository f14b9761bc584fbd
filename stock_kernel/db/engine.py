"""
Database engine and session plumbing for the stock kernel.

One engine per process, created by ``init_engine_from_url()``.  Services
receive a ``Session``; only this module and the outer service layer decide
where sessions come from and where a transaction ends.

Backends:
    PostgreSQL is the production store.  Connections run at READ COMMITTED;
    inventory rows and the ledger counter are locked by the
    ``INSERT ... ON CONFLICT DO UPDATE`` statements that change them.
    SQLite serves local runs and the default test suite.  Its driver is
    told to stay out of transaction management so SAVEPOINT and rollback
    behave the same as on PostgreSQL.
"""

import atexit
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from stock_kernel.logging_config import get_logger

logger = get_logger("db.engine")

_NOT_INITIALIZED = "Engine not initialized. Call init_engine_from_url() first."

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def _sqlite_engine(url, echo: bool) -> Engine:
    options: dict = {"connect_args": {"check_same_thread": False}}
    if url.database in (None, "", ":memory:"):
        # in-memory data lives on a single connection
        options["poolclass"] = StaticPool
    engine = create_engine(url, echo=echo, **options)

    @event.listens_for(engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
) -> Engine:
    """
    Create the process engine and session factory, replacing any previous one.

    Pool arguments apply to PostgreSQL only.
    """
    global _engine, _session_factory

    url = make_url(database_url)
    backend = url.get_backend_name()

    if backend == "sqlite":
        engine = _sqlite_engine(url, echo)
    else:
        engine = create_engine(
            url,
            echo=echo,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=pool_pre_ping,
            pool_timeout=pool_timeout,
            pool_recycle=pool_recycle,
            isolation_level="READ COMMITTED",
        )

    _engine = engine
    _session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    logger.info(
        "engine_initialized",
        extra={
            "dialect": backend,
            "database": url.database,
            "pool_size": None if backend == "sqlite" else pool_size,
        },
    )
    return engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """Factory for callers that open their own sessions, e.g. one per thread."""
    if _session_factory is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _session_factory


def get_session() -> Session:
    return get_session_factory()()


@contextmanager
def session_scope(
    factory: sessionmaker[Session] | None = None,
) -> Generator[Session, None, None]:
    """
    Open a session, commit it if the block succeeds, roll it back otherwise.

    The session is always closed, and exceptions propagate unchanged::

        with session_scope() as session:
            MovementEngine(session, auto_commit=False).adjust_inventory(...)
    """
    session = (factory or get_session_factory())()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def _metadata():
    from stock_kernel.db.base import Base
    import stock_kernel.models  # noqa: F401  (registers every table)

    return Base.metadata


def create_tables() -> None:
    metadata = _metadata()
    metadata.create_all(get_engine())
    logger.info("tables_created", extra={"table_count": len(metadata.sorted_tables)})


def drop_tables() -> None:
    """Drop every stock table (tests and local resets)."""
    _metadata().drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the factory."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


@atexit.register
def _dispose_on_exit() -> None:
    if _engine is not None:
        _engine.dispose()
