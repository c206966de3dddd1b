"""
Module: workflow_kernel.db.engine
Responsibility: Engine construction, the process-wide session factory and
    the commit boundary (``session_scope``).

Services flush but never commit; the caller owning ``session_scope()``
decides.  Concurrency guarantees come from conditional UPDATEs and unique
indexes, so PostgreSQL runs at plain READ COMMITTED.

SQLite needs two adjustments to behave like the production store:
    - pysqlite's own transaction handling is switched off and SQLAlchemy
      emits BEGIN, otherwise SAVEPOINT/ROLLBACK TO silently misbehave and
      the best-effort notification and audit writes could not be undone
      one at a time.
    - Foreign keys are enforced per connection.
"""

import atexit
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from workflow_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None

_NOT_INITIALIZED = "Engine not initialized. Call init_engine_from_url() first."


def _sqlite_engine(url, echo: bool) -> Engine:
    options: dict = {"echo": echo, "connect_args": {"check_same_thread": False}}
    if url.database in (None, "", ":memory:"):
        # One shared connection, or every session would get its own empty db.
        options["poolclass"] = StaticPool
    engine = create_engine(url, **options)

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        dbapi_connection.execute("PRAGMA foreign_keys=ON")

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


def build_engine(
    database_url: str,
    echo: bool = False,
    pool_size: int = 10,
    max_overflow: int = 5,
    pool_timeout: int = 30,
) -> Engine:
    """Create an Engine for ``database_url`` without touching module state."""
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        return _sqlite_engine(url, echo)

    return create_engine(
        url,
        echo=echo,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_timeout=pool_timeout,
        pool_pre_ping=True,
        pool_recycle=1800,
        isolation_level="READ COMMITTED",
    )


def init_engine_from_url(database_url: str, **engine_options) -> Engine:
    """
    Build the process-wide engine and session factory.

    ``engine_options`` are passed to :func:`build_engine`.  Calling this
    again disposes the previous engine first.
    """
    global _engine, _SessionFactory

    reset_engine()
    _engine = build_engine(database_url, **engine_options)
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={
            "dialect": _engine.dialect.name,
            "pool_size": engine_options.get("pool_size"),
            "echo": engine_options.get("echo", False),
        },
    )
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session() -> Session:
    if _SessionFactory is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _SessionFactory()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    One unit of work: commit on success, roll back and re-raise on error.

        with session_scope() as session:
            ApprovalEngine(session).submit_document("expense", expense_id, actor_id)
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables(engine: Engine | None = None) -> None:
    # Importing the models package registers every table on the metadata.
    from workflow_kernel import models  # noqa: F401
    from workflow_kernel.db.base import Base

    Base.metadata.create_all(engine or get_engine())
    logger.info("tables_created", extra={"table_count": len(Base.metadata.sorted_tables)})


def drop_tables(engine: Engine | None = None) -> None:
    from workflow_kernel import models  # noqa: F401
    from workflow_kernel.db.base import Base

    Base.metadata.drop_all(engine or get_engine())


def reset_engine() -> None:
    """Dispose and forget the process-wide engine."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


atexit.register(reset_engine)
