"""
Module: fieldops_kernel.db.engine
Responsibility: One process-wide engine and session factory for the local
    record mirror, plus ``session_scope`` for callers that write.
Architecture position: Kernel > DB.  ``create_tables`` imports the models
    package so every table is registered before ``create_all``.

Invariants enforced:
    - SQLite gets a StaticPool, so ``sqlite://`` (in memory) keeps one
      database for the life of the engine.  Server databases get a
      pre-pinged QueuePool.
    - ``session_scope`` commits on success and rolls back on any exception.

Failure modes:
    - RuntimeError from the getters before ``init_engine_from_url``.
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from fieldops_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None

_NOT_READY = "Mirror database not initialized; call init_engine_from_url() first."


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 10,
) -> Engine:
    """
    Point the mirror at ``database_url``, replacing any previous engine.

    Args:
        database_url: ``postgresql://...`` or ``sqlite://`` / ``sqlite:///file.db``.
        echo: Log every SQL statement.
        pool_size: Pooled connections (server databases only).
        max_overflow: Extra connections beyond ``pool_size``.
    """
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()

    url = make_url(database_url)
    dialect = url.get_backend_name()
    if dialect == "sqlite":
        pool_args = {
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }
    else:
        pool_args = {
            "poolclass": QueuePool,
            "pool_size": pool_size,
            "max_overflow": max_overflow,
            "pool_pre_ping": True,
        }

    _engine = create_engine(url, echo=echo, **pool_args)
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info("engine_initialized", extra={"dialect": dialect, "echo": echo})
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_READY)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    if _SessionFactory is None:
        raise RuntimeError(_NOT_READY)
    return _SessionFactory


def get_session() -> Session:
    """A new session; the caller closes it."""
    return get_session_factory()()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Commit-or-rollback around a block of work.

    Usage:
        with session_scope() as session:
            ArchiveService(session, clock).restore("job", job_id)
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


def create_tables() -> None:
    from fieldops_kernel.db.base import Base
    import fieldops_kernel.models  # noqa: F401

    Base.metadata.create_all(get_engine())


def drop_tables() -> None:
    """Drop every mirror table.  Test use only."""
    from fieldops_kernel.db.base import Base
    import fieldops_kernel.models  # noqa: F401

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None
