"""
Module: approval_kernel.db.engine
Responsibility: Engine construction, the process-wide session factory and
    the one place where transactions are committed.
Architecture position: Kernel > DB.  ``create_tables`` imports the models
    package; nothing else here reaches above db/.

Invariants enforced:
    - Any SQLAlchemy URL is accepted.  SQLite connections may be used from
      worker threads, and an in-memory SQLite database is shared through a
      single static connection so every session sees the same rows.
    - Services flush, ``session_scope`` commits.

Failure modes:
    - RuntimeError from the process-wide helpers before
      ``init_engine_from_url()`` has run.
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from approval_kernel.logging_config import get_logger

logger = get_logger("db.engine")

_IN_MEMORY_SQLITE = ("sqlite://", "sqlite:///:memory:")

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def build_engine(database_url: str, echo: bool = False, **kwargs) -> Engine:
    """Create an Engine for ``database_url`` without installing it globally."""
    if database_url.startswith("sqlite"):
        # Scheduler ticks and API handlers run on worker threads
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        if database_url in _IN_MEMORY_SQLITE:
            kwargs.setdefault("poolclass", StaticPool)
    else:
        kwargs.setdefault("pool_pre_ping", True)
    return create_engine(database_url, echo=echo, **kwargs)


def init_engine_from_url(database_url: str, echo: bool = False, **kwargs) -> Engine:
    """Install the process-wide engine and session factory (replacing any previous)."""
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
    _engine = build_engine(database_url, echo=echo, **kwargs)
    _session_factory = sessionmaker(bind=_engine, expire_on_commit=False)

    logger.info("engine_initialized", extra={"dialect": _engine.dialect.name, "echo": echo})
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    if _session_factory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _session_factory


@contextmanager
def session_scope(
    session_factory: sessionmaker[Session] | None = None,
) -> Generator[Session, None, None]:
    """
    One transaction: commit on normal exit, roll back and re-raise on error.

    Without an explicit factory the process-wide one is used.

    Usage:
        with session_scope(factory) as session:
            ApprovalWorkflow(session, org).approvals.submit(...)
    """
    session = (session_factory or get_session_factory())()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.debug("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables(engine: Engine) -> None:
    """Create every approval table that does not exist yet."""
    from approval_kernel.db.base import Base
    import approval_kernel.models  # noqa: F401  registers the mappers

    Base.metadata.create_all(engine)
