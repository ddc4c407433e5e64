"""Database layer - declarative base, engine and transaction scope."""

from approval_kernel.db.base import Base, UUIDString
from approval_kernel.db.engine import (
    build_engine,
    create_tables,
    get_session_factory,
    init_engine_from_url,
    session_scope,
)

__all__ = [
    "Base",
    "UUIDString",
    "build_engine",
    "create_tables",
    "get_session_factory",
    "init_engine_from_url",
    "session_scope",
]
