"""
Module: approval_kernel.db.base
Responsibility: Declarative base and shared column types for the approval
    tables (requests, decision events, delegations, settings).
Architecture position: Kernel > DB.  Every model module imports from here;
    this module imports nothing from the rest of the package.

Invariants enforced:
    - Every row has a surrogate ``id`` (uuid4).  Business identifiers
      (``request_id``, ``delegation_id``, ``tenant_id``) are separate
      unique columns so the API never exposes the surrogate.
    - Magnitudes (amounts, day counts) are Numeric(18, 4), never float.
    - Timestamps are timezone-aware columns; SQLite stores them naive.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, ClassVar
from uuid import UUID, uuid4

from sqlalchemy import JSON, BigInteger, Date, DateTime, Numeric, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """UUIDs as 36-character strings, so one schema works on any backend."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    """Declarative base for the approval models."""

    type_annotation_map: ClassVar[dict] = {
        UUID: UUIDString(),
        Decimal: Numeric(18, 4),
        datetime: DateTime(timezone=True),
        date: Date(),
        int: BigInteger,
        dict[str, Any]: JSON,
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)
