"""
Module: approval_kernel.models.settings
Responsibility: ORM persistence for the tenant approval settings record.

Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    PS-1 -- Exactly one settings row per tenant (UNIQUE tenant_id).
    PS-2 -- Whole-record replacement: ``document`` holds the complete
            serialized settings.
    PS-3 -- ``version`` is the version_id_col so two concurrent
            replacements cannot both win; ``checksum`` is the SHA-256 of
            the canonical document.

Failure modes:
    - IntegrityError if two writers create the first record concurrently.
    - StaleDataError on concurrent replacement.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from approval_kernel.db.base import Base, UUIDString


class ApprovalSettingsModel(Base):
    """Persistent tenant settings document."""

    __tablename__ = "approval_settings"

    tenant_id: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    document: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    checksum: Mapped[str] = mapped_column(String(64), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    updated_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<ApprovalSettings tenant={self.tenant_id} v{self.version}>"
