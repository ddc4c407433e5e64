"""
Module: approval_kernel.models.delegation
Responsibility: ORM persistence for delegations of approval authority.

Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ only.

Invariants enforced:
    DG-1 -- Valid status values (check constraint); transitions enforced by
            the delegation service.
    DG-3 -- ``end_date >= start_date`` (check constraint).
    DG-4 -- ``delegator_id <> delegate_id`` (check constraint).
    DG-5 -- Optimistic concurrency through ``version`` (version_id_col).

Failure modes:
    - IntegrityError on an inverted period or a self-delegation that
      bypassed service validation.
    - StaleDataError on concurrent status change.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Date,
    DateTime,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from approval_kernel.db.base import Base, UUIDString

if TYPE_CHECKING:
    from approval_kernel.domain.delegation import Delegation


class DelegationModel(Base):
    """Persistent delegation.

    ``scope_request_types`` / ``scope_escalation_levels`` are JSON lists;
    an empty list means "all".
    """

    __tablename__ = "approval_delegations"

    __table_args__ = (
        CheckConstraint(
            "status IN ('requested', 'pending_approval', 'active', "
            "'expired', 'revoked', 'rejected')",
            name="ck_approval_delegations_valid_status",
        ),
        CheckConstraint(
            "end_date >= start_date",
            name="ck_approval_delegations_period",
        ),
        CheckConstraint(
            "delegator_id <> delegate_id",
            name="ck_approval_delegations_not_self",
        ),
        Index(
            "ix_approval_delegations_delegator_status",
            "delegator_id", "status",
        ),
        Index("ix_approval_delegations_delegate", "delegate_id"),
        Index("ix_approval_delegations_end_date", "status", "end_date"),
    )

    delegation_id: Mapped[UUID] = mapped_column(
        UUIDString(), nullable=False, unique=True,
    )
    delegator_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    delegate_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    scope_request_types: Mapped[list] = mapped_column(
        JSON, nullable=False, default=list,
    )
    scope_escalation_levels: Mapped[list] = mapped_column(
        JSON, nullable=False, default=list,
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False, default="")
    approver_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    approver_role: Mapped[str | None] = mapped_column(String(50), nullable=True)
    approved_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    decided_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    revoked_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    revoked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    archived_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return (
            f"<Delegation {self.delegation_id} "
            f"{self.delegator_id}->{self.delegate_id} status={self.status}>"
        )

    def to_dto(self) -> Delegation:
        """Convert ORM model to frozen domain DTO."""
        from approval_kernel.domain.delegation import (
            Delegation as DelegationDTO,
            DelegationScope,
            DelegationStatus,
        )

        return DelegationDTO(
            delegation_id=self.delegation_id,
            delegator_id=self.delegator_id,
            delegate_id=self.delegate_id,
            scope=DelegationScope(
                request_types=tuple(self.scope_request_types or ()),
                escalation_levels=tuple(
                    int(level) for level in (self.scope_escalation_levels or ())
                ),
            ),
            start_date=self.start_date,
            end_date=self.end_date,
            status=DelegationStatus(self.status),
            version=self.version,
            reason=self.reason,
            approver_id=self.approver_id,
            approver_role=self.approver_role,
            approved_by=self.approved_by,
            created_at=self.created_at,
            decided_at=self.decided_at,
            revoked_by=self.revoked_by,
            revoked_at=self.revoked_at,
            archived_at=self.archived_at,
        )

    @classmethod
    def from_dto(cls, dto: Delegation) -> DelegationModel:
        """Create ORM model from domain DTO.  ``version`` is assigned on INSERT."""
        return cls(
            delegation_id=dto.delegation_id,
            delegator_id=dto.delegator_id,
            delegate_id=dto.delegate_id,
            scope_request_types=list(dto.scope.request_types),
            scope_escalation_levels=list(dto.scope.escalation_levels),
            start_date=dto.start_date,
            end_date=dto.end_date,
            status=dto.status.value,
            reason=dto.reason,
            approver_id=dto.approver_id,
            approver_role=dto.approver_role,
            approved_by=dto.approved_by,
            created_at=dto.created_at,
            decided_at=dto.decided_at,
            revoked_by=dto.revoked_by,
            revoked_at=dto.revoked_at,
            archived_at=dto.archived_at,
        )
