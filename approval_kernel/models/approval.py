"""
Module: approval_kernel.models.approval
Responsibility: ORM persistence for approval requests and their decision
    history.

Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ only.

Invariants enforced:
    RL-1 -- Lifecycle state machine: DB check constraint limits status
            values; service layer enforces transition rules.
    RL-2 -- History ordering: UNIQUE(request_id, sequence).  Two writers
            that both read sequence n cannot both append n+1.
    RL-3 -- Optimistic concurrency: ``version`` is the mapper's
            version_id_col.  Every UPDATE carries ``WHERE version = :read``
            and bumps it, so a concurrent writer fails at flush with
            StaleDataError even if it passed the service-level check.
    RL-4 -- Append-only history: ORM listeners forbid UPDATE and DELETE of
            decision events.

Failure modes:
    - sqlalchemy.orm.exc.StaleDataError on concurrent request update (RL-3).
    - IntegrityError on duplicate history sequence (RL-2).
    - ImmutabilityViolationError on decision event UPDATE/DELETE (RL-4).
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from approval_kernel.db.base import Base, UUIDString
from approval_kernel.exceptions import ImmutabilityViolationError

if TYPE_CHECKING:
    from approval_kernel.domain.approval import ApprovalRequest, DecisionEvent


class ApprovalRequestModel(Base):
    """Persistent approval request.

    Contract:
        Terminal statuses (approved, rejected, auto_approved, expired)
        are never changed once set; only ``archived_at`` may be written
        afterwards.  Rows are never deleted.
    """

    __tablename__ = "approval_requests"

    __table_args__ = (
        # RL-1: Valid status values
        CheckConstraint(
            "status IN ('submitted', 'pending', 'approved', 'rejected', "
            "'escalated', 'auto_approved', 'expired')",
            name="ck_approval_requests_valid_status",
        ),
        CheckConstraint(
            "escalation_level >= 0",
            name="ck_approval_requests_level_non_negative",
        ),
        # Duplicate-submission lookup
        Index(
            "ix_approval_requests_requester_fingerprint",
            "requester_id", "fingerprint", "status",
        ),
        # Escalation sweep scan
        Index(
            "ix_approval_requests_status_changed",
            "status", "last_state_change_at",
        ),
        Index("ix_approval_requests_current_approver", "current_approver_id"),
    )

    request_id: Mapped[UUID] = mapped_column(
        UUIDString(), nullable=False, unique=True,
    )
    request_type: Mapped[str] = mapped_column(String(100), nullable=False)
    requester_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default="medium")
    title: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    amount: Mapped[Decimal | None] = mapped_column(Numeric(18, 4), nullable=True)
    days: Mapped[Decimal | None] = mapped_column(Numeric(18, 4), nullable=True)
    details: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    current_approver_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), nullable=True,
    )
    nominal_approver_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), nullable=True,
    )
    delegation_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    escalation_level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    fingerprint: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    last_state_change_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    resolved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    archived_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    history: Mapped[list["DecisionEventModel"]] = relationship(
        "DecisionEventModel",
        back_populates="request",
        primaryjoin="ApprovalRequestModel.request_id == DecisionEventModel.request_id",
        order_by="DecisionEventModel.sequence",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return (
            f"<ApprovalRequest {self.request_id} "
            f"{self.request_type} status={self.status} v{self.version}>"
        )

    @property
    def next_sequence(self) -> int:
        return len(self.history) + 1

    def to_dto(self) -> ApprovalRequest:
        """Convert ORM model to frozen domain DTO."""
        from approval_kernel.domain.approval import (
            ApprovalRequest as ApprovalRequestDTO,
            RequestPriority,
            RequestStatus,
        )

        return ApprovalRequestDTO(
            request_id=self.request_id,
            request_type=self.request_type,
            requester_id=self.requester_id,
            status=RequestStatus(self.status),
            version=self.version,
            created_at=self.created_at,
            priority=RequestPriority(self.priority),
            title=self.title,
            amount=self.amount,
            days=self.days,
            details=dict(self.details or {}),
            current_approver_id=self.current_approver_id,
            nominal_approver_id=self.nominal_approver_id,
            delegation_id=self.delegation_id,
            escalation_level=self.escalation_level,
            fingerprint=self.fingerprint,
            last_state_change_at=self.last_state_change_at,
            resolved_at=self.resolved_at,
            archived_at=self.archived_at,
            decision_history=tuple(e.to_dto() for e in self.history),
        )


class DecisionEventModel(Base):
    """Persistent decision history event. Append-only.

    Guarantees:
        - RL-2: UNIQUE(request_id, sequence).
        - RL-4: no UPDATE, no DELETE.
    """

    __tablename__ = "approval_decision_events"

    __table_args__ = (
        UniqueConstraint(
            "request_id", "sequence",
            name="uq_approval_decision_events_sequence",
        ),
        CheckConstraint(
            "action IN ('submit', 'auto_approve', 'approve', 'reject', "
            "'escalate', 'expire', 'withdraw')",
            name="ck_approval_decision_events_valid_action",
        ),
        Index("ix_approval_decision_events_actor", "actor_id"),
    )

    request_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("approval_requests.request_id"),
        nullable=False,
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    actor_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    comment: Mapped[str] = mapped_column(Text, nullable=False, default="")
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    request_version: Mapped[int] = mapped_column(Integer, nullable=False)
    escalation_level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    request: Mapped["ApprovalRequestModel"] = relationship(
        "ApprovalRequestModel",
        back_populates="history",
        foreign_keys=[request_id],
        primaryjoin="DecisionEventModel.request_id == ApprovalRequestModel.request_id",
    )

    def __repr__(self) -> str:
        return (
            f"<DecisionEvent request={self.request_id} "
            f"#{self.sequence} {self.action}>"
        )

    def to_dto(self) -> DecisionEvent:
        """Convert ORM model to frozen domain DTO."""
        from approval_kernel.domain.approval import (
            DecisionEvent as DecisionEventDTO,
            HistoryAction,
        )

        return DecisionEventDTO(
            sequence=self.sequence,
            action=HistoryAction(self.action),
            occurred_at=self.occurred_at,
            request_version=self.request_version,
            escalation_level=self.escalation_level,
            actor_id=self.actor_id,
            comment=self.comment,
        )


# =============================================================================
# ORM-Level Immutability for Decision History (RL-4)
# =============================================================================


@event.listens_for(DecisionEventModel, "before_update")
def prevent_decision_event_update(mapper, connection, target):
    """Prevent updates to decision history events."""
    raise ImmutabilityViolationError(
        entity_type="DecisionEvent",
        entity_id=f"{target.request_id}#{target.sequence}",
        reason="Decision history is append-only -- cannot modify",
    )


@event.listens_for(DecisionEventModel, "before_delete")
def prevent_decision_event_delete(mapper, connection, target):
    """Prevent deletion of decision history events."""
    raise ImmutabilityViolationError(
        entity_type="DecisionEvent",
        entity_id=f"{target.request_id}#{target.sequence}",
        reason="Decision history is append-only -- cannot delete",
    )
