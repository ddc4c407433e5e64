"""
Module: approval_kernel.selectors.approval_selector
Responsibility: Read-only queries over approval requests: filtered listing,
    an approver's inbox (including requests reachable through delegation)
    and aggregate statistics.
Architecture position: Kernel > Selectors.  May import from models/,
    domain/ and selectors/base.py.

Invariants enforced:
    - Read-only: no mutations performed on any queried data.
    - Inbox membership is computed at read time: a delegate sees a request
      only while a covering delegation is effective, and the nominal
      approver sees it only while none is (lazy expiry).
    - Archived requests are excluded unless explicitly requested.

Failure modes:
    - Returns empty results when nothing matches; never raises on absence.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, or_, select

from approval_kernel.domain.approval import (
    DECIDABLE_REQUEST_STATUSES,
    ApprovalRequest,
    HistoryAction,
    RequestStatus,
)
from approval_kernel.domain.clock import Clock, SystemClock, as_utc
from approval_kernel.domain.delegation import DelegationStatus
from approval_kernel.models.approval import ApprovalRequestModel, DecisionEventModel
from approval_kernel.models.delegation import DelegationModel
from approval_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class ApproverCount:
    approver_id: UUID
    decisions: int


@dataclass(frozen=True)
class ApprovalStats:
    """Aggregate counts over non-archived requests."""

    total: int
    by_status: dict[str, int] = field(default_factory=dict)
    by_type: dict[str, int] = field(default_factory=dict)
    average_decision_hours: Decimal | None = None
    top_approvers: tuple[ApproverCount, ...] = ()


class ApprovalSelector(BaseSelector[ApprovalRequestModel]):
    """Read-only access to approval requests."""

    def __init__(self, session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def get(self, request_id: UUID) -> ApprovalRequest | None:
        model = self.session.execute(
            select(ApprovalRequestModel).where(
                ApprovalRequestModel.request_id == request_id,
            )
        ).scalar_one_or_none()
        return model.to_dto() if model is not None else None

    def list_requests(
        self,
        status: RequestStatus | None = None,
        requester_id: UUID | None = None,
        request_type: str | None = None,
        include_archived: bool = False,
        limit: int | None = None,
    ) -> list[ApprovalRequest]:
        """Requests matching the filters, newest first."""
        stmt = select(ApprovalRequestModel)
        if status is not None:
            stmt = stmt.where(ApprovalRequestModel.status == status.value)
        if requester_id is not None:
            stmt = stmt.where(ApprovalRequestModel.requester_id == requester_id)
        if request_type is not None:
            stmt = stmt.where(ApprovalRequestModel.request_type == request_type)
        if not include_archived:
            stmt = stmt.where(ApprovalRequestModel.archived_at.is_(None))
        stmt = stmt.order_by(
            ApprovalRequestModel.created_at.desc(),
            ApprovalRequestModel.request_id,
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return [m.to_dto() for m in self.session.execute(stmt).scalars()]

    def pending_for_approver(
        self,
        actor_id: UUID,
        as_of: date | None = None,
        allow_self_approval: bool = False,
    ) -> list[ApprovalRequest]:
        """Open requests ``actor_id`` may decide on ``as_of``, oldest first.

        Includes requests whose nominal approver has an effective delegation
        to ``actor_id`` covering the request's type and escalation level.
        Unless ``allow_self_approval``, a delegation to the request's own
        requester is ignored and the request stays with the nominal approver.
        """
        as_of = as_of or self._clock.today()

        active = [
            m.to_dto()
            for m in self.session.execute(
                select(DelegationModel).where(
                    DelegationModel.status == DelegationStatus.ACTIVE.value,
                )
            ).scalars()
        ]
        effective = [d for d in active if d.is_effective_on(as_of)]
        delegators = {d.delegator_id for d in effective if d.delegate_id == actor_id}

        candidates = self.session.execute(
            select(ApprovalRequestModel).where(
                ApprovalRequestModel.status.in_(
                    [s.value for s in DECIDABLE_REQUEST_STATUSES]
                ),
                ApprovalRequestModel.archived_at.is_(None),
                or_(
                    ApprovalRequestModel.nominal_approver_id == actor_id,
                    ApprovalRequestModel.nominal_approver_id.in_(delegators),
                ),
            ).order_by(
                ApprovalRequestModel.created_at,
                ApprovalRequestModel.request_id,
            )
        ).scalars().all()

        inbox = []
        for model in candidates:
            covering = {
                d.delegate_id
                for d in effective
                if d.delegator_id == model.nominal_approver_id
                and d.scope.covers(model.request_type, model.escalation_level)
                and (allow_self_approval or d.delegate_id != model.requester_id)
            }
            if covering:
                if actor_id in covering:
                    inbox.append(model.to_dto())
            elif model.nominal_approver_id == actor_id:
                inbox.append(model.to_dto())
        return inbox

    def unassigned(self) -> list[ApprovalRequest]:
        """Open requests with no approver left in the chain (admins decide)."""
        models = self.session.execute(
            select(ApprovalRequestModel).where(
                ApprovalRequestModel.status.in_(
                    [s.value for s in DECIDABLE_REQUEST_STATUSES]
                ),
                ApprovalRequestModel.archived_at.is_(None),
                ApprovalRequestModel.nominal_approver_id.is_(None),
            ).order_by(ApprovalRequestModel.created_at)
        ).scalars().all()
        return [m.to_dto() for m in models]

    def open_requests(self) -> list[tuple[UUID, int]]:
        """(request_id, version) of every decidable request, for sweeps."""
        rows = self.session.execute(
            select(ApprovalRequestModel.request_id, ApprovalRequestModel.version)
            .where(
                ApprovalRequestModel.status.in_(
                    [s.value for s in DECIDABLE_REQUEST_STATUSES]
                ),
            )
            .order_by(ApprovalRequestModel.last_state_change_at)
        ).all()
        return [(row.request_id, row.version) for row in rows]

    def stats(self, top: int = 5) -> ApprovalStats:
        by_status = dict(
            self.session.execute(
                select(ApprovalRequestModel.status, func.count())
                .where(ApprovalRequestModel.archived_at.is_(None))
                .group_by(ApprovalRequestModel.status)
            ).all()
        )
        by_type = dict(
            self.session.execute(
                select(ApprovalRequestModel.request_type, func.count())
                .where(ApprovalRequestModel.archived_at.is_(None))
                .group_by(ApprovalRequestModel.request_type)
            ).all()
        )

        # Manual decisions only; auto-approval has no decision latency
        decided = self.session.execute(
            select(ApprovalRequestModel.created_at, ApprovalRequestModel.resolved_at)
            .where(
                ApprovalRequestModel.archived_at.is_(None),
                ApprovalRequestModel.status.in_(
                    [RequestStatus.APPROVED.value, RequestStatus.REJECTED.value]
                ),
            )
        ).all()
        average = None
        if decided:
            seconds = sum(
                (as_utc(row.resolved_at) - as_utc(row.created_at)).total_seconds()
                for row in decided
            )
            average = (
                Decimal(str(seconds)) / Decimal(3600) / Decimal(len(decided))
            ).quantize(Decimal("0.01"))

        actors = self.session.execute(
            select(DecisionEventModel.actor_id).where(
                DecisionEventModel.action.in_(
                    [HistoryAction.APPROVE.value, HistoryAction.REJECT.value]
                ),
                DecisionEventModel.actor_id.is_not(None),
            )
        ).scalars().all()
        counts = Counter(actors)
        ranked = sorted(counts.items(), key=lambda item: (-item[1], str(item[0])))

        return ApprovalStats(
            total=sum(by_status.values()),
            by_status=by_status,
            by_type=by_type,
            average_decision_hours=average,
            top_approvers=tuple(
                ApproverCount(approver_id=a, decisions=n) for a, n in ranked[:top]
            ),
        )
