"""
Approval request domain types (``approval_kernel.domain.approval``).

Responsibility
--------------
Pure value objects for the request lifecycle.  Defines the request state
machine, request types and priorities, decision history events and the
immutable request snapshot returned by services.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, ``selectors/``, or outer layers.

Invariants enforced
-------------------
* RL-1: Lifecycle state machine -- ``REQUEST_TRANSITIONS`` defines the
  only valid status transitions.  Terminal states have no outgoing edges.
* RL-2: Decision history is ordered by ``sequence`` (1..n per request).
* RL-3: ``version`` is a monotonic optimistic-concurrency counter; every
  history event records the version it was applied against.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID


# =========================================================================
# Request Status Lifecycle (RL-1)
# =========================================================================


class RequestStatus(str, Enum):
    """Approval request lifecycle states."""

    SUBMITTED = "submitted"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    ESCALATED = "escalated"
    AUTO_APPROVED = "auto_approved"
    EXPIRED = "expired"


# PENDING -> PENDING and ESCALATED -> ESCALATED are escalation-level bumps.
REQUEST_TRANSITIONS: dict[RequestStatus, frozenset[RequestStatus]] = {
    RequestStatus.SUBMITTED: frozenset({
        RequestStatus.AUTO_APPROVED,
        RequestStatus.PENDING,
        RequestStatus.ESCALATED,
    }),
    RequestStatus.PENDING: frozenset({
        RequestStatus.PENDING,
        RequestStatus.APPROVED,
        RequestStatus.REJECTED,
        RequestStatus.ESCALATED,
        RequestStatus.EXPIRED,
    }),
    RequestStatus.ESCALATED: frozenset({
        RequestStatus.PENDING,
        RequestStatus.ESCALATED,
        RequestStatus.APPROVED,
        RequestStatus.REJECTED,
        RequestStatus.EXPIRED,
    }),
    RequestStatus.APPROVED: frozenset(),
    RequestStatus.REJECTED: frozenset(),
    RequestStatus.AUTO_APPROVED: frozenset(),
    RequestStatus.EXPIRED: frozenset(),
}

TERMINAL_REQUEST_STATUSES: frozenset[RequestStatus] = frozenset({
    RequestStatus.APPROVED,
    RequestStatus.REJECTED,
    RequestStatus.AUTO_APPROVED,
    RequestStatus.EXPIRED,
})

OPEN_REQUEST_STATUSES: frozenset[RequestStatus] = frozenset({
    RequestStatus.SUBMITTED,
    RequestStatus.PENDING,
    RequestStatus.ESCALATED,
})

# Statuses in which a human decision is accepted.
DECIDABLE_REQUEST_STATUSES: frozenset[RequestStatus] = frozenset({
    RequestStatus.PENDING,
    RequestStatus.ESCALATED,
})


def can_transition(from_status: RequestStatus, to_status: RequestStatus) -> bool:
    """True if ``from_status -> to_status`` is a legal lifecycle edge."""
    return to_status in REQUEST_TRANSITIONS.get(from_status, frozenset())


# =========================================================================
# Request Types and Priority
# =========================================================================


class RequestType(str, Enum):
    """Built-in request types.  Tenants may add custom types in settings."""

    LEAVE = "leave"
    SCHEDULE_CHANGE = "schedule_change"
    EXPENSE = "expense"
    OTHER = "other"


BUILTIN_REQUEST_TYPES: tuple[str, ...] = tuple(t.value for t in RequestType)

# Types whose auto-approval is bounded by ``max_amount``.
MONETARY_REQUEST_TYPES: frozenset[str] = frozenset({RequestType.EXPENSE.value})

# Types whose auto-approval is bounded by ``max_days``.
DAY_BOUND_REQUEST_TYPES: frozenset[str] = frozenset({RequestType.LEAVE.value})


class RequestPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


# =========================================================================
# Decision History (RL-2, RL-3)
# =========================================================================


class HistoryAction(str, Enum):
    """Actions recorded in a request's decision history."""

    SUBMIT = "submit"
    AUTO_APPROVE = "auto_approve"
    APPROVE = "approve"
    REJECT = "reject"
    ESCALATE = "escalate"
    EXPIRE = "expire"
    WITHDRAW = "withdraw"


class DecisionAction(str, Enum):
    """Decisions a human approver can make."""

    APPROVE = "approve"
    REJECT = "reject"


DECISION_OUTCOMES: dict[DecisionAction, tuple[RequestStatus, HistoryAction]] = {
    DecisionAction.APPROVE: (RequestStatus.APPROVED, HistoryAction.APPROVE),
    DecisionAction.REJECT: (RequestStatus.REJECTED, HistoryAction.REJECT),
}


@dataclass(frozen=True)
class DecisionEvent:
    """One entry of a request's decision history. Immutable.

    ``actor_id`` is None for system actions (auto-approval, escalation,
    expiry).  ``request_version`` is the version the action was applied
    against.
    """

    sequence: int
    action: HistoryAction
    occurred_at: datetime
    request_version: int
    escalation_level: int = 0
    actor_id: UUID | None = None
    comment: str = ""


# =========================================================================
# Request Snapshot
# =========================================================================


@dataclass(frozen=True)
class ApprovalRequest:
    """Immutable snapshot of an approval request."""

    request_id: UUID
    request_type: str
    requester_id: UUID
    status: RequestStatus
    version: int
    created_at: datetime
    priority: RequestPriority = RequestPriority.MEDIUM
    title: str = ""
    amount: Decimal | None = None
    days: Decimal | None = None
    details: dict[str, Any] = field(default_factory=dict)
    current_approver_id: UUID | None = None
    nominal_approver_id: UUID | None = None
    delegation_id: UUID | None = None
    escalation_level: int = 0
    fingerprint: str | None = None
    last_state_change_at: datetime | None = None
    resolved_at: datetime | None = None
    archived_at: datetime | None = None
    decision_history: tuple[DecisionEvent, ...] = ()

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_REQUEST_STATUSES

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_REQUEST_STATUSES


@dataclass(frozen=True)
class EffectiveApprover:
    """Result of resolving who may decide a request right now.

    ``effective_approver_id`` is the delegate when ``delegation_id`` is
    set, otherwise the nominal approver.  Both are None when the org chain
    has no approver at the requested level.
    """

    escalation_level: int
    nominal_approver_id: UUID | None
    effective_approver_id: UUID | None
    delegation_id: UUID | None = None

    @property
    def is_delegated(self) -> bool:
        return self.delegation_id is not None

    @property
    def is_resolved(self) -> bool:
        return self.effective_approver_id is not None
