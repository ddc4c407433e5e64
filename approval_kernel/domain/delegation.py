"""
Delegation domain types (``approval_kernel.domain.delegation``).

Responsibility
--------------
Pure value objects for delegation of approval authority: the delegation
status machine, the scope a delegation covers, and the immutable
delegation snapshot.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* DG-1: Status machine -- ``DELEGATION_TRANSITIONS`` defines the only
  valid status changes.
* DG-2: Lazy expiry -- ``Delegation.is_effective_on`` is False once the
  date is past ``end_date`` regardless of stored status.
* DG-3: Dates are inclusive on both ends.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from uuid import UUID


class DelegationStatus(str, Enum):
    """Delegation lifecycle states."""

    REQUESTED = "requested"
    PENDING_APPROVAL = "pending_approval"
    ACTIVE = "active"
    EXPIRED = "expired"
    REVOKED = "revoked"
    REJECTED = "rejected"


DELEGATION_TRANSITIONS: dict[DelegationStatus, frozenset[DelegationStatus]] = {
    DelegationStatus.REQUESTED: frozenset({
        DelegationStatus.PENDING_APPROVAL,
        DelegationStatus.ACTIVE,
        DelegationStatus.REJECTED,
    }),
    DelegationStatus.PENDING_APPROVAL: frozenset({
        DelegationStatus.ACTIVE,
        DelegationStatus.REJECTED,
        DelegationStatus.REVOKED,
        DelegationStatus.EXPIRED,
    }),
    DelegationStatus.ACTIVE: frozenset({
        DelegationStatus.EXPIRED,
        DelegationStatus.REVOKED,
    }),
    DelegationStatus.EXPIRED: frozenset(),
    DelegationStatus.REVOKED: frozenset(),
    DelegationStatus.REJECTED: frozenset(),
}

TERMINAL_DELEGATION_STATUSES: frozenset[DelegationStatus] = frozenset({
    DelegationStatus.EXPIRED,
    DelegationStatus.REVOKED,
    DelegationStatus.REJECTED,
})


def can_transition_delegation(
    from_status: DelegationStatus,
    to_status: DelegationStatus,
) -> bool:
    return to_status in DELEGATION_TRANSITIONS.get(from_status, frozenset())


@dataclass(frozen=True)
class DelegationScope:
    """What a delegation covers.

    An empty ``request_types`` covers every request type; an empty
    ``escalation_levels`` covers every level.
    """

    request_types: tuple[str, ...] = ()
    escalation_levels: tuple[int, ...] = ()

    def covers(self, request_type: str, escalation_level: int) -> bool:
        if self.request_types and request_type not in self.request_types:
            return False
        if self.escalation_levels and escalation_level not in self.escalation_levels:
            return False
        return True

    def overlaps(self, other: DelegationScope) -> bool:
        """True if some (type, level) pair is covered by both scopes."""
        if self.request_types and other.request_types:
            if not set(self.request_types) & set(other.request_types):
                return False
        if self.escalation_levels and other.escalation_levels:
            if not set(self.escalation_levels) & set(other.escalation_levels):
                return False
        return True


@dataclass(frozen=True)
class Delegation:
    """Immutable snapshot of a delegation of approval authority."""

    delegation_id: UUID
    delegator_id: UUID
    delegate_id: UUID
    scope: DelegationScope
    start_date: date
    end_date: date
    status: DelegationStatus
    version: int = 1
    reason: str = ""
    approver_id: UUID | None = None
    approver_role: str | None = None
    approved_by: UUID | None = None
    created_at: datetime | None = None
    decided_at: datetime | None = None
    revoked_by: UUID | None = None
    revoked_at: datetime | None = None
    archived_at: datetime | None = None

    @property
    def duration_days(self) -> int:
        return (self.end_date - self.start_date).days

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_DELEGATION_STATUSES

    def is_lapsed(self, as_of: date) -> bool:
        return as_of > self.end_date

    def is_effective_on(self, as_of: date) -> bool:
        """Active and within its inclusive date window on ``as_of`` (DG-2)."""
        return (
            self.status == DelegationStatus.ACTIVE
            and self.start_date <= as_of <= self.end_date
        )

    def dates_overlap(self, start_date: date, end_date: date) -> bool:
        return self.start_date <= end_date and start_date <= self.end_date
