"""
approval_engines.delegation -- Pure delegation rule evaluation.

Responsibility:
    Eligibility of delegators and delegates, period validation, overlap
    detection, and the routing of a new delegation (immediately active or
    pending approval by whom).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import approval_kernel/domain/ types.  Org facts arrive as
    ``ActorProfile`` snapshots and pre-resolved leader IDs.

Invariants enforced:
    - DG-3: ``end_date >= start_date``.
    - DG-4: delegator != delegate.
    - DG-6: ``end_date - start_date <= max_delegation_duration_days``.
    - DG-7: Overlap -- two delegations from the same delegator overlap when
      their scopes intersect and their inclusive date ranges intersect.
    - DG-8: A delegation is never routed to its own delegator for approval.
    - Purity: no clock access, no I/O, no database.

Failure modes:
    - ``check_delegation_request`` returns a ``DelegationViolation`` instead
      of raising; the service maps it to the typed exception.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from enum import Enum
from uuid import UUID

from approval_kernel.domain.delegation import (
    Delegation,
    DelegationScope,
    DelegationStatus,
)
from approval_kernel.domain.org import ActorProfile, LeaderTier
from approval_kernel.domain.settings import (
    DelegationApprovalType,
    DelegationSettings,
    EligibilityScope,
)


# =========================================================================
# Eligibility
# =========================================================================


def is_eligible(
    scope: EligibilityScope,
    actor: ActorProfile,
    specific_user_ids: tuple[UUID, ...] = (),
    peer: ActorProfile | None = None,
) -> bool:
    """True if ``actor`` satisfies an eligibility scope.

    ``peer`` is the other party of the delegation; it is consulted only by
    SAME_GROUP_LEADERS.
    """
    tier = actor.leader_tier
    if scope == EligibilityScope.ALL_MANAGERS_LEADERS:
        return tier >= LeaderTier.GROUP_LEADER or actor.is_manager
    if scope == EligibilityScope.SPECIFIC_MANAGERS_LEADERS:
        return actor.user_id in specific_user_ids
    if scope == EligibilityScope.GROUP_LEADERS:
        return tier >= LeaderTier.GROUP_LEADER
    if scope == EligibilityScope.SAME_GROUP_LEADERS:
        return (
            tier >= LeaderTier.GROUP_LEADER
            and peer is not None
            and actor.group_id is not None
            and actor.group_id == peer.group_id
        )
    if scope == EligibilityScope.UPPER_GROUP_LEADERS:
        return tier >= LeaderTier.UPPER_GROUP_LEADER
    if scope == EligibilityScope.TOP_GROUP_LEADERS:
        return tier >= LeaderTier.TOP_GROUP_LEADER
    return False


# =========================================================================
# Request validation
# =========================================================================


class ViolationKind(str, Enum):
    SELF_DELEGATION = "self_delegation"
    DELEGATOR_NOT_ELIGIBLE = "delegator_not_eligible"
    DELEGATE_NOT_ELIGIBLE = "delegate_not_eligible"
    INVALID_PERIOD = "invalid_period"
    DURATION_EXCEEDED = "duration_exceeded"


@dataclass(frozen=True)
class DelegationViolation:
    kind: ViolationKind
    reason: str
    duration_days: int = 0
    max_days: int = 0


def check_delegation_request(
    settings: DelegationSettings,
    delegator: ActorProfile,
    delegate: ActorProfile,
    start_date: date,
    end_date: date,
) -> DelegationViolation | None:
    """Validate a delegation request against policy.

    Checks run in a fixed order: self-delegation, delegator eligibility,
    delegate eligibility, period, duration.  The first failure is
    returned.
    """
    if delegator.user_id == delegate.user_id:
        return DelegationViolation(
            ViolationKind.SELF_DELEGATION, "delegator and delegate are the same user",
        )

    if not is_eligible(
        settings.who_can_delegate, delegator, settings.specific_user_ids, delegate,
    ):
        return DelegationViolation(
            ViolationKind.DELEGATOR_NOT_ELIGIBLE,
            f"delegator outside '{settings.who_can_delegate.value}'",
        )

    if not is_eligible(
        settings.who_can_be_delegated, delegate, settings.specific_user_ids, delegator,
    ):
        return DelegationViolation(
            ViolationKind.DELEGATE_NOT_ELIGIBLE,
            f"delegate outside '{settings.who_can_be_delegated.value}'",
        )

    if end_date < start_date:
        return DelegationViolation(
            ViolationKind.INVALID_PERIOD, "end date precedes start date",
        )

    duration = (end_date - start_date).days
    if duration > settings.max_delegation_duration_days:
        return DelegationViolation(
            ViolationKind.DURATION_EXCEEDED,
            "duration exceeds maximum",
            duration_days=duration,
            max_days=settings.max_delegation_duration_days,
        )

    return None


# =========================================================================
# Overlap (DG-7)
# =========================================================================


def find_overlapping(
    existing: Iterable[Delegation],
    delegator_id: UUID,
    scope: DelegationScope,
    start_date: date,
    end_date: date,
    as_of: date,
    exclude_id: UUID | None = None,
) -> Delegation | None:
    """First active, non-lapsed delegation from ``delegator_id`` that overlaps."""
    for d in existing:
        if d.delegation_id == exclude_id:
            continue
        if d.delegator_id != delegator_id:
            continue
        if d.status != DelegationStatus.ACTIVE or d.is_lapsed(as_of):
            continue
        if d.scope.overlaps(scope) and d.dates_overlap(start_date, end_date):
            return d
    return None


# =========================================================================
# Routing
# =========================================================================


@dataclass(frozen=True)
class DelegationRouting:
    """Where a new delegation goes.

    ``approver_id`` None with ``approver_role`` ADMIN means any admin may
    decide.
    """

    status: DelegationStatus
    approver_role: DelegationApprovalType | None = None
    approver_id: UUID | None = None

    @property
    def is_immediate(self) -> bool:
        return self.status == DelegationStatus.ACTIVE


def route_delegation(
    settings: DelegationSettings,
    delegator: ActorProfile,
    delegate: ActorProfile,
    upper_group_leader_id: UUID | None = None,
    top_group_leader_id: UUID | None = None,
) -> DelegationRouting:
    """Decide the initial status of a valid delegation request.

    Leader IDs are those above the delegator.  An UPPER/TOP routing with no
    such leader, or whose leader is the delegator, falls back to admin
    routing.
    """
    if not settings.require_approval:
        return DelegationRouting(DelegationStatus.ACTIVE)

    if (
        settings.auto_approve_for_upper_leaders
        and delegate.leader_tier >= LeaderTier.UPPER_GROUP_LEADER
    ):
        return DelegationRouting(DelegationStatus.ACTIVE)

    approval_type = settings.who_approves_delegation
    if approval_type == DelegationApprovalType.DELEGATE_DIRECT:
        approver_id = delegate.user_id
    elif approval_type == DelegationApprovalType.UPPER_GROUP_LEADER:
        approver_id = upper_group_leader_id
    elif approval_type == DelegationApprovalType.TOP_GROUP_LEADER:
        approver_id = top_group_leader_id
    else:
        approver_id = None

    # DG-8
    if approver_id is None or approver_id == delegator.user_id:
        approval_type = DelegationApprovalType.ADMIN
        approver_id = None

    return DelegationRouting(
        DelegationStatus.PENDING_APPROVAL,
        approver_role=approval_type,
        approver_id=approver_id,
    )
