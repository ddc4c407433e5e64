"""
approval_engines.routing -- Pure effective-approver resolution.

Responsibility:
    Given the requester's approval chain, the escalation level and the
    delegator's delegations, determine who may decide a request on a
    given date.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import approval_kernel/domain/ types.

Invariants enforced:
    - RT-1: The nominal approver at level n is ``chain[n]``; a chain too
      short for the level resolves to no approver.
    - RT-2: Lazy expiry -- only delegations effective on ``as_of`` count,
      whatever their stored status says.
    - RT-3: One hop only.  A delegate's own delegations are never followed.
    - RT-4: Deterministic choice when several delegations qualify: latest
      ``start_date`` wins, ties broken by ``delegation_id``.
    - RT-5: A delegation whose delegate is ``excluded_delegate_id`` (the
      requester, while self-approval is off) is passed over, so the
      nominal approver stays effective.
    - Purity: no clock access, no I/O, no database.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date
from uuid import UUID

from approval_kernel.domain.approval import EffectiveApprover
from approval_kernel.domain.delegation import Delegation


def nominal_approver(chain: Sequence[UUID], escalation_level: int) -> UUID | None:
    """RT-1: the org-chart approver at ``escalation_level``."""
    if 0 <= escalation_level < len(chain):
        return chain[escalation_level]
    return None


def select_delegation(
    delegations: Iterable[Delegation],
    delegator_id: UUID,
    request_type: str,
    escalation_level: int,
    as_of: date,
    excluded_delegate_id: UUID | None = None,
) -> Delegation | None:
    """Pick the delegation from ``delegator_id`` that governs a request.

    Returns None when no delegation is effective on ``as_of`` for the
    request's type and level.
    """
    candidates = [
        d for d in delegations
        if d.delegator_id == delegator_id
        and d.is_effective_on(as_of)
        and d.scope.covers(request_type, escalation_level)
        # RT-5
        and (excluded_delegate_id is None or d.delegate_id != excluded_delegate_id)
    ]
    if not candidates:
        return None
    # RT-4
    candidates.sort(key=lambda d: (d.start_date, str(d.delegation_id)), reverse=True)
    return candidates[0]


def resolve_effective_approver(
    chain: Sequence[UUID],
    escalation_level: int,
    request_type: str,
    delegations: Iterable[Delegation],
    as_of: date,
    excluded_delegate_id: UUID | None = None,
) -> EffectiveApprover:
    """Resolve nominal and effective approver for a request.

    Args:
        chain: Requester's approval chain, index 0 first.
        escalation_level: Current escalation level.
        request_type: Request type, matched against delegation scope.
        delegations: Delegations granted by the nominal approver (others
            are ignored).
        as_of: Date the resolution applies to.
        excluded_delegate_id: Delegate to pass over, normally the requester
            when self-approval is not allowed.
    """
    nominal = nominal_approver(chain, escalation_level)
    if nominal is None:
        return EffectiveApprover(
            escalation_level=escalation_level,
            nominal_approver_id=None,
            effective_approver_id=None,
        )

    delegation = select_delegation(
        delegations, nominal, request_type, escalation_level, as_of,
        excluded_delegate_id,
    )
    if delegation is None:
        return EffectiveApprover(
            escalation_level=escalation_level,
            nominal_approver_id=nominal,
            effective_approver_id=nominal,
        )

    return EffectiveApprover(
        escalation_level=escalation_level,
        nominal_approver_id=nominal,
        effective_approver_id=delegation.delegate_id,
        delegation_id=delegation.delegation_id,
    )
