"""
Tests for delegation domain types.

Covers:
- Delegation status machine (terminal statuses, legal edges)
- DelegationScope.covers / overlaps (empty tuple means "all")
- Delegation date window: inclusive end date, lazy lapse
"""

from datetime import date
from uuid import uuid4

import pytest

from approval_kernel.domain.delegation import (
    DELEGATION_TRANSITIONS,
    TERMINAL_DELEGATION_STATUSES,
    Delegation,
    DelegationScope,
    DelegationStatus,
    can_transition_delegation,
)


def make_delegation(status=DelegationStatus.ACTIVE, start=date(2024, 3, 1),
                    end=date(2024, 3, 10), scope=DelegationScope()):
    return Delegation(
        delegation_id=uuid4(),
        delegator_id=uuid4(),
        delegate_id=uuid4(),
        scope=scope,
        start_date=start,
        end_date=end,
        status=status,
    )


class TestDelegationStateMachine:

    @pytest.mark.parametrize("status", sorted(TERMINAL_DELEGATION_STATUSES))
    def test_terminal_statuses_have_no_transitions(self, status):
        for target in DelegationStatus:
            assert not can_transition_delegation(status, target)

    def test_pending_approval_edges(self):
        assert can_transition_delegation(
            DelegationStatus.PENDING_APPROVAL, DelegationStatus.ACTIVE,
        )
        assert can_transition_delegation(
            DelegationStatus.PENDING_APPROVAL, DelegationStatus.REJECTED,
        )

    def test_active_cannot_be_rejected(self):
        assert not can_transition_delegation(
            DelegationStatus.ACTIVE, DelegationStatus.REJECTED,
        )
        assert DelegationStatus.REVOKED in DELEGATION_TRANSITIONS[DelegationStatus.ACTIVE]


class TestDelegationScope:

    def test_empty_scope_covers_everything(self):
        scope = DelegationScope()
        assert scope.covers("expense", 0)
        assert scope.covers("custom_thing", 5)

    def test_type_restriction(self):
        scope = DelegationScope(request_types=("leave",))
        assert scope.covers("leave", 0)
        assert not scope.covers("expense", 0)

    def test_level_restriction(self):
        scope = DelegationScope(escalation_levels=(1,))
        assert scope.covers("leave", 1)
        assert not scope.covers("leave", 0)

    def test_disjoint_types_do_not_overlap(self):
        a = DelegationScope(request_types=("leave",))
        b = DelegationScope(request_types=("expense",))
        assert not a.overlaps(b)

    def test_unrestricted_overlaps_restricted(self):
        assert DelegationScope().overlaps(DelegationScope(request_types=("leave",)))

    def test_disjoint_levels_do_not_overlap(self):
        a = DelegationScope(escalation_levels=(0,))
        b = DelegationScope(escalation_levels=(1, 2))
        assert not a.overlaps(b)


class TestDelegationWindow:

    def test_effective_through_end_date_inclusive(self):
        d = make_delegation()
        assert d.is_effective_on(date(2024, 3, 1))
        assert d.is_effective_on(date(2024, 3, 10))
        assert not d.is_effective_on(date(2024, 3, 11))

    def test_not_effective_before_start(self):
        assert not make_delegation().is_effective_on(date(2024, 2, 29))

    def test_lapsed_after_end_date(self):
        d = make_delegation()
        assert not d.is_lapsed(date(2024, 3, 10))
        assert d.is_lapsed(date(2024, 3, 11))

    def test_pending_delegation_is_never_effective(self):
        d = make_delegation(status=DelegationStatus.PENDING_APPROVAL)
        assert not d.is_effective_on(date(2024, 3, 5))

    def test_duration_days(self):
        assert make_delegation().duration_days == 9

    def test_dates_overlap(self):
        d = make_delegation()
        assert d.dates_overlap(date(2024, 3, 10), date(2024, 3, 20))
        assert not d.dates_overlap(date(2024, 3, 11), date(2024, 3, 20))
