"""
Tests for effective-approver resolution (pure).

Covers:
- Nominal approver is chain[level]; beyond the chain -> unresolved
- A covering, effective delegation makes the delegate effective
- Lazy expiry: after end_date the nominal approver is effective again
- Scope: delegations that do not cover type/level are ignored
- Tie-break between several delegations: latest start date wins
- An excluded delegate (the requester) leaves the nominal approver effective
"""

from datetime import date
from uuid import uuid4

from hypothesis import given
from hypothesis import strategies as st

from approval_engines.routing import (
    nominal_approver,
    resolve_effective_approver,
    select_delegation,
)
from approval_kernel.domain.delegation import Delegation, DelegationScope, DelegationStatus

MANAGER = uuid4()
DIRECTOR = uuid4()
CHAIN = (MANAGER, DIRECTOR)


def delegation(delegator=MANAGER, delegate=None, start=date(2024, 3, 1),
               end=date(2024, 3, 10), scope=DelegationScope(),
               status=DelegationStatus.ACTIVE):
    return Delegation(
        delegation_id=uuid4(),
        delegator_id=delegator,
        delegate_id=delegate or uuid4(),
        scope=scope,
        start_date=start,
        end_date=end,
        status=status,
    )


class TestNominalApprover:

    def test_level_indexes_chain(self):
        assert nominal_approver(CHAIN, 0) == MANAGER
        assert nominal_approver(CHAIN, 1) == DIRECTOR

    def test_beyond_chain_is_none(self):
        assert nominal_approver(CHAIN, 2) is None
        assert nominal_approver((), 0) is None


class TestResolveEffectiveApprover:

    def test_no_delegation(self):
        result = resolve_effective_approver(CHAIN, 0, "leave", [], date(2024, 3, 5))
        assert result.effective_approver_id == MANAGER
        assert not result.is_delegated

    def test_active_delegation_makes_delegate_effective(self):
        d = delegation()
        result = resolve_effective_approver(CHAIN, 0, "leave", [d], date(2024, 3, 5))
        assert result.nominal_approver_id == MANAGER
        assert result.effective_approver_id == d.delegate_id
        assert result.delegation_id == d.delegation_id

    def test_lapsed_delegation_falls_back_to_nominal(self):
        d = delegation()
        result = resolve_effective_approver(CHAIN, 0, "leave", [d], date(2024, 3, 11))
        assert result.effective_approver_id == MANAGER

    def test_stored_active_but_lapsed_is_ignored(self):
        # Status still ACTIVE in storage; the date alone decides
        d = delegation(end=date(2024, 3, 4))
        assert d.status == DelegationStatus.ACTIVE
        result = resolve_effective_approver(CHAIN, 0, "leave", [d], date(2024, 3, 5))
        assert not result.is_delegated

    def test_scope_type_mismatch_is_ignored(self):
        d = delegation(scope=DelegationScope(request_types=("expense",)))
        result = resolve_effective_approver(CHAIN, 0, "leave", [d], date(2024, 3, 5))
        assert result.effective_approver_id == MANAGER

    def test_delegation_from_someone_else_is_ignored(self):
        d = delegation(delegator=DIRECTOR)
        result = resolve_effective_approver(CHAIN, 0, "leave", [d], date(2024, 3, 5))
        assert result.effective_approver_id == MANAGER

    def test_pending_delegation_is_ignored(self):
        d = delegation(status=DelegationStatus.PENDING_APPROVAL)
        result = resolve_effective_approver(CHAIN, 0, "leave", [d], date(2024, 3, 5))
        assert result.effective_approver_id == MANAGER

    def test_unresolvable_level(self):
        result = resolve_effective_approver(CHAIN, 5, "leave", [], date(2024, 3, 5))
        assert not result.is_resolved
        assert result.nominal_approver_id is None

    def test_excluded_delegate_falls_back_to_nominal(self):
        requester = uuid4()
        d = delegation(delegate=requester)
        result = resolve_effective_approver(
            CHAIN, 0, "leave", [d], date(2024, 3, 5), excluded_delegate_id=requester,
        )
        assert result.effective_approver_id == MANAGER
        assert not result.is_delegated

    def test_excluded_delegate_does_not_hide_others(self):
        requester = uuid4()
        own = delegation(delegate=requester, start=date(2024, 3, 3))
        other = delegation(start=date(2024, 3, 1))
        result = resolve_effective_approver(
            CHAIN, 0, "leave", [own, other], date(2024, 3, 5),
            excluded_delegate_id=requester,
        )
        assert result.effective_approver_id == other.delegate_id


class TestSelectDelegation:

    def test_latest_start_wins(self):
        older = delegation(start=date(2024, 3, 1))
        newer = delegation(start=date(2024, 3, 3))
        chosen = select_delegation([older, newer], MANAGER, "leave", 0, date(2024, 3, 5))
        assert chosen == newer

    @given(offset=st.integers(min_value=-30, max_value=30))
    def test_delegate_only_inside_window(self, offset):
        d = delegation()
        as_of = date.fromordinal(date(2024, 3, 5).toordinal() + offset)
        chosen = select_delegation([d], MANAGER, "leave", 0, as_of)
        assert (chosen is not None) == (d.start_date <= as_of <= d.end_date)
