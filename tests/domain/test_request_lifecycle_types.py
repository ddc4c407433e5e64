"""
Tests for the approval request domain types.

Covers:
- RL-1 state machine: terminal statuses have no outgoing edges, the
  transient submitted status only leads to pending/escalated/auto_approved
- DecisionAction -> (status, history action) mapping
- ApprovalRequest snapshot helpers
- EffectiveApprover flags
"""

from datetime import datetime
from uuid import uuid4

import pytest

from approval_kernel.domain.approval import (
    BUILTIN_REQUEST_TYPES,
    DECISION_OUTCOMES,
    REQUEST_TRANSITIONS,
    TERMINAL_REQUEST_STATUSES,
    ApprovalRequest,
    DecisionAction,
    EffectiveApprover,
    HistoryAction,
    RequestStatus,
    can_transition,
)


class TestRequestStateMachine:

    @pytest.mark.parametrize("status", sorted(TERMINAL_REQUEST_STATUSES))
    def test_terminal_statuses_have_no_transitions(self, status):
        assert REQUEST_TRANSITIONS[status] == frozenset()
        for target in RequestStatus:
            assert not can_transition(status, target)

    def test_submitted_cannot_be_decided_directly(self):
        assert not can_transition(RequestStatus.SUBMITTED, RequestStatus.APPROVED)
        assert can_transition(RequestStatus.SUBMITTED, RequestStatus.AUTO_APPROVED)
        assert can_transition(RequestStatus.SUBMITTED, RequestStatus.PENDING)

    def test_escalated_can_return_to_pending(self):
        assert can_transition(RequestStatus.ESCALATED, RequestStatus.PENDING)

    def test_every_status_has_an_entry(self):
        assert set(REQUEST_TRANSITIONS) == set(RequestStatus)


class TestDecisionOutcomes:

    def test_approve_maps_to_approved(self):
        assert DECISION_OUTCOMES[DecisionAction.APPROVE] == (
            RequestStatus.APPROVED, HistoryAction.APPROVE,
        )

    def test_reject_maps_to_rejected(self):
        assert DECISION_OUTCOMES[DecisionAction.REJECT] == (
            RequestStatus.REJECTED, HistoryAction.REJECT,
        )

    def test_outcomes_are_terminal(self):
        for status, _ in DECISION_OUTCOMES.values():
            assert status in TERMINAL_REQUEST_STATUSES


class TestApprovalRequestSnapshot:

    def _request(self, status):
        return ApprovalRequest(
            request_id=uuid4(),
            request_type="leave",
            requester_id=uuid4(),
            status=status,
            version=1,
            created_at=datetime(2024, 1, 1),
        )

    def test_open_and_terminal_flags(self):
        assert self._request(RequestStatus.PENDING).is_open
        assert not self._request(RequestStatus.PENDING).is_terminal
        assert self._request(RequestStatus.EXPIRED).is_terminal
        assert not self._request(RequestStatus.EXPIRED).is_open

    def test_builtin_types(self):
        assert set(BUILTIN_REQUEST_TYPES) == {"leave", "schedule_change", "expense", "other"}


class TestEffectiveApprover:

    def test_unresolved_when_no_approver(self):
        approver = EffectiveApprover(2, None, None)
        assert not approver.is_resolved
        assert not approver.is_delegated

    def test_delegated_when_delegation_present(self):
        approver = EffectiveApprover(0, uuid4(), uuid4(), delegation_id=uuid4())
        assert approver.is_resolved
        assert approver.is_delegated
