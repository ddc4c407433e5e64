"""
Tests for the auto-approval engine (pure).

Covers:
- Disabled / type not allowed -> not eligible
- Bounded types require their magnitude (expense: amount, leave: days)
- Boundaries are inclusive
- Property: an eligible decision never has a magnitude above its bound
"""

from decimal import Decimal

from hypothesis import given
from hypothesis import strategies as st

from approval_engines.auto_approval import evaluate_auto_approval
from approval_kernel.domain.settings import AutoApprovalSettings

ENABLED = AutoApprovalSettings(
    enabled=True,
    max_amount=Decimal("1000"),
    max_days=Decimal("3"),
    allowed_types=("leave", "expense", "schedule_change"),
)

magnitudes = st.one_of(
    st.none(),
    st.decimals(min_value=0, max_value=100000, places=2, allow_nan=False),
)


class TestAutoApprovalRules:

    def test_disabled_is_never_eligible(self):
        settings = AutoApprovalSettings(enabled=False, allowed_types=("leave",))
        decision = evaluate_auto_approval(settings, "leave", days=Decimal("1"))
        assert not decision.eligible

    def test_type_not_allowed(self):
        decision = evaluate_auto_approval(ENABLED, "other")
        assert not decision.eligible
        assert "other" in decision.reason

    def test_leave_within_days_bound(self):
        assert evaluate_auto_approval(ENABLED, "leave", days=Decimal("2")).eligible

    def test_leave_at_bound_is_eligible(self):
        assert evaluate_auto_approval(ENABLED, "leave", days=Decimal("3")).eligible

    def test_leave_over_bound(self):
        assert not evaluate_auto_approval(ENABLED, "leave", days=Decimal("3.5")).eligible

    def test_leave_without_days_is_not_eligible(self):
        assert not evaluate_auto_approval(ENABLED, "leave").eligible

    def test_expense_within_amount(self):
        assert evaluate_auto_approval(ENABLED, "expense", amount=Decimal("999.99")).eligible

    def test_expense_without_amount_is_not_eligible(self):
        assert not evaluate_auto_approval(ENABLED, "expense").eligible

    def test_expense_over_amount(self):
        assert not evaluate_auto_approval(ENABLED, "expense", amount=Decimal("1000.01")).eligible

    def test_unbounded_type_needs_no_magnitude(self):
        assert evaluate_auto_approval(ENABLED, "schedule_change").eligible

    def test_supplied_magnitude_still_bounded_for_unbounded_type(self):
        decision = evaluate_auto_approval(
            ENABLED, "schedule_change", amount=Decimal("5000"),
        )
        assert not decision.eligible


class TestAutoApprovalProperties:

    @given(
        request_type=st.sampled_from(["leave", "expense", "schedule_change", "other"]),
        amount=magnitudes,
        days=magnitudes,
    )
    def test_eligible_implies_within_bounds(self, request_type, amount, days):
        decision = evaluate_auto_approval(ENABLED, request_type, amount, days)
        if decision.eligible:
            assert request_type in ENABLED.allowed_types
            assert amount is None or amount <= ENABLED.max_amount
            assert days is None or days <= ENABLED.max_days
            if request_type == "expense":
                assert amount is not None
            if request_type == "leave":
                assert days is not None

    @given(amount=magnitudes, days=magnitudes)
    def test_disabled_never_eligible(self, amount, days):
        settings = AutoApprovalSettings(enabled=False)
        assert not evaluate_auto_approval(settings, "leave", amount, days).eligible
