"""
approval_engines.auto_approval -- Pure auto-approval evaluation.

Responsibility:
    Decide whether a newly submitted request bypasses human review.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import approval_kernel/domain/ types.

Invariants enforced:
    - AA-1: Auto-approval requires ``enabled`` and a type listed in
      ``allowed_types``.
    - AA-2: Monetary types must carry an amount and it must be within
      ``max_amount``; day-bound types must carry a day count within
      ``max_days``.
    - AA-3: Any supplied magnitude must be within its bound, whatever the
      type.
    - Purity: no clock access, no I/O, no database.

Failure modes:
    - Never raises; ineligibility is reported through
      ``AutoApprovalDecision.reason``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from approval_kernel.domain.approval import (
    DAY_BOUND_REQUEST_TYPES,
    MONETARY_REQUEST_TYPES,
)
from approval_kernel.domain.settings import AutoApprovalSettings


@dataclass(frozen=True)
class AutoApprovalDecision:
    eligible: bool
    reason: str


def evaluate_auto_approval(
    settings: AutoApprovalSettings,
    request_type: str,
    amount: Decimal | None = None,
    days: Decimal | None = None,
) -> AutoApprovalDecision:
    """Evaluate auto-approval eligibility for a submission.

    Args:
        settings: Current auto-approval policy.
        request_type: The submitted request type.
        amount: Monetary magnitude, if any.
        days: Day-count magnitude, if any.

    Returns:
        AutoApprovalDecision with ``eligible`` and a human-readable reason.
    """
    if not settings.enabled:
        return AutoApprovalDecision(False, "auto-approval disabled")

    if request_type not in settings.allowed_types:
        return AutoApprovalDecision(
            False, f"type '{request_type}' not eligible for auto-approval",
        )

    # AA-2: bounded types must carry their magnitude
    if request_type in MONETARY_REQUEST_TYPES and amount is None:
        return AutoApprovalDecision(False, "monetary request without amount")
    if request_type in DAY_BOUND_REQUEST_TYPES and days is None:
        return AutoApprovalDecision(False, "day-bound request without day count")

    # AA-3
    if amount is not None and amount > settings.max_amount:
        return AutoApprovalDecision(
            False, f"amount {amount} exceeds {settings.max_amount}",
        )
    if days is not None and days > settings.max_days:
        return AutoApprovalDecision(
            False, f"days {days} exceeds {settings.max_days}",
        )

    return AutoApprovalDecision(True, "within auto-approval limits")
