"""
Pure calculation engines for the approval workflow.

Every function here is deterministic and performs no I/O: time, org facts
and settings are passed in by the caller.
"""

from approval_engines.auto_approval import AutoApprovalDecision, evaluate_auto_approval
from approval_engines.delegation import (
    DelegationRouting,
    DelegationViolation,
    ViolationKind,
    check_delegation_request,
    find_overlapping,
    is_eligible,
    route_delegation,
)
from approval_engines.escalation import (
    EscalationDecision,
    EscalationOutcome,
    evaluate_escalation,
)
from approval_engines.routing import (
    nominal_approver,
    resolve_effective_approver,
    select_delegation,
)

__all__ = [
    "AutoApprovalDecision",
    "evaluate_auto_approval",
    "DelegationRouting",
    "DelegationViolation",
    "ViolationKind",
    "check_delegation_request",
    "find_overlapping",
    "is_eligible",
    "route_delegation",
    "EscalationDecision",
    "EscalationOutcome",
    "evaluate_escalation",
    "nominal_approver",
    "resolve_effective_approver",
    "select_delegation",
]
