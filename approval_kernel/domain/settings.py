"""
Approval settings domain types (``approval_kernel.domain.settings``).

Responsibility
--------------
The tenant-wide approval policy as frozen, flat, strongly-typed structs.
One ``ApprovalSettings`` value is the whole policy; it is replaced as a
unit, never patched.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* PS-1: Defaults here are the product defaults used when a tenant has
  never stored settings (served as version 0).
* PS-2: Settings are immutable values replaced as a whole; every update
  yields a new ``SettingsRecord`` with a higher ``version``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from approval_kernel.domain.approval import BUILTIN_REQUEST_TYPES, RequestType


class EligibilityScope(str, Enum):
    """Who is eligible to delegate or to receive a delegation."""

    ALL_MANAGERS_LEADERS = "all_managers_leaders"
    SPECIFIC_MANAGERS_LEADERS = "specific_managers_leaders"
    GROUP_LEADERS = "group_leaders"
    SAME_GROUP_LEADERS = "same_group_leaders"
    UPPER_GROUP_LEADERS = "upper_group_leaders"
    TOP_GROUP_LEADERS = "top_group_leaders"


class DelegationApprovalType(str, Enum):
    """Who approves a delegation request."""

    DELEGATE_DIRECT = "delegate_direct"
    UPPER_GROUP_LEADER = "upper_group_leader"
    TOP_GROUP_LEADER = "top_group_leader"
    ADMIN = "admin"


@dataclass(frozen=True)
class DelegationSettings:
    who_can_delegate: EligibilityScope = EligibilityScope.ALL_MANAGERS_LEADERS
    who_can_be_delegated: EligibilityScope = EligibilityScope.ALL_MANAGERS_LEADERS
    who_approves_delegation: DelegationApprovalType = (
        DelegationApprovalType.UPPER_GROUP_LEADER
    )
    max_delegation_duration_days: int = 30
    require_approval: bool = True
    auto_approve_for_upper_leaders: bool = False
    allow_multiple_delegations: bool = False
    history_retention_days: int = 365
    # Consulted only for SPECIFIC_MANAGERS_LEADERS
    specific_user_ids: tuple[UUID, ...] = ()


@dataclass(frozen=True)
class AutoApprovalSettings:
    enabled: bool = False
    max_amount: Decimal = Decimal("1000")
    max_days: Decimal = Decimal("3")
    allowed_types: tuple[str, ...] = (
        RequestType.LEAVE.value,
        RequestType.SCHEDULE_CHANGE.value,
    )


@dataclass(frozen=True)
class EscalationSettings:
    enabled: bool = True
    default_timeout_hours: int = 24
    escalation_levels: int = 3


@dataclass(frozen=True)
class NotificationSettings:
    email: bool = True
    push: bool = True
    sms: bool = False
    approval_reminders: bool = True
    escalation_notifications: bool = True
    delegation_notifications: bool = True


@dataclass(frozen=True)
class RequestSettings:
    duplicate_window_minutes: int = 60
    retention_days: int = 730
    custom_request_types: tuple[str, ...] = ()


@dataclass(frozen=True)
class ApprovalSettings:
    """The complete tenant approval policy."""

    allow_self_approval: bool = False
    allow_delegation: bool = False
    delegation: DelegationSettings = field(default_factory=DelegationSettings)
    auto_approval: AutoApprovalSettings = field(default_factory=AutoApprovalSettings)
    escalation: EscalationSettings = field(default_factory=EscalationSettings)
    notifications: NotificationSettings = field(default_factory=NotificationSettings)
    requests: RequestSettings = field(default_factory=RequestSettings)

    @property
    def recognized_request_types(self) -> tuple[str, ...]:
        extra = tuple(
            t for t in self.requests.custom_request_types
            if t not in BUILTIN_REQUEST_TYPES
        )
        return BUILTIN_REQUEST_TYPES + extra


@dataclass(frozen=True)
class SettingsRecord:
    """A stored settings value with its concurrency and integrity metadata."""

    tenant_id: str
    settings: ApprovalSettings
    version: int
    checksum: str
    updated_at: datetime | None = None
    updated_by: UUID | None = None
