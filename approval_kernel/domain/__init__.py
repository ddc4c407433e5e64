"""Pure domain layer - value objects, state machines and protocols. Zero I/O."""

from approval_kernel.domain.approval import (
    ApprovalRequest,
    DecisionAction,
    DecisionEvent,
    EffectiveApprover,
    HistoryAction,
    RequestPriority,
    RequestStatus,
    RequestType,
)
from approval_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from approval_kernel.domain.delegation import (
    Delegation,
    DelegationScope,
    DelegationStatus,
)
from approval_kernel.domain.notifications import (
    NotificationChannel,
    NotificationEvent,
    NotificationEventType,
    Notifier,
)
from approval_kernel.domain.org import (
    ActorProfile,
    LeaderTier,
    OrgGroup,
    OrgHierarchyProvider,
    OrgMember,
    StaticOrgHierarchy,
)
from approval_kernel.domain.settings import (
    ApprovalSettings,
    AutoApprovalSettings,
    DelegationApprovalType,
    DelegationSettings,
    EligibilityScope,
    EscalationSettings,
    NotificationSettings,
    RequestSettings,
    SettingsRecord,
)

__all__ = [
    "ApprovalRequest",
    "DecisionAction",
    "DecisionEvent",
    "EffectiveApprover",
    "HistoryAction",
    "RequestPriority",
    "RequestStatus",
    "RequestType",
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "Delegation",
    "DelegationScope",
    "DelegationStatus",
    "NotificationChannel",
    "NotificationEvent",
    "NotificationEventType",
    "Notifier",
    "ActorProfile",
    "LeaderTier",
    "OrgGroup",
    "OrgHierarchyProvider",
    "OrgMember",
    "StaticOrgHierarchy",
    "ApprovalSettings",
    "AutoApprovalSettings",
    "DelegationApprovalType",
    "DelegationSettings",
    "EligibilityScope",
    "EscalationSettings",
    "NotificationSettings",
    "RequestSettings",
    "SettingsRecord",
]
