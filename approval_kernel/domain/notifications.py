"""
Notification domain types (``approval_kernel.domain.notifications``).

The kernel decides *that* a notification is due and which channels
apply; delivery belongs to an external ``Notifier``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Protocol
from uuid import UUID


class NotificationChannel(str, Enum):
    EMAIL = "email"
    PUSH = "push"
    SMS = "sms"


class NotificationEventType(str, Enum):
    REQUEST_SUBMITTED = "request_submitted"
    REQUEST_ASSIGNED = "request_assigned"
    REQUEST_AUTO_APPROVED = "request_auto_approved"
    REQUEST_APPROVED = "request_approved"
    REQUEST_REJECTED = "request_rejected"
    REQUEST_ESCALATED = "request_escalated"
    REQUEST_EXPIRED = "request_expired"
    REQUEST_WITHDRAWN = "request_withdrawn"
    DELEGATION_REQUESTED = "delegation_requested"
    DELEGATION_GRANTED = "delegation_granted"
    DELEGATION_REJECTED = "delegation_rejected"
    DELEGATION_REVOKED = "delegation_revoked"
    DELEGATION_EXPIRED = "delegation_expired"


ESCALATION_EVENT_TYPES: frozenset[NotificationEventType] = frozenset({
    NotificationEventType.REQUEST_ESCALATED,
    NotificationEventType.REQUEST_EXPIRED,
})

DELEGATION_EVENT_TYPES: frozenset[NotificationEventType] = frozenset({
    NotificationEventType.DELEGATION_REQUESTED,
    NotificationEventType.DELEGATION_GRANTED,
    NotificationEventType.DELEGATION_REJECTED,
    NotificationEventType.DELEGATION_REVOKED,
    NotificationEventType.DELEGATION_EXPIRED,
})


@dataclass(frozen=True)
class NotificationEvent:
    """A notification due for delivery."""

    event_type: NotificationEventType
    recipient_ids: tuple[UUID, ...]
    channels: tuple[NotificationChannel, ...]
    occurred_at: datetime
    request_id: UUID | None = None
    delegation_id: UUID | None = None
    payload: dict[str, Any] = field(default_factory=dict)


class Notifier(Protocol):
    """External delivery collaborator."""

    def notify(self, event: NotificationEvent) -> None:
        ...
