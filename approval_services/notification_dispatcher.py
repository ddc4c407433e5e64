"""
approval_services.notification_dispatcher -- Notification gating.

Responsibility:
    Decide *that* a notification is due and which channels apply, then hand
    it to the external ``Notifier``.  Delivery mechanics are not handled
    here.

Architecture position:
    Services -- called by the approval and delegation services after their
    state change has been flushed.  Bound to a Session, delivery waits for
    that Session's commit.

Invariants enforced:
    NT-1 -- No enabled channel -> nothing is sent.
    NT-2 -- Escalation and expiry notices require ``escalation_notifications``.
    NT-3 -- Delegation notices require ``delegation_notifications``.
    NT-4 -- "Awaiting your decision" notices (``request_assigned``) require
            ``approval_reminders``.
    NT-5 -- A failing notifier never undoes the state change; the failure
            is logged.
    NT-6 -- When bound to a Session, events are held until the transaction
            commits and dropped if it rolls back, so no notice describes a
            state that was never committed.

Failure modes:
    - None raised.  Notifier exceptions are logged with traceback.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any
from uuid import UUID

from sqlalchemy.event import listen
from sqlalchemy.orm import Session

from approval_kernel.domain.clock import Clock, SystemClock
from approval_kernel.domain.notifications import (
    DELEGATION_EVENT_TYPES,
    ESCALATION_EVENT_TYPES,
    NotificationChannel,
    NotificationEvent,
    NotificationEventType,
    Notifier,
)
from approval_kernel.domain.settings import NotificationSettings
from approval_kernel.logging_config import get_logger

logger = get_logger("services.notifications")


def enabled_channels(settings: NotificationSettings) -> tuple[NotificationChannel, ...]:
    channels = []
    if settings.email:
        channels.append(NotificationChannel.EMAIL)
    if settings.push:
        channels.append(NotificationChannel.PUSH)
    if settings.sms:
        channels.append(NotificationChannel.SMS)
    return tuple(channels)


def is_event_enabled(
    settings: NotificationSettings,
    event_type: NotificationEventType,
) -> bool:
    if event_type in ESCALATION_EVENT_TYPES:
        return settings.escalation_notifications
    if event_type in DELEGATION_EVENT_TYPES:
        return settings.delegation_notifications
    if event_type == NotificationEventType.REQUEST_ASSIGNED:
        return settings.approval_reminders
    return True


class LoggingNotifier:
    """Default notifier: records each event in the structured log."""

    def notify(self, event: NotificationEvent) -> None:
        logger.info(
            "notification_emitted",
            extra={
                "event_type": event.event_type.value,
                "recipients": [str(r) for r in event.recipient_ids],
                "channels": [c.value for c in event.channels],
                "request_id": str(event.request_id) if event.request_id else None,
                "delegation_id": (
                    str(event.delegation_id) if event.delegation_id else None
                ),
            },
        )


class NotificationDispatcher:
    """Gates notification events by tenant settings and forwards them.

    Unbound, each due event goes to the notifier at once.  After
    ``bind_to_session()`` due events queue up and are delivered when the
    Session commits (NT-6).
    """

    def __init__(self, notifier: Notifier | None = None, clock: Clock | None = None):
        self._notifier = notifier or LoggingNotifier()
        self._clock = clock or SystemClock()
        self._deferred = False
        self._pending: list[NotificationEvent] = []

    def bind_to_session(self, session: Session) -> None:
        """Hold events until ``session`` commits; drop them on rollback."""
        self._deferred = True
        listen(session, "after_commit", self._on_commit)
        listen(session, "after_rollback", self._on_rollback)

    @property
    def pending(self) -> tuple[NotificationEvent, ...]:
        return tuple(self._pending)

    def dispatch(
        self,
        settings: NotificationSettings,
        event_type: NotificationEventType,
        recipients: Iterable[UUID | None],
        *,
        request_id: UUID | None = None,
        delegation_id: UUID | None = None,
        payload: dict[str, Any] | None = None,
    ) -> NotificationEvent | None:
        """Send (or queue) one event if it is due.

        Returns the event, or None when suppressed or when an immediate
        delivery failed.
        """
        channels = enabled_channels(settings)
        if not channels or not is_event_enabled(settings, event_type):
            logger.debug(
                "notification_suppressed",
                extra={"event_type": event_type.value},
            )
            return None

        # Preserve order, drop None and repeats
        recipient_ids = tuple(dict.fromkeys(r for r in recipients if r is not None))
        if not recipient_ids:
            return None

        event = NotificationEvent(
            event_type=event_type,
            recipient_ids=recipient_ids,
            channels=channels,
            occurred_at=self._clock.now(),
            request_id=request_id,
            delegation_id=delegation_id,
            payload=dict(payload or {}),
        )
        if self._deferred:
            self._pending.append(event)
            return event
        return event if self._deliver(event) else None

    def _deliver(self, event: NotificationEvent) -> bool:
        try:
            self._notifier.notify(event)
        except Exception:
            logger.exception(
                "notification_failed",
                extra={
                    "event_type": event.event_type.value,
                    "request_id": str(event.request_id) if event.request_id else None,
                    "delegation_id": (
                        str(event.delegation_id) if event.delegation_id else None
                    ),
                },
            )
            return False
        return True

    def _on_commit(self, session: Session) -> None:
        events, self._pending = self._pending, []
        for queued in events:
            self._deliver(queued)

    def _on_rollback(self, session: Session) -> None:
        if self._pending:
            logger.debug(
                "notifications_discarded",
                extra={"count": len(self._pending)},
            )
        self._pending = []
