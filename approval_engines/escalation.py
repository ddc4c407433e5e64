"""
approval_engines.escalation -- Pure escalation evaluation.

Responsibility:
    Decide what the escalation sweep does with one open request: nothing,
    move it one level up, or expire it.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - ES-1: A request is due once ``as_of - last_state_change_at`` reaches
      ``default_timeout_hours``.
    - ES-2: Levels run 0 .. escalation_levels-1.  A due request below the
      top level escalates; a due request at the top level expires.
    - ES-3: Disabled escalation never escalates or expires anything.
    - ES-4: Only open, decidable statuses (pending, escalated) escalate.
    - Purity: ``as_of`` is supplied by the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from approval_kernel.domain.approval import (
    DECIDABLE_REQUEST_STATUSES,
    RequestStatus,
)
from approval_kernel.domain.clock import as_utc
from approval_kernel.domain.settings import EscalationSettings


class EscalationOutcome(str, Enum):
    NOT_DUE = "not_due"
    ESCALATE = "escalate"
    EXPIRE = "expire"


@dataclass(frozen=True)
class EscalationDecision:
    outcome: EscalationOutcome
    escalation_level: int
    due_at: datetime | None = None

    @property
    def is_due(self) -> bool:
        return self.outcome != EscalationOutcome.NOT_DUE


def escalation_due_at(
    settings: EscalationSettings,
    last_state_change_at: datetime,
) -> datetime:
    return as_utc(last_state_change_at) + timedelta(
        hours=settings.default_timeout_hours,
    )


def evaluate_escalation(
    settings: EscalationSettings,
    status: RequestStatus,
    escalation_level: int,
    last_state_change_at: datetime,
    as_of: datetime,
) -> EscalationDecision:
    """Evaluate one request for the escalation sweep.

    Returns:
        EscalationDecision.  For ESCALATE, ``escalation_level`` is the new
        level; otherwise it is the current one.
    """
    if not settings.enabled or status not in DECIDABLE_REQUEST_STATUSES:
        return EscalationDecision(EscalationOutcome.NOT_DUE, escalation_level)

    due_at = escalation_due_at(settings, last_state_change_at)
    if as_utc(as_of) < due_at:
        return EscalationDecision(
            EscalationOutcome.NOT_DUE, escalation_level, due_at,
        )

    if escalation_level < settings.escalation_levels - 1:
        return EscalationDecision(
            EscalationOutcome.ESCALATE, escalation_level + 1, due_at,
        )

    return EscalationDecision(EscalationOutcome.EXPIRE, escalation_level, due_at)
