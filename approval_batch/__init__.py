"""
Approval batch sweeps.

Periodic maintenance over approval data: escalation and expiry of overdue
requests, persisted expiry of lapsed delegations, and retention archival.
``SweepScheduler`` runs the registered sweeps on a polling interval.
"""

from approval_batch.services.scheduler import SweepScheduler
from approval_batch.tasks import (
    DelegationExpirySweepTask,
    EscalationSweepTask,
    RetentionSweepTask,
    SweepContext,
    SweepResult,
    TaskRegistry,
    default_task_registry,
)

__all__ = [
    "DelegationExpirySweepTask",
    "EscalationSweepTask",
    "RetentionSweepTask",
    "SweepContext",
    "SweepResult",
    "SweepScheduler",
    "TaskRegistry",
    "default_task_registry",
]
