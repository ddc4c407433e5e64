"""Periodic sweep tasks and their registry."""

from approval_batch.tasks.base import (
    SweepContext,
    SweepResult,
    SweepTask,
    TaskRegistry,
)
from approval_batch.tasks.delegation_expiry import DelegationExpirySweepTask
from approval_batch.tasks.escalation import EscalationSweepTask
from approval_batch.tasks.retention import RetentionSweepTask


def default_task_registry() -> TaskRegistry:
    """Registry with the standard sweeps, in execution order."""
    registry = TaskRegistry()
    registry.register(DelegationExpirySweepTask())
    registry.register(EscalationSweepTask())
    registry.register(RetentionSweepTask())
    return registry


__all__ = [
    "DelegationExpirySweepTask",
    "EscalationSweepTask",
    "RetentionSweepTask",
    "SweepContext",
    "SweepResult",
    "SweepTask",
    "TaskRegistry",
    "default_task_registry",
]
