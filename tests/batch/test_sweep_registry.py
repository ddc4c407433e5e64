"""Tests for TaskRegistry and the default sweep set."""

import pytest

from approval_batch.tasks import (
    DelegationExpirySweepTask,
    EscalationSweepTask,
    RetentionSweepTask,
    SweepTask,
    TaskRegistry,
    default_task_registry,
)


class TestTaskRegistry:

    def test_register_and_get(self):
        registry = TaskRegistry()
        task = EscalationSweepTask()
        registry.register(task)
        assert registry.get("approvals.escalation") is task
        assert "approvals.escalation" in registry
        assert len(registry) == 1

    def test_duplicate_rejected(self):
        registry = TaskRegistry()
        registry.register(EscalationSweepTask())
        with pytest.raises(ValueError, match="already registered"):
            registry.register(EscalationSweepTask())

    def test_missing_task(self):
        with pytest.raises(KeyError):
            TaskRegistry().get("nope")

    def test_sweeps_satisfy_protocol(self):
        for task in (
            DelegationExpirySweepTask(),
            EscalationSweepTask(),
            RetentionSweepTask(),
        ):
            assert isinstance(task, SweepTask)


class TestDefaultRegistry:

    def test_execution_order(self):
        registry = default_task_registry()
        assert [t.task_type for t in registry.tasks()] == [
            "delegations.expiry",
            "approvals.escalation",
            "approvals.retention",
        ]

    def test_list_tasks_sorted(self):
        assert default_task_registry().list_tasks() == (
            "approvals.escalation",
            "approvals.retention",
            "delegations.expiry",
        )
