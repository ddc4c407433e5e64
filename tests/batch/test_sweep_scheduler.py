"""
Tests for SweepScheduler.

Covers:
- tick() runs sweeps in registration order with the clock's as_of
- A failing sweep is logged and does not stop the others
- start()/stop() lifecycle of the background thread
"""

import threading

import pytest

from approval_batch.services.scheduler import SweepScheduler
from approval_batch.tasks import TaskRegistry
from approval_batch.tasks.base import SweepResult


class RecordingTask:

    def __init__(self, task_type, calls):
        self.task_type = task_type
        self.description = task_type
        self._calls = calls

    def run(self, context):
        self._calls.append((self.task_type, context.as_of))
        return SweepResult(self.task_type, processed=1, changed=1)


class ExplodingTask:
    task_type = "test.exploding"
    description = "always raises"

    def run(self, context):
        raise RuntimeError("sweep broke")


class SignallingTask:
    task_type = "test.signal"
    description = "sets an event"

    def __init__(self):
        self.ran = threading.Event()

    def run(self, context):
        self.ran.set()
        return SweepResult(self.task_type)


def make_scheduler(session_factory, factory, clock, *tasks, interval=60):
    registry = TaskRegistry()
    for task in tasks:
        registry.register(task)
    return SweepScheduler(
        session_factory, factory, registry, clock, tick_interval_seconds=interval,
    )


class TestTick:

    def test_runs_in_order_with_clock_time(self, session_factory, factory, clock):
        calls = []
        scheduler = make_scheduler(
            session_factory, factory, clock,
            RecordingTask("b.second", calls), RecordingTask("a.first", calls),
        )
        results = scheduler.tick()
        assert [c[0] for c in calls] == ["b.second", "a.first"]
        assert all(as_of == clock.now() for _, as_of in calls)
        assert set(results) == {"b.second", "a.first"}

    def test_failing_sweep_isolated(self, session_factory, factory, clock, captured_logs):
        calls = []
        scheduler = make_scheduler(
            session_factory, factory, clock,
            ExplodingTask(), RecordingTask("after", calls),
        )
        results = scheduler.tick()
        assert "test.exploding" not in results
        assert results["after"].changed == 1
        failed = [r for r in captured_logs() if r["message"] == "sweep_failed"]
        assert failed[0]["task_type"] == "test.exploding"
        assert failed[0]["exc_message"] == "sweep broke"

    def test_completed_sweeps_logged(self, session_factory, factory, clock, captured_logs):
        scheduler = make_scheduler(
            session_factory, factory, clock, RecordingTask("x.task", []),
        )
        scheduler.tick()
        completed = [r for r in captured_logs() if r["message"] == "sweep_completed"]
        assert completed[0]["processed"] == 1

    def test_default_registry(self, session_factory, factory, clock):
        scheduler = SweepScheduler(session_factory, factory, clock=clock)
        assert set(scheduler.tick()) == {
            "delegations.expiry",
            "approvals.escalation",
            "approvals.retention",
        }


@pytest.mark.slow
class TestLifecycle:

    def test_start_and_stop(self, session_factory, factory, clock):
        task = SignallingTask()
        scheduler = make_scheduler(session_factory, factory, clock, task, interval=0.05)

        scheduler.start()
        try:
            assert task.ran.wait(timeout=5)
            assert scheduler.is_running
        finally:
            scheduler.stop(timeout=5)
        assert not scheduler.is_running

    def test_start_is_idempotent(self, session_factory, factory, clock):
        scheduler = make_scheduler(
            session_factory, factory, clock, SignallingTask(), interval=0.05,
        )
        scheduler.start()
        try:
            first = scheduler._thread
            scheduler.start()
            assert scheduler._thread is first
        finally:
            scheduler.stop(timeout=5)
