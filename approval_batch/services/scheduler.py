"""
SweepScheduler -- In-process polling loop for the approval sweeps.

Contract:
    Every ``tick_interval_seconds`` runs each registered sweep once, in
    registration order (expiry, escalation, retention), all with the same
    ``as_of`` read from the injected Clock at the start of the tick.

Architecture: approval_batch/services.  Drives approval_batch.tasks.

Invariants enforced:
    SW-2 -- All timestamps from injected Clock.
    SW-3 -- A failing sweep is logged and does not stop the others.
    SW-4 -- ``stop()`` is honoured between items, never mid-transaction.

Non-goals:
    No leader election.  Two schedulers on one database are safe, since
    the loser of each version race skips the item, but do duplicate work.
"""

from __future__ import annotations

import threading
from typing import Callable

from sqlalchemy.orm import Session

from approval_batch.tasks import default_task_registry
from approval_batch.tasks.base import SweepContext, SweepResult, TaskRegistry
from approval_kernel.domain.clock import Clock, SystemClock
from approval_kernel.logging_config import get_logger
from approval_services.workflow import ApprovalWorkflow

logger = get_logger("batch.scheduler")


class SweepScheduler:

    def __init__(
        self,
        session_factory: Callable[[], Session],
        workflow_factory: Callable[[Session], ApprovalWorkflow],
        registry: TaskRegistry | None = None,
        clock: Clock | None = None,
        tick_interval_seconds: float = 60,
    ):
        self._session_factory = session_factory
        self._workflow_factory = workflow_factory
        self._registry = registry if registry is not None else default_task_registry()
        self._clock = clock or SystemClock()
        self._tick_interval = tick_interval_seconds
        self._stopping = threading.Event()
        self._thread: threading.Thread | None = None

    def tick(self) -> dict[str, SweepResult]:
        """Run every sweep once; results keyed by task_type (failed sweeps absent)."""
        context = SweepContext(
            session_factory=self._session_factory,
            workflow_factory=self._workflow_factory,
            as_of=self._clock.now(),
            should_stop=self._stopping.is_set,
        )
        results: dict[str, SweepResult] = {}
        for task in self._registry.tasks():
            if self._stopping.is_set():
                break
            try:
                result = task.run(context)
            except Exception:
                logger.exception("sweep_failed", extra={"task_type": task.task_type})
                continue
            results[task.task_type] = result
            logger.info(
                "sweep_completed",
                extra={
                    "task_type": task.task_type,
                    "processed": result.processed,
                    "changed": result.changed,
                    "skipped": result.skipped,
                    "failed": result.failed,
                },
            )
        return results

    def start(self) -> None:
        """Run ``tick()`` on a daemon thread until ``stop()``; no-op if running."""
        if self.is_running:
            return
        self._stopping.clear()
        self._thread = threading.Thread(
            target=self._loop, name="approval-sweeps", daemon=True,
        )
        self._thread.start()
        logger.info("scheduler_started", extra={"tick_interval": self._tick_interval})

    def stop(self, timeout: float = 30.0) -> None:
        """Ask the loop to stop and wait up to ``timeout`` seconds for it."""
        self._stopping.set()
        if self.is_running:
            self._thread.join(timeout=timeout)
        logger.info("scheduler_stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _loop(self) -> None:
        while not self._stopping.is_set():
            try:
                self.tick()
            except Exception:
                # tick() already isolates sweeps; this covers the clock and context
                logger.exception("scheduler_tick_failed")
            self._stopping.wait(timeout=self._tick_interval)
