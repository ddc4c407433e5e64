"""
SweepTask protocol, supporting types, and TaskRegistry.

Contract:
    ``SweepTask`` defines the interface every periodic sweep implements.
    ``TaskRegistry`` stores registered sweeps keyed by ``task_type``.
    ``default_task_registry()`` returns a registry with the standard sweeps.

Architecture:
    approval_batch/tasks.  Sweeps drive approval_services through a
    per-session ``ApprovalWorkflow``; they never touch models directly.

Invariants enforced:
    SW-1 -- Task registry: one task per ``task_type`` string.
    SW-2 -- All timestamps come from the ``as_of`` the scheduler passes in.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, runtime_checkable

from sqlalchemy.orm import Session

from approval_services.workflow import ApprovalWorkflow


# =============================================================================
# Supporting DTOs
# =============================================================================


@dataclass(frozen=True)
class SweepContext:
    """Everything a sweep needs for one pass."""

    session_factory: Callable[[], Session]
    workflow_factory: Callable[[Session], ApprovalWorkflow]
    as_of: datetime
    should_stop: Callable[[], bool] = lambda: False


@dataclass(frozen=True)
class SweepResult:
    """Outcome counts for one sweep pass.

    ``skipped`` counts items left for the next pass (not due, or lost a
    concurrent update).
    """

    task_type: str
    processed: int = 0
    changed: int = 0
    skipped: int = 0
    failed: int = 0


# =============================================================================
# SweepTask Protocol
# =============================================================================


@runtime_checkable
class SweepTask(Protocol):
    """One periodic pass over the approval data.

    ``run()`` opens its own sessions (one transaction per item) and commits
    them.  Items that fail or lose a version race are counted and left for
    the next tick; nothing is retried within a pass.
    """

    @property
    def task_type(self) -> str: ...

    @property
    def description(self) -> str: ...

    def run(self, context: SweepContext) -> SweepResult: ...


# =============================================================================
# TaskRegistry
# =============================================================================


class TaskRegistry:
    """Sweeps keyed by ``task_type``; ``tasks()`` runs in registration order."""

    def __init__(self) -> None:
        self._tasks: dict[str, SweepTask] = {}

    def register(self, task: SweepTask) -> None:
        """Add a sweep.  Raises ValueError if its task_type is taken (SW-1)."""
        if task.task_type in self._tasks:
            raise ValueError(f"Sweep '{task.task_type}' is already registered")
        self._tasks[task.task_type] = task

    def get(self, task_type: str) -> SweepTask:
        if task_type not in self._tasks:
            raise KeyError(
                f"Unknown sweep '{task_type}'; registered: {', '.join(self.list_tasks())}"
            )
        return self._tasks[task_type]

    def list_tasks(self) -> tuple[str, ...]:
        return tuple(sorted(self._tasks))

    def tasks(self) -> tuple[SweepTask, ...]:
        return tuple(self._tasks.values())

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, task_type: object) -> bool:
        return task_type in self._tasks
