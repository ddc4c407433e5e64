"""
Retention sweep.

Archives terminal requests older than ``requests.retention_days`` and
closed delegations older than ``delegation.history_retention_days``.
Archived rows are kept; they only drop out of default listings.
"""

from __future__ import annotations

from datetime import timedelta

from approval_batch.tasks.base import SweepContext, SweepResult
from approval_kernel.logging_config import get_logger

logger = get_logger("batch.retention")


class RetentionSweepTask:
    task_type = "approvals.retention"
    description = "Archive resolved requests and closed delegations"

    def run(self, context: SweepContext) -> SweepResult:
        session = context.session_factory()
        try:
            workflow = context.workflow_factory(session)
            settings = workflow.policy_store.current()
            requests = workflow.approvals.archive_resolved(
                context.as_of - timedelta(days=settings.requests.retention_days),
            )
            delegations = workflow.delegations.archive_history(
                context.as_of
                - timedelta(days=settings.delegation.history_retention_days),
            )
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

        logger.info(
            "retention_sweep_completed",
            extra={"requests_archived": requests, "delegations_archived": delegations},
        )
        return SweepResult(
            self.task_type,
            processed=requests + delegations,
            changed=requests + delegations,
        )
