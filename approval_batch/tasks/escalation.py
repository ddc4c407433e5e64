"""
Escalation sweep.

Scans open requests, then escalates or expires each overdue one in its own
transaction, using the version read during the scan.  A request that was
decided or escalated concurrently raises ``StaleRequestVersionError`` and
is left for the next pass.
"""

from __future__ import annotations

from approval_batch.tasks.base import SweepContext, SweepResult
from approval_kernel.exceptions import RequestNotPendingError, StaleRequestVersionError
from approval_kernel.logging_config import get_logger

logger = get_logger("batch.escalation")


class EscalationSweepTask:
    task_type = "approvals.escalation"
    description = "Escalate or expire requests past the decision timeout"

    def run(self, context: SweepContext) -> SweepResult:
        session = context.session_factory()
        try:
            workflow = context.workflow_factory(session)
            if not workflow.policy_store.current().escalation.enabled:
                return SweepResult(self.task_type)
            candidates = workflow.selector.open_requests()
        finally:
            session.close()

        changed = skipped = failed = processed = 0
        for request_id, version in candidates:
            if context.should_stop():
                break
            processed += 1
            session = context.session_factory()
            try:
                workflow = context.workflow_factory(session)
                result = workflow.approvals.escalate(
                    request_id, version, as_of=context.as_of,
                )
                session.commit()
                if result.version != version:
                    changed += 1
                else:
                    skipped += 1
            except (StaleRequestVersionError, RequestNotPendingError):
                session.rollback()
                skipped += 1
                logger.debug(
                    "escalation_item_skipped",
                    extra={"request_id": str(request_id), "read_version": version},
                )
            except Exception:
                session.rollback()
                failed += 1
                logger.exception(
                    "escalation_item_failed",
                    extra={"request_id": str(request_id)},
                )
            finally:
                session.close()

        return SweepResult(
            self.task_type,
            processed=processed,
            changed=changed,
            skipped=skipped,
            failed=failed,
        )
