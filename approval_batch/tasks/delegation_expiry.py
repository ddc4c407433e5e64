"""Delegation expiry sweep: persists the lazy expiry of lapsed delegations."""

from __future__ import annotations

from approval_batch.tasks.base import SweepContext, SweepResult
from approval_kernel.domain.clock import as_utc


class DelegationExpirySweepTask:
    task_type = "delegations.expiry"
    description = "Mark delegations past their end date as expired"

    def run(self, context: SweepContext) -> SweepResult:
        session = context.session_factory()
        try:
            workflow = context.workflow_factory(session)
            expired = workflow.delegations.expire_lapsed(as_utc(context.as_of).date())
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
        return SweepResult(
            self.task_type, processed=len(expired), changed=len(expired),
        )
