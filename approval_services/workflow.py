"""
approval_services.workflow -- Wiring container for approval services.

Responsibility:
    Creates every approval service exactly once per session and wires them
    together.  No service constructs another internally; this container is
    the single point of dependency injection for API handlers and batch
    sweeps.

Architecture position:
    Services -- top of the service layer.

Invariants enforced:
    - Single-instance lifecycle: one PolicyStore, DelegationService,
      ApprovalService and ApprovalSelector per workflow.
    - All services share the same Session, Clock and NotificationDispatcher.
    - With ``deliver_after_commit`` notifications reach the notifier only
      once the Session commits.  ``workflow_factory`` turns this on.

Usage:
    with session_scope() as session:
        workflow = ApprovalWorkflow(session, org, clock=clock)
        request = workflow.approvals.submit(requester_id, "leave", days=Decimal("2"))
"""

from __future__ import annotations

from collections.abc import Callable

from sqlalchemy.orm import Session

from approval_kernel.domain.clock import Clock, SystemClock
from approval_kernel.domain.notifications import Notifier
from approval_kernel.domain.org import OrgHierarchyProvider
from approval_kernel.domain.settings import ApprovalSettings
from approval_kernel.selectors.approval_selector import ApprovalSelector
from approval_services.approval_service import ApprovalService
from approval_services.delegation_service import DelegationService
from approval_services.notification_dispatcher import NotificationDispatcher
from approval_services.policy_store import DEFAULT_TENANT_ID, PolicyStore


class ApprovalWorkflow:
    """Central factory for approval services.

    Non-goals:
        - Does NOT manage transaction boundaries (caller's responsibility).
        - Does NOT own the Session lifecycle (no commit/rollback).
    """

    def __init__(
        self,
        session: Session,
        org: OrgHierarchyProvider,
        notifier: Notifier | None = None,
        clock: Clock | None = None,
        tenant_id: str = DEFAULT_TENANT_ID,
        defaults: ApprovalSettings | None = None,
        deliver_after_commit: bool = False,
    ) -> None:
        self.session = session
        self.org = org
        self.clock = clock or SystemClock()

        # Order matters (dependency graph)
        self.dispatcher = NotificationDispatcher(notifier, self.clock)
        if deliver_after_commit:
            self.dispatcher.bind_to_session(session)
        self.policy_store = PolicyStore(
            session, org, self.clock, tenant_id=tenant_id, defaults=defaults,
        )
        self.delegations = DelegationService(
            session, org, self.policy_store, self.dispatcher, self.clock,
        )
        self.approvals = ApprovalService(
            session, org, self.policy_store, self.delegations,
            self.dispatcher, self.clock,
        )
        self.selector = ApprovalSelector(session, self.clock)


def workflow_factory(
    org: OrgHierarchyProvider,
    notifier: Notifier | None = None,
    clock: Clock | None = None,
    tenant_id: str = DEFAULT_TENANT_ID,
    defaults: ApprovalSettings | None = None,
    deliver_after_commit: bool = True,
) -> Callable[[Session], ApprovalWorkflow]:
    """Bind everything but the session, for per-transaction construction."""

    def build(session: Session) -> ApprovalWorkflow:
        return ApprovalWorkflow(
            session, org, notifier=notifier, clock=clock,
            tenant_id=tenant_id, defaults=defaults,
            deliver_after_commit=deliver_after_commit,
        )

    return build
