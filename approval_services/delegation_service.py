"""
approval_services.delegation_service -- Delegation Manager.

Responsibility:
    Lifecycle of delegations of approval authority: request, approval or
    rejection by the routed approver, revocation, expiry and archival.
    Also answers "which delegations are effective right now" for the
    request lifecycle engine.

Architecture position:
    Services -- composes the pure delegation engine with kernel models and
    the policy store.

Invariants enforced:
    DG-1 -- Status transitions follow ``DELEGATION_TRANSITIONS``.
    DG-2 -- Lazy expiry: every read path treats a delegation past
            ``end_date`` as inactive regardless of stored status.
    DG-3..DG-6 -- Period, self-delegation and duration rules
            (``approval_engines.delegation``).
    DG-7 -- At most one overlapping active delegation per delegator unless
            ``allow_multiple_delegations``; re-checked on activation.
    DG-8 -- Revocation never touches decisions already made under the
            delegation.

Failure modes:
    - ForbiddenError: delegation disabled, or actor not allowed to decide /
      revoke.
    - DelegationScopeViolationError / DelegationDurationExceededError /
      InvalidDelegationPeriodError / DelegationLimitExceededError.
    - InvalidDelegationTransitionError on an illegal status change.
    - DelegationNotFoundError.
"""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from approval_engines.delegation import (
    ViolationKind,
    check_delegation_request,
    find_overlapping,
    route_delegation,
)
from approval_kernel.domain.approval import DecisionAction
from approval_kernel.domain.clock import Clock, SystemClock
from approval_kernel.domain.delegation import (
    Delegation,
    DelegationScope,
    DelegationStatus,
    TERMINAL_DELEGATION_STATUSES,
    can_transition_delegation,
)
from approval_kernel.domain.notifications import NotificationEventType
from approval_kernel.domain.org import ActorProfile, OrgHierarchyProvider
from approval_kernel.domain.settings import ApprovalSettings
from approval_kernel.exceptions import (
    DelegationDurationExceededError,
    DelegationLimitExceededError,
    DelegationNotFoundError,
    DelegationScopeViolationError,
    ForbiddenError,
    InvalidDelegationPeriodError,
    InvalidDelegationTransitionError,
)
from approval_kernel.logging_config import get_logger
from approval_kernel.models.delegation import DelegationModel
from approval_services.notification_dispatcher import NotificationDispatcher
from approval_services.policy_store import PolicyStore

logger = get_logger("services.delegation")


class DelegationService:
    """Manages delegations of approval authority."""

    def __init__(
        self,
        session: Session,
        org: OrgHierarchyProvider,
        policy_store: PolicyStore,
        dispatcher: NotificationDispatcher | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._session = session
        self._org = org
        self._policy_store = policy_store
        self._clock = clock or SystemClock()
        self._dispatcher = dispatcher or NotificationDispatcher(clock=self._clock)

    # =====================================================================
    # Commands
    # =====================================================================

    def request_delegation(
        self,
        delegator_id: UUID,
        delegate_id: UUID,
        scope: DelegationScope,
        start_date: date,
        end_date: date,
        reason: str = "",
    ) -> Delegation:
        """Create a delegation, active immediately or pending approval."""
        settings = self._policy_store.current()
        if not settings.allow_delegation:
            raise ForbiddenError(
                str(delegator_id), "delegate approval authority", "delegation disabled",
            )
        if not self._org.user_exists(delegator_id):
            raise ForbiddenError(str(delegator_id), "delegate", "unknown user")
        if not self._org.user_exists(delegate_id):
            raise DelegationScopeViolationError(
                str(delegator_id), str(delegate_id), "delegate is not a known user",
            )

        delegator = ActorProfile.from_provider(self._org, delegator_id)
        delegate = ActorProfile.from_provider(self._org, delegate_id)
        self._raise_for_violation(
            settings, delegator, delegate, start_date, end_date,
        )

        today = self._clock.today()
        if not settings.delegation.allow_multiple_delegations:
            self._check_overlap(delegator_id, scope, start_date, end_date, today)

        routing = route_delegation(
            settings.delegation,
            delegator,
            delegate,
            upper_group_leader_id=self._org.get_upper_group_leader(delegator_id),
            top_group_leader_id=self._org.get_top_group_leader(delegator_id),
        )

        now = self._clock.now()
        model = DelegationModel(
            delegation_id=uuid4(),
            delegator_id=delegator_id,
            delegate_id=delegate_id,
            scope_request_types=list(scope.request_types),
            scope_escalation_levels=list(scope.escalation_levels),
            start_date=start_date,
            end_date=end_date,
            status=routing.status.value,
            reason=reason,
            approver_id=routing.approver_id,
            approver_role=routing.approver_role.value if routing.approver_role else None,
            created_at=now,
            decided_at=now if routing.is_immediate else None,
        )
        self._session.add(model)
        self._session.flush()

        logger.info(
            "delegation_requested",
            extra={
                "delegation_id": str(model.delegation_id),
                "delegator_id": str(delegator_id),
                "delegate_id": str(delegate_id),
                "status": model.status,
                "approver_role": model.approver_role,
            },
        )

        if routing.is_immediate:
            self._notify(
                settings, NotificationEventType.DELEGATION_GRANTED, model,
                (delegator_id, delegate_id),
            )
        else:
            self._notify(
                settings, NotificationEventType.DELEGATION_REQUESTED, model,
                self._approver_recipients(model),
            )
        return model.to_dto()

    def decide_delegation(
        self,
        delegation_id: UUID,
        actor_id: UUID,
        action: DecisionAction,
        comment: str = "",
    ) -> Delegation:
        """Approve or reject a pending delegation."""
        settings = self._policy_store.current()
        model = self._load_model(delegation_id)
        current = DelegationStatus(model.status)
        target = (
            DelegationStatus.ACTIVE
            if action == DecisionAction.APPROVE
            else DelegationStatus.REJECTED
        )
        if current != DelegationStatus.PENDING_APPROVAL:
            raise InvalidDelegationTransitionError(
                str(delegation_id), current.value, target.value,
            )

        if not self._may_decide(model, actor_id):
            raise ForbiddenError(
                str(actor_id), "decide delegation", "not the routed approver",
            )

        today = self._clock.today()
        if target == DelegationStatus.ACTIVE:
            if today > model.end_date:
                raise InvalidDelegationTransitionError(
                    str(delegation_id), current.value, target.value,
                )
            if not settings.delegation.allow_multiple_delegations:
                dto = model.to_dto()
                self._check_overlap(
                    dto.delegator_id, dto.scope, dto.start_date, dto.end_date,
                    today, exclude_id=dto.delegation_id,
                )

        now = self._clock.now()
        model.status = target.value
        model.decided_at = now
        model.approved_by = actor_id if target == DelegationStatus.ACTIVE else None
        self._session.flush()

        logger.info(
            "delegation_decided",
            extra={
                "delegation_id": str(delegation_id),
                "actor_id": str(actor_id),
                "decision": action.value,
                "status": model.status,
                "comment": comment,
            },
        )

        event_type = (
            NotificationEventType.DELEGATION_GRANTED
            if target == DelegationStatus.ACTIVE
            else NotificationEventType.DELEGATION_REJECTED
        )
        self._notify(
            settings, event_type, model, (model.delegator_id, model.delegate_id),
        )
        return model.to_dto()

    def revoke(self, delegation_id: UUID, actor_id: UUID) -> Delegation:
        """Revoke an active or pending delegation (delegator or admin)."""
        settings = self._policy_store.current()
        model = self._load_model(delegation_id)
        if actor_id != model.delegator_id and not self._org.is_admin(actor_id):
            raise ForbiddenError(
                str(actor_id), "revoke delegation", "only the delegator or an admin",
            )

        current = DelegationStatus(model.status)
        if not can_transition_delegation(current, DelegationStatus.REVOKED):
            raise InvalidDelegationTransitionError(
                str(delegation_id), current.value, DelegationStatus.REVOKED.value,
            )

        now = self._clock.now()
        model.status = DelegationStatus.REVOKED.value
        model.revoked_by = actor_id
        model.revoked_at = now
        self._session.flush()

        logger.info(
            "delegation_revoked",
            extra={
                "delegation_id": str(delegation_id),
                "actor_id": str(actor_id),
                "from_status": current.value,
            },
        )
        self._notify(
            settings, NotificationEventType.DELEGATION_REVOKED, model,
            (model.delegator_id, model.delegate_id),
        )
        return model.to_dto()

    def expire_lapsed(self, as_of: date | None = None) -> list[Delegation]:
        """Mark active or pending delegations past ``end_date`` as expired."""
        as_of = as_of or self._clock.today()
        settings = self._policy_store.current()
        models = self._session.execute(
            select(DelegationModel).where(
                DelegationModel.status.in_([
                    DelegationStatus.ACTIVE.value,
                    DelegationStatus.PENDING_APPROVAL.value,
                ]),
                DelegationModel.end_date < as_of,
            ).order_by(DelegationModel.end_date, DelegationModel.delegation_id)
        ).scalars().all()

        expired: list[DelegationModel] = []
        for model in models:
            model.status = DelegationStatus.EXPIRED.value
            expired.append(model)
        if not expired:
            return []
        self._session.flush()

        for model in expired:
            logger.info(
                "delegation_expired",
                extra={
                    "delegation_id": str(model.delegation_id),
                    "end_date": model.end_date,
                },
            )
            self._notify(
                settings, NotificationEventType.DELEGATION_EXPIRED, model,
                (model.delegator_id, model.delegate_id),
            )
        return [m.to_dto() for m in expired]

    def archive_history(self, cutoff: datetime) -> int:
        """Archive terminal delegations that ended before ``cutoff``.

        Returns the number of delegations archived.
        """
        models = self._session.execute(
            select(DelegationModel).where(
                DelegationModel.status.in_(
                    [s.value for s in TERMINAL_DELEGATION_STATUSES]
                ),
                DelegationModel.archived_at.is_(None),
                DelegationModel.end_date < cutoff.date(),
            )
        ).scalars().all()
        if not models:
            return 0
        now = self._clock.now()
        for model in models:
            model.archived_at = now
        self._session.flush()
        logger.info(
            "delegations_archived",
            extra={"count": len(models), "cutoff": cutoff},
        )
        return len(models)

    # =====================================================================
    # Queries
    # =====================================================================

    def get_delegation(self, delegation_id: UUID) -> Delegation:
        return self._load_model(delegation_id).to_dto()

    def list_delegations(
        self,
        status: DelegationStatus | None = None,
        delegator_id: UUID | None = None,
        delegate_id: UUID | None = None,
        include_archived: bool = False,
    ) -> list[Delegation]:
        """List delegations.  Filtering by ACTIVE applies lazy expiry (DG-2)."""
        stmt = select(DelegationModel)
        if status is not None:
            stmt = stmt.where(DelegationModel.status == status.value)
        if delegator_id is not None:
            stmt = stmt.where(DelegationModel.delegator_id == delegator_id)
        if delegate_id is not None:
            stmt = stmt.where(DelegationModel.delegate_id == delegate_id)
        if not include_archived:
            stmt = stmt.where(DelegationModel.archived_at.is_(None))
        stmt = stmt.order_by(DelegationModel.created_at, DelegationModel.delegation_id)

        delegations = [m.to_dto() for m in self._session.execute(stmt).scalars()]
        if status == DelegationStatus.ACTIVE:
            today = self._clock.today()
            delegations = [d for d in delegations if not d.is_lapsed(today)]
        return delegations

    def delegations_from(self, delegator_id: UUID) -> list[Delegation]:
        """Stored-ACTIVE delegations granted by ``delegator_id``.

        Callers apply the date window themselves (``Delegation.is_effective_on``).
        """
        models = self._session.execute(
            select(DelegationModel).where(
                DelegationModel.delegator_id == delegator_id,
                DelegationModel.status == DelegationStatus.ACTIVE.value,
            )
        ).scalars().all()
        return [m.to_dto() for m in models]

    # =====================================================================
    # Internals
    # =====================================================================

    def _load_model(self, delegation_id: UUID) -> DelegationModel:
        model = self._session.execute(
            select(DelegationModel).where(
                DelegationModel.delegation_id == delegation_id,
            )
        ).scalar_one_or_none()
        if model is None:
            raise DelegationNotFoundError(str(delegation_id))
        return model

    def _raise_for_violation(
        self,
        settings: ApprovalSettings,
        delegator: ActorProfile,
        delegate: ActorProfile,
        start_date: date,
        end_date: date,
    ) -> None:
        violation = check_delegation_request(
            settings.delegation, delegator, delegate, start_date, end_date,
        )
        if violation is None:
            return
        delegator_id = str(delegator.user_id)
        delegate_id = str(delegate.user_id)
        if violation.kind == ViolationKind.INVALID_PERIOD:
            raise InvalidDelegationPeriodError(str(start_date), str(end_date))
        if violation.kind == ViolationKind.DURATION_EXCEEDED:
            raise DelegationDurationExceededError(
                delegator_id, delegate_id, violation.duration_days, violation.max_days,
            )
        raise DelegationScopeViolationError(delegator_id, delegate_id, violation.reason)

    def _check_overlap(
        self,
        delegator_id: UUID,
        scope: DelegationScope,
        start_date: date,
        end_date: date,
        today: date,
        exclude_id: UUID | None = None,
    ) -> None:
        existing = find_overlapping(
            self.delegations_from(delegator_id),
            delegator_id,
            scope,
            start_date,
            end_date,
            today,
            exclude_id=exclude_id,
        )
        if existing is not None:
            raise DelegationLimitExceededError(
                str(delegator_id), str(existing.delegation_id),
            )

    def _may_decide(self, model: DelegationModel, actor_id: UUID) -> bool:
        if model.approver_id is None:
            return self._org.is_admin(actor_id)
        return actor_id == model.approver_id

    def _approver_recipients(self, model: DelegationModel) -> tuple[UUID | None, ...]:
        if model.approver_id is not None:
            return (model.approver_id,)
        # Admin routing: no single recipient known to the kernel
        return (model.delegator_id,)

    def _notify(
        self,
        settings: ApprovalSettings,
        event_type: NotificationEventType,
        model: DelegationModel,
        recipients,
    ) -> None:
        self._dispatcher.dispatch(
            settings.notifications,
            event_type,
            recipients,
            delegation_id=model.delegation_id,
            payload={
                "delegator_id": str(model.delegator_id),
                "delegate_id": str(model.delegate_id),
                "status": model.status,
                "start_date": model.start_date.isoformat(),
                "end_date": model.end_date.isoformat(),
            },
        )
