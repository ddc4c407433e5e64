"""
approval_services.approval_service -- Request Lifecycle Engine.

Responsibility:
    Owns the state machine of an individual approval request: submission
    (with auto-approval evaluation), manual decision, escalation, expiry,
    administrative withdrawal and archival.  Resolves the effective
    approver through the delegation service on every decision.

Architecture position:
    Services -- composes the pure auto-approval, routing and escalation
    engines with kernel models, the policy store and the delegation
    service.

Invariants enforced:
    RL-1 -- Lifecycle state machine (``REQUEST_TRANSITIONS``); terminal
            requests never change status again.
    RL-2 -- History appended in ``sequence`` order, one event per action.
    RL-3 -- Optimistic concurrency: every mutation checks the caller's
            ``expected_version`` and flushes exactly once, so the version
            advances by one per successful operation.  A concurrent writer
            that passed the check loses at flush (version_id_col).
    RL-5 -- Auto-approval is evaluated once, at submission.
    RL-6 -- Effective approver is re-resolved at decision time; a lapsed
            delegation falls back to the nominal approver.
    RL-7 -- Self-approval is refused unless ``allow_self_approval``, and
            resolution then passes over a delegation to the requester.

Failure modes:
    - ForbiddenError: unknown requester, actor not the effective approver,
      non-admin withdrawal.
    - InvalidRequestTypeError, DuplicateSubmissionError on submit.
    - RequestNotFoundError, RequestNotPendingError,
      SelfApprovalForbiddenError, StaleRequestVersionError on decide.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from approval_engines.auto_approval import evaluate_auto_approval
from approval_engines.escalation import EscalationOutcome, evaluate_escalation
from approval_engines.routing import nominal_approver, resolve_effective_approver
from approval_kernel.domain.approval import (
    DECIDABLE_REQUEST_STATUSES,
    DECISION_OUTCOMES,
    OPEN_REQUEST_STATUSES,
    TERMINAL_REQUEST_STATUSES,
    ApprovalRequest,
    DecisionAction,
    EffectiveApprover,
    HistoryAction,
    RequestPriority,
    RequestStatus,
)
from approval_kernel.domain.clock import Clock, SystemClock, as_utc
from approval_kernel.domain.notifications import NotificationEventType
from approval_kernel.domain.org import OrgHierarchyProvider
from approval_kernel.domain.settings import ApprovalSettings
from approval_kernel.exceptions import (
    DuplicateSubmissionError,
    ForbiddenError,
    InvalidRequestTypeError,
    RequestNotFoundError,
    RequestNotPendingError,
    SelfApprovalForbiddenError,
    StaleRequestVersionError,
)
from approval_kernel.logging_config import get_logger
from approval_kernel.models.approval import ApprovalRequestModel, DecisionEventModel
from approval_kernel.utils.hashing import hash_payload
from approval_services.delegation_service import DelegationService
from approval_services.notification_dispatcher import NotificationDispatcher
from approval_services.policy_store import PolicyStore

logger = get_logger("services.approval")

_STATUS_NOTICES: dict[RequestStatus, NotificationEventType] = {
    RequestStatus.APPROVED: NotificationEventType.REQUEST_APPROVED,
    RequestStatus.REJECTED: NotificationEventType.REQUEST_REJECTED,
}


def compute_fingerprint(
    request_type: str,
    title: str,
    amount: Decimal | None,
    days: Decimal | None,
    details: dict[str, Any] | None,
) -> str:
    """Content fingerprint used for duplicate-submission detection."""
    return hash_payload({
        "request_type": request_type,
        "title": title,
        "amount": amount,
        "days": days,
        "details": details or {},
    })


class ApprovalService:
    """Manages the approval request lifecycle."""

    def __init__(
        self,
        session: Session,
        org: OrgHierarchyProvider,
        policy_store: PolicyStore,
        delegations: DelegationService,
        dispatcher: NotificationDispatcher | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._session = session
        self._org = org
        self._policy_store = policy_store
        self._delegations = delegations
        self._clock = clock or SystemClock()
        self._dispatcher = dispatcher or NotificationDispatcher(clock=self._clock)

    # =====================================================================
    # Submission
    # =====================================================================

    def submit(
        self,
        requester_id: UUID,
        request_type: str,
        *,
        title: str = "",
        priority: RequestPriority = RequestPriority.MEDIUM,
        amount: Decimal | None = None,
        days: Decimal | None = None,
        details: dict[str, Any] | None = None,
    ) -> ApprovalRequest:
        """Submit a request.  Ends ``auto_approved`` or ``pending``."""
        settings = self._policy_store.current()

        if not self._org.user_exists(requester_id):
            raise ForbiddenError(
                str(requester_id), "submit approval request", "unknown requester",
            )
        recognized = settings.recognized_request_types
        if request_type not in recognized:
            raise InvalidRequestTypeError(request_type, recognized)

        now = self._clock.now()
        fingerprint = compute_fingerprint(request_type, title, amount, days, details)
        self._check_duplicate(settings, requester_id, fingerprint, now)

        auto = evaluate_auto_approval(
            settings.auto_approval, request_type, amount, days,
        )

        model = ApprovalRequestModel(
            request_id=uuid4(),
            request_type=request_type,
            requester_id=requester_id,
            priority=priority.value,
            title=title,
            amount=amount,
            days=days,
            details=dict(details or {}),
            escalation_level=0,
            fingerprint=fingerprint,
            created_at=now,
            last_state_change_at=now,
        )
        self._append_event(
            model, HistoryAction.SUBMIT, now,
            request_version=0, actor_id=requester_id, sequence=1,
        )

        resolution: EffectiveApprover | None = None
        if auto.eligible:
            model.status = RequestStatus.AUTO_APPROVED.value
            model.resolved_at = now
            self._append_event(
                model, HistoryAction.AUTO_APPROVE, now,
                request_version=0, comment=auto.reason, sequence=2,
            )
        else:
            resolution = self._resolve(
                settings, requester_id, request_type, 0, self._clock.today(),
            )
            model.status = RequestStatus.PENDING.value
            self._apply_resolution(model, resolution)

        self._session.add(model)
        self._session.flush()

        logger.info(
            "approval_request_submitted",
            extra={
                "request_id": str(model.request_id),
                "request_type": request_type,
                "requester_id": str(requester_id),
                "status": model.status,
                "current_approver_id": (
                    str(model.current_approver_id) if model.current_approver_id else None
                ),
                "auto_approval_reason": auto.reason,
            },
        )

        if auto.eligible:
            self._notify(
                settings, NotificationEventType.REQUEST_AUTO_APPROVED, model,
                (requester_id,),
            )
        else:
            self._notify(
                settings, NotificationEventType.REQUEST_SUBMITTED, model,
                (requester_id,),
            )
            self._notify(
                settings, NotificationEventType.REQUEST_ASSIGNED, model,
                (resolution.effective_approver_id,),
            )
        return model.to_dto()

    # =====================================================================
    # Decision
    # =====================================================================

    def decide(
        self,
        request_id: UUID,
        actor_id: UUID,
        action: DecisionAction,
        expected_version: int,
        comment: str = "",
    ) -> ApprovalRequest:
        """Approve or reject an open request."""
        settings = self._policy_store.current()
        model = self._load_model(request_id)
        self._check_version(model, expected_version)

        status = RequestStatus(model.status)
        if status not in DECIDABLE_REQUEST_STATUSES:
            raise RequestNotPendingError(str(request_id), status.value)

        # RL-7
        if actor_id == model.requester_id and not settings.allow_self_approval:
            raise SelfApprovalForbiddenError(str(request_id), str(actor_id))

        # RL-6
        today = self._clock.today()
        if not self._is_authorized(settings, model, actor_id, today):
            raise ForbiddenError(
                str(actor_id), "decide approval request",
                "not the effective approver",
            )

        new_status, history_action = DECISION_OUTCOMES[action]
        now = self._clock.now()
        self._append_event(
            model, history_action, now,
            request_version=expected_version, actor_id=actor_id, comment=comment,
        )
        model.status = new_status.value
        model.resolved_at = now
        model.last_state_change_at = now
        self._flush(model, expected_version)

        logger.info(
            "approval_request_decided",
            extra={
                "request_id": str(request_id),
                "actor_id": str(actor_id),
                "decision": action.value,
                "status": model.status,
                "version": model.version,
            },
        )
        self._notify(
            settings, _STATUS_NOTICES[new_status], model,
            (model.requester_id,),
            payload={"decided_by": str(actor_id), "comment": comment},
        )
        return model.to_dto()

    # =====================================================================
    # Escalation
    # =====================================================================

    def escalate(
        self,
        request_id: UUID,
        expected_version: int,
        as_of: datetime | None = None,
    ) -> ApprovalRequest:
        """Escalate or expire an overdue request.

        A request that is not yet due is returned unchanged.
        """
        settings = self._policy_store.current()
        model = self._load_model(request_id)
        self._check_version(model, expected_version)

        status = RequestStatus(model.status)
        if status not in DECIDABLE_REQUEST_STATUSES:
            raise RequestNotPendingError(str(request_id), status.value)

        as_of = as_of or self._clock.now()
        decision = evaluate_escalation(
            settings.escalation, status, model.escalation_level,
            model.last_state_change_at, as_of,
        )
        if not decision.is_due:
            return model.to_dto()

        previous_approver = model.current_approver_id
        if decision.outcome == EscalationOutcome.ESCALATE:
            resolution = self._resolve(
                settings, model.requester_id, model.request_type,
                decision.escalation_level, as_utc(as_of).date(),
            )
            self._append_event(
                model, HistoryAction.ESCALATE, as_of,
                request_version=expected_version,
                escalation_level=decision.escalation_level,
            )
            model.escalation_level = decision.escalation_level
            model.status = (
                RequestStatus.PENDING.value
                if resolution.is_resolved
                else RequestStatus.ESCALATED.value
            )
            self._apply_resolution(model, resolution)
        else:
            resolution = None
            self._append_event(
                model, HistoryAction.EXPIRE, as_of,
                request_version=expected_version,
            )
            model.status = RequestStatus.EXPIRED.value
            model.resolved_at = as_of
        model.last_state_change_at = as_of
        self._flush(model, expected_version)

        logger.info(
            "approval_request_escalated"
            if resolution is not None
            else "approval_request_expired",
            extra={
                "request_id": str(request_id),
                "escalation_level": model.escalation_level,
                "status": model.status,
                "version": model.version,
            },
        )

        if resolution is not None:
            self._notify(
                settings, NotificationEventType.REQUEST_ESCALATED, model,
                (model.requester_id, previous_approver),
            )
            self._notify(
                settings, NotificationEventType.REQUEST_ASSIGNED, model,
                (resolution.effective_approver_id,),
            )
        else:
            self._notify(
                settings, NotificationEventType.REQUEST_EXPIRED, model,
                (model.requester_id, previous_approver),
            )
        return model.to_dto()

    # =====================================================================
    # Administration
    # =====================================================================

    def withdraw(
        self,
        request_id: UUID,
        actor_id: UUID,
        comment: str = "",
        expected_version: int | None = None,
    ) -> ApprovalRequest:
        """Administrative withdrawal.

        An open request is closed as ``expired`` with a ``withdraw`` event.
        Every withdrawn request ends archived.
        """
        if not self._org.is_admin(actor_id):
            raise ForbiddenError(str(actor_id), "withdraw approval request", "admin only")

        settings = self._policy_store.current()
        model = self._load_model(request_id)
        if expected_version is not None:
            self._check_version(model, expected_version)
        version = model.version
        status = RequestStatus(model.status)
        now = self._clock.now()

        was_open = status in OPEN_REQUEST_STATUSES
        if was_open:
            self._append_event(
                model, HistoryAction.WITHDRAW, now,
                request_version=version, actor_id=actor_id, comment=comment,
            )
            model.status = RequestStatus.EXPIRED.value
            model.resolved_at = now
            model.last_state_change_at = now
        elif model.archived_at is not None:
            return model.to_dto()
        model.archived_at = now
        self._flush(model, version)

        logger.info(
            "approval_request_withdrawn",
            extra={
                "request_id": str(request_id),
                "actor_id": str(actor_id),
                "from_status": status.value,
                "version": model.version,
            },
        )
        if was_open:
            self._notify(
                settings, NotificationEventType.REQUEST_WITHDRAWN, model,
                (model.requester_id, model.current_approver_id),
            )
        return model.to_dto()

    def archive_resolved(self, cutoff: datetime) -> int:
        """Archive terminal requests resolved before ``cutoff``."""
        models = self._session.execute(
            select(ApprovalRequestModel).where(
                ApprovalRequestModel.status.in_(
                    [s.value for s in TERMINAL_REQUEST_STATUSES]
                ),
                ApprovalRequestModel.archived_at.is_(None),
                ApprovalRequestModel.resolved_at < cutoff,
            )
        ).scalars().all()
        if not models:
            return 0
        now = self._clock.now()
        for model in models:
            model.archived_at = now
        self._session.flush()
        logger.info(
            "approval_requests_archived",
            extra={"count": len(models), "cutoff": cutoff},
        )
        return len(models)

    # =====================================================================
    # Queries
    # =====================================================================

    def get_request(self, request_id: UUID) -> ApprovalRequest:
        return self._load_model(request_id).to_dto()

    def effective_approver(
        self,
        request_id: UUID,
        as_of: date | None = None,
    ) -> EffectiveApprover:
        """Re-resolve who may decide the request on ``as_of`` (default today)."""
        model = self._load_model(request_id)
        return self._resolve(
            self._policy_store.current(),
            model.requester_id,
            model.request_type,
            model.escalation_level,
            as_of or self._clock.today(),
        )

    # =====================================================================
    # Internals
    # =====================================================================

    def _load_model(self, request_id: UUID) -> ApprovalRequestModel:
        model = self._session.execute(
            select(ApprovalRequestModel).where(
                ApprovalRequestModel.request_id == request_id,
            )
        ).scalar_one_or_none()
        if model is None:
            raise RequestNotFoundError(str(request_id))
        return model

    def _check_version(self, model: ApprovalRequestModel, expected_version: int) -> None:
        if model.version != expected_version:
            logger.debug(
                "approval_request_stale",
                extra={
                    "request_id": str(model.request_id),
                    "expected_version": expected_version,
                    "actual_version": model.version,
                },
            )
            raise StaleRequestVersionError(
                str(model.request_id), expected_version, model.version,
            )

    def _flush(self, model: ApprovalRequestModel, expected_version: int) -> None:
        """Single flush per mutation; concurrent writers surface as stale."""
        request_id = str(model.request_id)
        try:
            self._session.flush()
        except (StaleDataError, IntegrityError):
            logger.debug(
                "approval_request_stale_at_flush",
                extra={"request_id": request_id, "expected_version": expected_version},
            )
            raise StaleRequestVersionError(request_id, expected_version) from None

    def _check_duplicate(
        self,
        settings: ApprovalSettings,
        requester_id: UUID,
        fingerprint: str,
        now: datetime,
    ) -> None:
        window = settings.requests.duplicate_window_minutes
        if window <= 0:
            return
        existing = self._session.execute(
            select(ApprovalRequestModel).where(
                ApprovalRequestModel.requester_id == requester_id,
                ApprovalRequestModel.fingerprint == fingerprint,
                ApprovalRequestModel.status.in_(
                    [s.value for s in OPEN_REQUEST_STATUSES]
                ),
                ApprovalRequestModel.created_at >= now - timedelta(minutes=window),
            ).order_by(ApprovalRequestModel.created_at.desc())
        ).scalars().first()
        if existing is not None:
            raise DuplicateSubmissionError(
                str(requester_id), str(existing.request_id), window,
            )

    def _resolve(
        self,
        settings: ApprovalSettings,
        requester_id: UUID,
        request_type: str,
        escalation_level: int,
        as_of: date,
    ) -> EffectiveApprover:
        chain = tuple(self._org.get_approval_chain(requester_id))
        nominal = nominal_approver(chain, escalation_level)
        delegations = (
            self._delegations.delegations_from(nominal) if nominal is not None else []
        )
        # RL-7: a delegation to the requester never makes them the approver
        excluded = None if settings.allow_self_approval else requester_id
        return resolve_effective_approver(
            chain, escalation_level, request_type, delegations, as_of, excluded,
        )

    def _is_authorized(
        self,
        settings: ApprovalSettings,
        model: ApprovalRequestModel,
        actor_id: UUID,
        today: date,
    ) -> bool:
        resolution = self._resolve(
            settings, model.requester_id, model.request_type,
            model.escalation_level, today,
        )
        if not resolution.is_resolved:
            # Nobody left in the chain: administrators decide
            return self._org.is_admin(actor_id)
        if actor_id == resolution.effective_approver_id:
            return True
        if resolution.is_delegated:
            # Any other delegate with an effective, covering delegation
            return any(
                d.delegate_id == actor_id
                and d.is_effective_on(today)
                and d.scope.covers(model.request_type, model.escalation_level)
                for d in self._delegations.delegations_from(
                    resolution.nominal_approver_id,
                )
            )
        return False

    @staticmethod
    def _apply_resolution(
        model: ApprovalRequestModel,
        resolution: EffectiveApprover,
    ) -> None:
        model.nominal_approver_id = resolution.nominal_approver_id
        model.current_approver_id = resolution.effective_approver_id
        model.delegation_id = resolution.delegation_id

    @staticmethod
    def _append_event(
        model: ApprovalRequestModel,
        action: HistoryAction,
        occurred_at: datetime,
        *,
        request_version: int,
        actor_id: UUID | None = None,
        comment: str = "",
        escalation_level: int | None = None,
        sequence: int | None = None,
    ) -> None:
        model.history.append(DecisionEventModel(
            request_id=model.request_id,
            sequence=sequence if sequence is not None else model.next_sequence,
            action=action.value,
            actor_id=actor_id,
            comment=comment,
            occurred_at=occurred_at,
            request_version=request_version,
            escalation_level=(
                escalation_level if escalation_level is not None
                else model.escalation_level
            ),
        ))

    def _notify(
        self,
        settings: ApprovalSettings,
        event_type: NotificationEventType,
        model: ApprovalRequestModel,
        recipients,
        payload: dict[str, Any] | None = None,
    ) -> None:
        body = {
            "request_type": model.request_type,
            "status": model.status,
            "escalation_level": model.escalation_level,
            "version": model.version,
        }
        body.update(payload or {})
        self._dispatcher.dispatch(
            settings.notifications,
            event_type,
            recipients,
            request_id=model.request_id,
            payload=body,
        )
