from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status

from approval_api.dependencies import ApiContext, get_actor_id, get_context
from approval_api.schemas import (
    ApprovalDecisionBody,
    ApprovalRequestCreate,
    ApprovalRequestResponse,
    ApprovalStatsResponse,
)
from approval_kernel.domain.approval import RequestStatus

router = APIRouter()

# region ========== Approval Requests ==========

@router.post(
    "/requests",
    response_model=ApprovalRequestResponse,
    status_code=status.HTTP_201_CREATED,
)
def submit_request(
    body: ApprovalRequestCreate,
    ctx: ApiContext = Depends(get_context),
    actor_id: UUID = Depends(get_actor_id),
):
    """Submit a request on behalf of the calling actor"""
    with ctx.unit_of_work(actor_id) as workflow:
        request = workflow.approvals.submit(
            actor_id,
            body.request_type,
            title=body.title,
            priority=body.priority,
            amount=body.amount,
            days=body.days,
            details=body.details,
        )
    return ApprovalRequestResponse.model_validate(request)


@router.get("/requests", response_model=List[ApprovalRequestResponse])
def list_requests(
    status_filter: Optional[RequestStatus] = Query(None, alias="status"),
    requester_id: Optional[UUID] = Query(None),
    request_type: Optional[str] = Query(None),
    include_archived: bool = Query(False),
    assigned_to_me: bool = Query(False, description="Only requests awaiting my decision"),
    ctx: ApiContext = Depends(get_context),
    actor_id: UUID = Depends(get_actor_id),
):
    """List requests, or the caller's inbox with ``assigned_to_me``"""
    with ctx.unit_of_work(actor_id) as workflow:
        if assigned_to_me:
            requests = workflow.selector.pending_for_approver(
                actor_id,
                allow_self_approval=workflow.policy_store.current().allow_self_approval,
            )
        else:
            requests = workflow.selector.list_requests(
                status=status_filter,
                requester_id=requester_id,
                request_type=request_type,
                include_archived=include_archived,
            )
    return [ApprovalRequestResponse.model_validate(r) for r in requests]


@router.get("/requests/{request_id}", response_model=ApprovalRequestResponse)
def get_request(
    request_id: UUID = Path(...),
    ctx: ApiContext = Depends(get_context),
    actor_id: UUID = Depends(get_actor_id),
):
    with ctx.unit_of_work(actor_id) as workflow:
        request = workflow.approvals.get_request(request_id)
    return ApprovalRequestResponse.model_validate(request)


@router.put("/requests/{request_id}", response_model=ApprovalRequestResponse)
def decide_request(
    body: ApprovalDecisionBody,
    request_id: UUID = Path(...),
    ctx: ApiContext = Depends(get_context),
    actor_id: UUID = Depends(get_actor_id),
):
    """Approve or reject; ``version`` must match the request's current version"""
    with ctx.unit_of_work(actor_id) as workflow:
        request = workflow.approvals.decide(
            request_id, actor_id, body.action, body.version, body.comment,
        )
    return ApprovalRequestResponse.model_validate(request)


@router.delete("/requests/{request_id}", response_model=ApprovalRequestResponse)
def withdraw_request(
    request_id: UUID = Path(...),
    version: Optional[int] = Query(None, ge=1),
    comment: str = Query(""),
    ctx: ApiContext = Depends(get_context),
    actor_id: UUID = Depends(get_actor_id),
):
    """Administrative withdrawal (admin only)"""
    with ctx.unit_of_work(actor_id) as workflow:
        request = workflow.approvals.withdraw(
            request_id, actor_id, comment=comment, expected_version=version,
        )
    return ApprovalRequestResponse.model_validate(request)

# endregion

# region ========== Stats ==========

@router.get("/stats", response_model=ApprovalStatsResponse)
def get_stats(
    ctx: ApiContext = Depends(get_context),
    actor_id: UUID = Depends(get_actor_id),
):
    with ctx.unit_of_work(actor_id) as workflow:
        stats = workflow.selector.stats()
    return ApprovalStatsResponse.model_validate(stats)

# endregion
