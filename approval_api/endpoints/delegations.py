from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status

from approval_api.dependencies import ApiContext, get_actor_id, get_context
from approval_api.schemas import (
    DelegationCreate,
    DelegationDecisionBody,
    DelegationResponse,
)
from approval_kernel.domain.delegation import DelegationScope, DelegationStatus

router = APIRouter()


@router.get("/delegations", response_model=List[DelegationResponse])
def list_delegations(
    status_filter: Optional[DelegationStatus] = Query(None, alias="status"),
    delegator_id: Optional[UUID] = Query(None),
    delegate_id: Optional[UUID] = Query(None),
    include_archived: bool = Query(False),
    ctx: ApiContext = Depends(get_context),
    actor_id: UUID = Depends(get_actor_id),
):
    """List delegations; ``status=active`` excludes lapsed ones"""
    with ctx.unit_of_work(actor_id) as workflow:
        delegations = workflow.delegations.list_delegations(
            status=status_filter,
            delegator_id=delegator_id,
            delegate_id=delegate_id,
            include_archived=include_archived,
        )
    return [DelegationResponse.model_validate(d) for d in delegations]


@router.post(
    "/delegations",
    response_model=DelegationResponse,
    status_code=status.HTTP_201_CREATED,
)
def request_delegation(
    body: DelegationCreate,
    ctx: ApiContext = Depends(get_context),
    actor_id: UUID = Depends(get_actor_id),
):
    """Delegate the caller's approval authority"""
    scope = DelegationScope(
        request_types=tuple(body.scope.request_types),
        escalation_levels=tuple(body.scope.escalation_levels),
    )
    with ctx.unit_of_work(actor_id) as workflow:
        delegation = workflow.delegations.request_delegation(
            actor_id,
            body.delegate_id,
            scope,
            body.start_date,
            body.end_date,
            reason=body.reason,
        )
    return DelegationResponse.model_validate(delegation)


@router.put("/delegations/{delegation_id}", response_model=DelegationResponse)
def decide_delegation(
    body: DelegationDecisionBody,
    delegation_id: UUID = Path(...),
    ctx: ApiContext = Depends(get_context),
    actor_id: UUID = Depends(get_actor_id),
):
    """Approve or reject a delegation awaiting approval"""
    with ctx.unit_of_work(actor_id) as workflow:
        delegation = workflow.delegations.decide_delegation(
            delegation_id, actor_id, body.action, body.comment,
        )
    return DelegationResponse.model_validate(delegation)


@router.delete("/delegations/{delegation_id}", response_model=DelegationResponse)
def revoke_delegation(
    delegation_id: UUID = Path(...),
    ctx: ApiContext = Depends(get_context),
    actor_id: UUID = Depends(get_actor_id),
):
    """Revoke a delegation (delegator or admin)"""
    with ctx.unit_of_work(actor_id) as workflow:
        delegation = workflow.delegations.revoke(delegation_id, actor_id)
    return DelegationResponse.model_validate(delegation)
