"""Request and response bodies for the approvals HTTP API."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from approval_kernel.domain.approval import (
    DecisionAction,
    HistoryAction,
    RequestPriority,
    RequestStatus,
)
from approval_kernel.domain.delegation import DelegationStatus


# region ========== Requests ==========

class ApprovalRequestCreate(BaseModel):
    request_type: str = Field(..., min_length=1, max_length=100)
    title: str = Field("", max_length=500)
    priority: RequestPriority = RequestPriority.MEDIUM
    amount: Optional[Decimal] = Field(None, ge=0)
    days: Optional[Decimal] = Field(None, ge=0)
    details: dict[str, Any] = Field(default_factory=dict)


class ApprovalDecisionBody(BaseModel):
    action: DecisionAction
    version: int = Field(..., ge=1)
    comment: str = ""


class DecisionEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    sequence: int
    action: HistoryAction
    actor_id: Optional[UUID] = None
    comment: str = ""
    occurred_at: datetime
    request_version: int
    escalation_level: int


class ApprovalRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    request_id: UUID
    request_type: str
    requester_id: UUID
    status: RequestStatus
    version: int
    priority: RequestPriority
    title: str
    amount: Optional[Decimal] = None
    days: Optional[Decimal] = None
    details: dict[str, Any] = Field(default_factory=dict)
    current_approver_id: Optional[UUID] = None
    nominal_approver_id: Optional[UUID] = None
    delegation_id: Optional[UUID] = None
    escalation_level: int
    created_at: datetime
    last_state_change_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    archived_at: Optional[datetime] = None
    decision_history: list[DecisionEventResponse] = Field(default_factory=list)


# endregion

# region ========== Delegations ==========

class DelegationScopeBody(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    request_types: list[str] = Field(default_factory=list)
    escalation_levels: list[int] = Field(default_factory=list)


class DelegationCreate(BaseModel):
    delegate_id: UUID
    start_date: date
    end_date: date
    scope: DelegationScopeBody = Field(default_factory=DelegationScopeBody)
    reason: str = ""


class DelegationDecisionBody(BaseModel):
    action: DecisionAction
    comment: str = ""


class DelegationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    delegation_id: UUID
    delegator_id: UUID
    delegate_id: UUID
    scope: DelegationScopeBody
    start_date: date
    end_date: date
    status: DelegationStatus
    version: int
    reason: str = ""
    approver_id: Optional[UUID] = None
    approver_role: Optional[str] = None
    approved_by: Optional[UUID] = None
    created_at: Optional[datetime] = None
    decided_at: Optional[datetime] = None
    revoked_by: Optional[UUID] = None
    revoked_at: Optional[datetime] = None
    archived_at: Optional[datetime] = None


# endregion

# region ========== Settings ==========

class ApprovalSettingsResponse(BaseModel):
    tenant_id: str
    version: int
    checksum: str
    updated_at: Optional[datetime] = None
    updated_by: Optional[UUID] = None
    settings: dict[str, Any]


class ApprovalSettingsUpdate(BaseModel):
    settings: dict[str, Any]
    expected_version: Optional[int] = Field(None, ge=0)


# endregion

# region ========== Stats ==========

class ApproverCountResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    approver_id: UUID
    decisions: int


class ApprovalStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total: int
    by_status: dict[str, int]
    by_type: dict[str, int]
    average_decision_hours: Optional[Decimal] = None
    top_approvers: list[ApproverCountResponse] = Field(default_factory=list)

# endregion
