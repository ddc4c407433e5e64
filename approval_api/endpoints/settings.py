from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends

from approval_api.dependencies import ApiContext, get_actor_id, get_context
from approval_api.schemas import ApprovalSettingsResponse, ApprovalSettingsUpdate
from approval_config.loader import parse_settings, settings_to_dict
from approval_kernel.domain.settings import SettingsRecord
from approval_kernel.exceptions import InvalidSettingsError

router = APIRouter()


def _to_response(record: SettingsRecord) -> ApprovalSettingsResponse:
    return ApprovalSettingsResponse(
        tenant_id=record.tenant_id,
        version=record.version,
        checksum=record.checksum,
        updated_at=record.updated_at,
        updated_by=record.updated_by,
        settings=settings_to_dict(record.settings),
    )


@router.get("/settings", response_model=ApprovalSettingsResponse)
def get_settings(
    ctx: ApiContext = Depends(get_context),
    actor_id: UUID = Depends(get_actor_id),
):
    """Current approval settings for the tenant (defaults if never saved)"""
    with ctx.unit_of_work(actor_id) as workflow:
        record = workflow.policy_store.get()
    return _to_response(record)


@router.put("/settings", response_model=ApprovalSettingsResponse)
def update_settings(
    body: ApprovalSettingsUpdate,
    ctx: ApiContext = Depends(get_context),
    actor_id: UUID = Depends(get_actor_id),
):
    """Replace the whole settings record (admin only)"""
    try:
        new_settings = parse_settings(body.settings)
    except ValueError as exc:
        raise InvalidSettingsError((str(exc),)) from None
    with ctx.unit_of_work(actor_id) as workflow:
        record = workflow.policy_store.update(
            new_settings, actor_id, expected_version=body.expected_version,
        )
    return _to_response(record)
