from fastapi import APIRouter

from approval_api.endpoints import delegations, requests, settings

api_router = APIRouter()
api_router.include_router(requests.router, prefix="/approvals", tags=["approvals"])
api_router.include_router(delegations.router, prefix="/approvals", tags=["delegations"])
api_router.include_router(settings.router, prefix="/approvals", tags=["settings"])
