"""
FastAPI application factory.

The caller supplies the session factory and org directory; the app owns no
globals, so tests can build one per in-memory database.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import FastAPI
from sqlalchemy.orm import Session

from approval_api.dependencies import ApiContext
from approval_api.endpoints import api_router
from approval_api.errors import register_error_handlers
from approval_kernel import __version__
from approval_kernel.domain.clock import Clock
from approval_kernel.domain.notifications import Notifier
from approval_kernel.domain.org import OrgHierarchyProvider
from approval_kernel.domain.settings import ApprovalSettings
from approval_services.policy_store import DEFAULT_TENANT_ID
from approval_services.workflow import workflow_factory

app_config = {
    "title": "Approval Workflow & Delegation Engine",
    "description": "Approval requests, delegation of approval authority and escalation",
    "version": __version__,
}


def create_app(
    session_factory: Callable[[], Session],
    org: OrgHierarchyProvider,
    notifier: Notifier | None = None,
    clock: Clock | None = None,
    tenant_id: str = DEFAULT_TENANT_ID,
    defaults: ApprovalSettings | None = None,
) -> FastAPI:
    app = FastAPI(**app_config)
    app.state.context = ApiContext(
        session_factory=session_factory,
        workflow_factory=workflow_factory(
            org, notifier=notifier, clock=clock,
            tenant_id=tenant_id, defaults=defaults,
        ),
    )
    register_error_handlers(app)
    app.include_router(api_router)

    @app.get("/health")
    def health_check():
        return {"status": "healthy", "version": __version__}

    return app
