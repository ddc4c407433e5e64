"""
Process entry point for the HTTP API.

Serve with any ASGI server using the factory form, e.g.::

    uvicorn approval_api.main:app_from_env --factory

Configuration comes from ``APPROVAL_*`` environment variables
(see ``approval_config.runtime.RuntimeConfig``).
"""

from __future__ import annotations

from fastapi import FastAPI

from approval_api.app import create_app
from approval_config.runtime import RuntimeConfig
from approval_services.bootstrap import bootstrap


def create_app_from_config(config: RuntimeConfig) -> FastAPI:
    runtime = bootstrap(config)
    return create_app(
        runtime.session_factory,
        runtime.org,
        clock=runtime.clock,
        tenant_id=config.tenant_id,
        defaults=runtime.defaults,
    )


def app_from_env() -> FastAPI:
    return create_app_from_config(RuntimeConfig.from_env())
