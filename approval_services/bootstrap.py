"""
approval_services.bootstrap -- Process startup from RuntimeConfig.

Responsibility:
    Turns a ``RuntimeConfig`` into the long-lived objects a process needs:
    logging, the database engine and session factory, the org directory and
    the tenant's default settings.  Shared by the HTTP app and the sweep
    scheduler entry point.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from approval_config.loader import load_org_directory, load_settings_file
from approval_config.runtime import RuntimeConfig
from approval_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
from approval_kernel.domain.clock import Clock, SystemClock
from approval_kernel.domain.org import OrgHierarchyProvider, StaticOrgHierarchy
from approval_kernel.domain.settings import ApprovalSettings
from approval_kernel.logging_config import LogContext, configure_logging, get_logger
from approval_services.workflow import ApprovalWorkflow, workflow_factory

logger = get_logger("services.bootstrap")


@dataclass
class Runtime:
    config: RuntimeConfig
    engine: Engine
    session_factory: Callable[[], Session]
    org: OrgHierarchyProvider
    defaults: ApprovalSettings
    clock: Clock

    def workflow_factory(self) -> Callable[[Session], ApprovalWorkflow]:
        return workflow_factory(
            self.org,
            clock=self.clock,
            tenant_id=self.config.tenant_id,
            defaults=self.defaults,
        )


def bootstrap(config: RuntimeConfig, clock: Clock | None = None) -> Runtime:
    """Configure logging, open the database and load directory + defaults.

    Raises:
        FileNotFoundError, ValueError: if a configured file is missing or
            malformed.
    """
    configure_logging(level=config.log_level)
    LogContext.set(tenant_id=config.tenant_id)

    engine = init_engine_from_url(config.database_url, echo=config.echo_sql)
    create_tables(engine)

    if config.org_file is not None:
        org: OrgHierarchyProvider = load_org_directory(config.org_file)
    else:
        logger.warning("org_directory_empty", extra={"reason": "APPROVAL_ORG_FILE not set"})
        org = StaticOrgHierarchy()

    defaults = load_settings_file(config.settings_file)

    logger.info(
        "runtime_bootstrapped",
        extra={
            "dialect": engine.dialect.name,
            "settings_file": str(config.settings_file) if config.settings_file else None,
            "org_file": str(config.org_file) if config.org_file else None,
        },
    )
    return Runtime(
        config=config,
        engine=engine,
        session_factory=get_session_factory(),
        org=org,
        defaults=defaults,
        clock=clock or SystemClock(),
    )
