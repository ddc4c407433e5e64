"""
approval_services -- Package init and public API.

Responsibility:
    Stateful orchestration services that compose the pure approval engines
    (approval_engines/) and configuration codecs (approval_config/) with
    database sessions, the org hierarchy and notifications.  This is the
    only layer that holds database sessions or reads the wall clock.

Architecture position:
    Services -- stateful orchestration over engines + config + kernel.

    Dependency direction (enforced by tests/architecture/test_layer_boundaries.py):
        approval_services/ -> approval_engines/  (allowed)
        approval_services/ -> approval_config/   (allowed)
        approval_services/ -> approval_kernel/   (allowed)
        approval_engines/  -> approval_services/ (FORBIDDEN)
        approval_kernel/   -> approval_services/ (FORBIDDEN)

Invariants enforced:
    - Layer isolation: approval_kernel and approval_engines never import
      from this package.
    - DI transparency: service wiring is centralised in ApprovalWorkflow.
"""

from approval_kernel.logging_config import get_logger

logger = get_logger("services")

from approval_services.approval_service import ApprovalService
from approval_services.delegation_service import DelegationService
from approval_services.notification_dispatcher import (
    LoggingNotifier,
    NotificationDispatcher,
)
from approval_services.policy_store import DEFAULT_TENANT_ID, PolicyStore
from approval_services.workflow import ApprovalWorkflow, workflow_factory

__all__ = [
    "ApprovalService",
    "ApprovalWorkflow",
    "DEFAULT_TENANT_ID",
    "DelegationService",
    "LoggingNotifier",
    "NotificationDispatcher",
    "PolicyStore",
    "workflow_factory",
]
