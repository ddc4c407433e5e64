"""
Pytest fixtures for the approval engine test suite.

Provides:
- An in-memory SQLite engine with all tables, one per test
- A DeterministicClock with naive datetimes (SQLite drops tzinfo)
- A small org directory: requester -> manager -> director -> vp, plus an
  admin, a peer manager and a user with no role
- A recording notifier and an ``ApprovalWorkflow`` wired to all of the above
- ``captured_logs`` for asserting on structured log output
"""

import json
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from io import StringIO
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import Session, sessionmaker

from approval_kernel.db.engine import build_engine, create_tables
from approval_kernel.domain.clock import DeterministicClock
from approval_kernel.domain.notifications import NotificationEvent, NotificationEventType
from approval_kernel.domain.org import (
    ADMIN_ROLE,
    MANAGER_ROLE,
    LeaderTier,
    OrgGroup,
    OrgMember,
    StaticOrgHierarchy,
)
from approval_kernel.domain.settings import ApprovalSettings
from approval_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from approval_services.workflow import ApprovalWorkflow

# Monday, 09:00 UTC
START_TIME = datetime(2024, 3, 4, 9, 0, 0)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture approval_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, workflow):
            workflow.approvals.submit(...)
            logs = captured_logs()
            assert any(r["message"] == "approval_request_submitted" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("approval_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def session(session_factory) -> Session:
    session = session_factory()
    yield session
    session.rollback()
    session.close()


# =============================================================================
# Time
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock(START_TIME)


# =============================================================================
# Org directory
# =============================================================================


@dataclass
class Org:
    """Named users of the test org and the directory built from them."""

    hierarchy: StaticOrgHierarchy
    requester: UUID
    manager: UUID
    director: UUID
    vp: UUID
    admin: UUID
    peer_manager: UUID
    outsider: UUID


def build_org() -> Org:
    """
    Groups: hq (vp) <- division (director) <- team (manager), team2 (peer).

    requester's approval chain is [manager, director, vp].
    """
    requester, manager, director, vp = uuid4(), uuid4(), uuid4(), uuid4()
    admin, peer_manager, outsider = uuid4(), uuid4(), uuid4()

    org = StaticOrgHierarchy()
    org.add_group(OrgGroup("hq", leader_id=vp))
    org.add_group(OrgGroup("division", leader_id=director, parent_group_id="hq"))
    org.add_group(OrgGroup("team", leader_id=manager, parent_group_id="division"))
    org.add_group(OrgGroup("team2", leader_id=peer_manager, parent_group_id="division"))

    org.add_member(OrgMember(
        requester, group_id="team", approval_chain=(manager, director, vp),
    ))
    org.add_member(OrgMember(
        manager, group_id="team", roles=(MANAGER_ROLE,),
        leader_tier=LeaderTier.GROUP_LEADER, approval_chain=(director, vp),
    ))
    org.add_member(OrgMember(
        peer_manager, group_id="team2", roles=(MANAGER_ROLE,),
        leader_tier=LeaderTier.GROUP_LEADER, approval_chain=(director, vp),
    ))
    org.add_member(OrgMember(
        director, group_id="division", roles=(MANAGER_ROLE,),
        leader_tier=LeaderTier.UPPER_GROUP_LEADER, approval_chain=(vp,),
    ))
    org.add_member(OrgMember(
        vp, group_id="hq", leader_tier=LeaderTier.TOP_GROUP_LEADER,
    ))
    org.add_member(OrgMember(admin, roles=(ADMIN_ROLE,)))
    org.add_member(OrgMember(outsider, group_id="team"))

    return Org(
        hierarchy=org,
        requester=requester,
        manager=manager,
        director=director,
        vp=vp,
        admin=admin,
        peer_manager=peer_manager,
        outsider=outsider,
    )


@pytest.fixture
def org() -> Org:
    return build_org()


# =============================================================================
# Notifications
# =============================================================================


class RecordingNotifier:
    """Notifier that keeps every event it is handed."""

    def __init__(self) -> None:
        self.events: list[NotificationEvent] = []

    def notify(self, event: NotificationEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: NotificationEventType) -> list[NotificationEvent]:
        return [e for e in self.events if e.event_type == event_type]

    def clear(self) -> None:
        self.events.clear()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def workflow(session, org, notifier, clock) -> ApprovalWorkflow:
    return ApprovalWorkflow(session, org.hierarchy, notifier=notifier, clock=clock)


@pytest.fixture
def configure(workflow, org):
    """
    Store settings built from the defaults with section overrides.

    Usage::

        configure(allow_delegation=True, delegation={"require_approval": False})
    """

    def _configure(**overrides) -> ApprovalSettings:
        current = workflow.policy_store.current()
        top_level = {}
        for key, value in overrides.items():
            if isinstance(value, dict):
                top_level[key] = replace(getattr(current, key), **value)
            else:
                top_level[key] = value
        new_settings = replace(current, **top_level)
        workflow.policy_store.update(new_settings, org.admin)
        return new_settings

    return _configure
