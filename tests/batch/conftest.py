"""
Fixtures for sweep tests.

Sweeps open their own sessions, so state is set up through committed
transactions rather than the shared ``session`` fixture.
"""

from dataclasses import replace

import pytest

from approval_kernel.db.engine import session_scope
from approval_services.workflow import workflow_factory


@pytest.fixture
def factory(org, notifier, clock):
    return workflow_factory(org.hierarchy, notifier=notifier, clock=clock)


@pytest.fixture
def in_transaction(session_factory, factory):
    """Run ``fn(workflow)`` in a committed transaction and return its result."""

    def _run(fn):
        with session_scope(session_factory) as session:
            return fn(factory(session))

    return _run


@pytest.fixture
def store_settings(in_transaction, org):
    """Committed counterpart of the ``configure`` fixture."""

    def _store(**overrides):
        def apply(workflow):
            current = workflow.policy_store.current()
            top_level = {
                key: replace(getattr(current, key), **value)
                if isinstance(value, dict) else value
                for key, value in overrides.items()
            }
            workflow.policy_store.update(replace(current, **top_level), org.admin)

        in_transaction(apply)

    return _store
