import pytest
from fastapi.testclient import TestClient

from approval_api.app import create_app


@pytest.fixture
def client(session_factory, org, notifier, clock):
    app = create_app(session_factory, org.hierarchy, notifier=notifier, clock=clock)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def as_user(client):
    """``as_user(actor_id).get(...)`` sends requests as ``actor_id``."""

    class _Caller:
        def __init__(self, actor_id):
            self._headers = {"X-Actor-Id": str(actor_id)}

        def __getattr__(self, method):
            send = getattr(client, method)

            def call(url, **kwargs):
                headers = {**self._headers, **kwargs.pop("headers", {})}
                return send(url, headers=headers, **kwargs)

            return call

    return _Caller
