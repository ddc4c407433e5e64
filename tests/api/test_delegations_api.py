"""HTTP API tests for delegations and settings."""

from approval_config.loader import settings_to_dict
from approval_kernel.domain.settings import ApprovalSettings

PERIOD = {"start_date": "2024-03-04", "end_date": "2024-03-10"}


def enable_delegation(as_user, org, **delegation):
    document = settings_to_dict(ApprovalSettings(allow_delegation=True))
    document["delegation"].update(delegation)
    response = as_user(org.admin).put(
        "/approvals/settings", json={"settings": document},
    )
    assert response.status_code == 200, response.text
    return response.json()


class TestSettingsApi:

    def test_defaults(self, as_user, org):
        body = as_user(org.manager).get("/approvals/settings").json()
        assert body["version"] == 0
        assert body["tenant_id"] == "default"
        assert body["settings"] == settings_to_dict(ApprovalSettings())

    def test_admin_update(self, as_user, org):
        body = enable_delegation(as_user, org)
        assert body["version"] == 1
        assert body["settings"]["allow_delegation"] is True
        assert body["updated_by"] == str(org.admin)

    def test_non_admin_forbidden(self, as_user, org):
        response = as_user(org.manager).put(
            "/approvals/settings",
            json={"settings": settings_to_dict(ApprovalSettings())},
        )
        assert response.status_code == 403

    def test_malformed_document(self, as_user, org):
        response = as_user(org.admin).put(
            "/approvals/settings",
            json={"settings": {"delegation": {"who_can_delegate": "everyone"}}},
        )
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "INVALID_SETTINGS"

    def test_invalid_values(self, as_user, org):
        response = as_user(org.admin).put(
            "/approvals/settings",
            json={"settings": {"escalation": {"escalation_levels": 0}}},
        )
        assert response.status_code == 422
        error = response.json()["error"]
        assert "escalation.escalation_levels must be >= 1" in error["errors"]

    def test_stale_expected_version(self, as_user, org):
        enable_delegation(as_user, org)
        response = as_user(org.admin).put(
            "/approvals/settings",
            json={"settings": {}, "expected_version": 0},
        )
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "STALE_SETTINGS_VERSION"


class TestDelegationsApi:

    def test_request_decide_and_revoke(self, as_user, org):
        enable_delegation(as_user, org)
        created = as_user(org.manager).post(
            "/approvals/delegations",
            json={"delegate_id": str(org.peer_manager), "reason": "travel", **PERIOD},
        )
        assert created.status_code == 201, created.text
        delegation = created.json()
        assert delegation["status"] == "pending_approval"
        assert delegation["approver_id"] == str(org.director)
        assert delegation["scope"] == {"request_types": [], "escalation_levels": []}

        url = f"/approvals/delegations/{delegation['delegation_id']}"
        decided = as_user(org.director).put(url, json={"action": "approve"})
        assert decided.status_code == 200
        assert decided.json()["status"] == "active"

        revoked = as_user(org.manager).delete(url)
        assert revoked.status_code == 200
        assert revoked.json()["status"] == "revoked"

    def test_routes_requests_to_delegate(self, as_user, org):
        enable_delegation(as_user, org, require_approval=False)
        as_user(org.manager).post(
            "/approvals/delegations",
            json={
                "delegate_id": str(org.peer_manager),
                "scope": {"request_types": ["leave"]},
                **PERIOD,
            },
        )
        request = as_user(org.requester).post(
            "/approvals/requests", json={"request_type": "leave", "days": "1"},
        ).json()
        assert request["current_approver_id"] == str(org.peer_manager)

        inbox = as_user(org.peer_manager).get(
            "/approvals/requests", params={"assigned_to_me": "true"},
        ).json()
        assert [r["request_id"] for r in inbox] == [request["request_id"]]

        decided = as_user(org.peer_manager).put(
            f"/approvals/requests/{request['request_id']}",
            json={"action": "approve", "version": 1},
        )
        assert decided.json()["status"] == "approved"

    def test_list(self, as_user, org):
        enable_delegation(as_user, org, require_approval=False)
        as_user(org.manager).post(
            "/approvals/delegations",
            json={"delegate_id": str(org.peer_manager), **PERIOD},
        )
        active = as_user(org.admin).get(
            "/approvals/delegations", params={"status": "active"},
        ).json()
        assert len(active) == 1
        assert active[0]["delegator_id"] == str(org.manager)

    def test_disabled(self, as_user, org):
        response = as_user(org.manager).post(
            "/approvals/delegations",
            json={"delegate_id": str(org.peer_manager), **PERIOD},
        )
        assert response.status_code == 403

    def test_invalid_period(self, as_user, org):
        enable_delegation(as_user, org)
        response = as_user(org.manager).post(
            "/approvals/delegations",
            json={
                "delegate_id": str(org.peer_manager),
                "start_date": "2024-03-10",
                "end_date": "2024-03-04",
            },
        )
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "INVALID_DELEGATION_PERIOD"

    def test_ineligible_delegate(self, as_user, org):
        enable_delegation(as_user, org)
        response = as_user(org.manager).post(
            "/approvals/delegations",
            json={"delegate_id": str(org.outsider), **PERIOD},
        )
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "DELEGATION_SCOPE_VIOLATION"

    def test_overlap_conflict(self, as_user, org):
        enable_delegation(as_user, org, require_approval=False)
        caller = as_user(org.manager)
        caller.post(
            "/approvals/delegations",
            json={"delegate_id": str(org.peer_manager), **PERIOD},
        )
        response = caller.post(
            "/approvals/delegations",
            json={"delegate_id": str(org.director), **PERIOD},
        )
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "DELEGATION_LIMIT_EXCEEDED"

    def test_decide_twice_conflict(self, as_user, org):
        enable_delegation(as_user, org)
        delegation = as_user(org.manager).post(
            "/approvals/delegations",
            json={"delegate_id": str(org.peer_manager), **PERIOD},
        ).json()
        url = f"/approvals/delegations/{delegation['delegation_id']}"
        as_user(org.director).put(url, json={"action": "reject"})
        response = as_user(org.director).put(url, json={"action": "approve"})
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "INVALID_DELEGATION_TRANSITION"
