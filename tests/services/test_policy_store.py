"""
Tests for PolicyStore.

Covers:
- Unset tenant reads the defaults at version 0
- Only admins may replace settings
- Invalid settings are rejected and nothing is stored
- expected_version guards against lost updates
- Every update bumps version and recomputes checksum
- Tenants are isolated
"""

from dataclasses import replace

import pytest

from approval_config.loader import compute_checksum, settings_to_dict
from approval_kernel.domain.settings import (
    ApprovalSettings,
    EscalationSettings,
    RequestSettings,
)
from approval_kernel.exceptions import (
    ForbiddenError,
    InvalidSettingsError,
    StaleSettingsVersionError,
)
from approval_services.policy_store import PolicyStore


class TestDefaults:

    def test_unset_tenant_reads_defaults(self, workflow):
        record = workflow.policy_store.get()
        assert record.version == 0
        assert record.settings == ApprovalSettings()
        assert record.checksum == compute_checksum(settings_to_dict(ApprovalSettings()))
        assert record.updated_by is None

    def test_injected_defaults(self, session, org, clock):
        defaults = ApprovalSettings(allow_self_approval=True)
        store = PolicyStore(session, org.hierarchy, clock, defaults=defaults)
        assert store.current().allow_self_approval is True
        assert store.get().version == 0


class TestUpdate:

    def test_admin_update_stored(self, workflow, org, clock):
        new = ApprovalSettings(allow_delegation=True)
        record = workflow.policy_store.update(new, org.admin)
        assert record.version == 1
        assert record.settings == new
        assert record.updated_by == org.admin
        assert record.updated_at == clock.now()
        assert workflow.policy_store.current() == new

    def test_each_update_bumps_version_and_checksum(self, workflow, org):
        first = workflow.policy_store.update(
            ApprovalSettings(allow_delegation=True), org.admin,
        )
        second = workflow.policy_store.update(
            ApprovalSettings(allow_delegation=False), org.admin,
        )
        assert second.version == first.version + 1
        assert second.checksum != first.checksum

    def test_non_admin_forbidden(self, workflow, org):
        with pytest.raises(ForbiddenError):
            workflow.policy_store.update(ApprovalSettings(), org.manager)
        assert workflow.policy_store.get().version == 0

    def test_invalid_settings_not_stored(self, workflow, org):
        bad = ApprovalSettings(escalation=EscalationSettings(escalation_levels=0))
        with pytest.raises(InvalidSettingsError) as exc_info:
            workflow.policy_store.update(bad, org.admin)
        assert "escalation.escalation_levels must be >= 1" in exc_info.value.errors
        assert workflow.policy_store.get().version == 0

    def test_warnings_do_not_block(self, workflow, org, captured_logs):
        settings = replace(
            ApprovalSettings(),
            auto_approval=replace(
                ApprovalSettings().auto_approval, enabled=True, allowed_types=(),
            ),
        )
        record = workflow.policy_store.update(settings, org.admin)
        assert record.version == 1
        assert any(
            r["message"] == "approval_settings_warning" for r in captured_logs()
        )

    def test_custom_types_become_recognized(self, workflow, org):
        workflow.policy_store.update(
            ApprovalSettings(requests=RequestSettings(custom_request_types=("overtime",))),
            org.admin,
        )
        assert "overtime" in workflow.policy_store.current().recognized_request_types


class TestExpectedVersion:

    def test_matching_version_accepted(self, workflow, org):
        workflow.policy_store.update(ApprovalSettings(), org.admin, expected_version=0)
        record = workflow.policy_store.update(
            ApprovalSettings(allow_delegation=True), org.admin, expected_version=1,
        )
        assert record.version == 2

    def test_stale_version_rejected(self, workflow, org):
        workflow.policy_store.update(ApprovalSettings(), org.admin)
        with pytest.raises(StaleSettingsVersionError) as exc_info:
            workflow.policy_store.update(
                ApprovalSettings(allow_delegation=True), org.admin, expected_version=0,
            )
        assert exc_info.value.expected_version == 0
        assert exc_info.value.actual_version == 1
        assert workflow.policy_store.current().allow_delegation is False


class TestTenantIsolation:

    def test_tenants_do_not_share_settings(self, session, org, clock):
        acme = PolicyStore(session, org.hierarchy, clock, tenant_id="acme")
        globex = PolicyStore(session, org.hierarchy, clock, tenant_id="globex")
        acme.update(ApprovalSettings(allow_self_approval=True), org.admin)
        assert acme.current().allow_self_approval is True
        assert globex.current().allow_self_approval is False
        assert globex.get().version == 0
