"""
Tests for approval_config.loader.

Covers:
- Packaged defaults YAML parses to the product defaults
- Missing sections take defaults; wrong types raise ValueError
- settings_to_dict is JSON-safe and parses back to an equal record
- Checksum is stable for equal documents and changes with content
- Org directory parsing
"""

from decimal import Decimal
from uuid import uuid4

import pytest
import yaml

from approval_config.loader import (
    compute_checksum,
    dump_settings_yaml,
    load_org_directory,
    load_settings_file,
    parse_org_directory,
    parse_settings,
    settings_to_dict,
)
from approval_kernel.domain.org import LeaderTier
from approval_kernel.domain.settings import (
    ApprovalSettings,
    DelegationApprovalType,
    EligibilityScope,
)


class TestDefaults:

    def test_packaged_defaults_match_product_defaults(self):
        assert load_settings_file() == ApprovalSettings()

    def test_empty_document_is_defaults(self):
        assert parse_settings({}) == ApprovalSettings()


class TestParseSettings:

    def test_partial_section(self):
        settings = parse_settings({
            "allow_delegation": True,
            "delegation": {
                "who_can_delegate": "group_leaders",
                "who_approves_delegation": "admin",
            },
            "auto_approval": {"enabled": True, "max_amount": "250.50"},
        })
        assert settings.allow_delegation is True
        assert settings.delegation.who_can_delegate == EligibilityScope.GROUP_LEADERS
        assert settings.delegation.who_approves_delegation == DelegationApprovalType.ADMIN
        assert settings.delegation.max_delegation_duration_days == 30
        assert settings.auto_approval.max_amount == Decimal("250.50")

    def test_specific_user_ids_parsed_as_uuids(self):
        uid = uuid4()
        settings = parse_settings({"delegation": {"specific_user_ids": [str(uid)]}})
        assert settings.delegation.specific_user_ids == (uid,)

    @pytest.mark.parametrize("document", [
        {"allow_self_approval": "yes"},
        {"escalation": {"escalation_levels": "3"}},
        {"delegation": {"who_can_delegate": "everyone"}},
        {"auto_approval": {"max_amount": "lots"}},
        {"requests": {"custom_request_types": "overtime"}},
        {"notifications": ["email"]},
        {"delegation": {"specific_user_ids": ["not-a-uuid"]}},
    ])
    def test_malformed_documents_rejected(self, document):
        with pytest.raises(ValueError):
            parse_settings(document)

    def test_non_mapping_rejected(self):
        with pytest.raises(ValueError):
            parse_settings(["not", "a", "mapping"])


class TestSerialization:

    def test_dict_is_yaml_and_json_safe(self):
        settings = parse_settings({
            "delegation": {"specific_user_ids": [str(uuid4())]},
            "requests": {"custom_request_types": ["overtime"]},
        })
        document = settings_to_dict(settings)
        assert parse_settings(document) == settings
        assert parse_settings(yaml.safe_load(dump_settings_yaml(settings))) == settings

    def test_checksum_stable(self):
        a = settings_to_dict(ApprovalSettings())
        b = settings_to_dict(ApprovalSettings())
        assert compute_checksum(a) == compute_checksum(b)

    def test_checksum_changes_with_content(self):
        a = settings_to_dict(ApprovalSettings())
        b = settings_to_dict(ApprovalSettings(allow_self_approval=True))
        assert compute_checksum(a) != compute_checksum(b)


class TestOrgDirectory:

    def test_parse_members_and_groups(self):
        leader, member = uuid4(), uuid4()
        org = parse_org_directory({
            "groups": [
                {"group_id": "hq", "leader_id": str(leader)},
                {"group_id": "ops", "parent_group_id": "hq"},
            ],
            "members": [
                {"user_id": str(leader), "group_id": "hq", "leader_tier": "top_group_leader"},
                {
                    "user_id": str(member),
                    "group_id": "ops",
                    "roles": ["manager"],
                    "approval_chain": [str(leader)],
                },
            ],
        })
        assert org.get_leader_tier(leader) == LeaderTier.TOP_GROUP_LEADER
        assert org.get_approval_chain(member) == (leader,)
        assert org.has_role(member, "manager")
        assert org.get_upper_group_leader(member) == leader

    def test_unknown_tier_rejected(self):
        with pytest.raises(ValueError):
            parse_org_directory({
                "members": [{"user_id": str(uuid4()), "leader_tier": "emperor"}],
            })

    def test_load_from_file(self, tmp_path):
        uid = uuid4()
        path = tmp_path / "org.yaml"
        path.write_text(yaml.safe_dump({"members": [{"user_id": str(uid)}]}))
        assert load_org_directory(path).user_exists(uid)
