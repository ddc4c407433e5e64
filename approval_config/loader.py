"""
Configuration Loader (``approval_config.loader``).

Responsibility
--------------
Loads YAML documents and converts between plain dicts and the typed
``approval_kernel.domain.settings`` dataclasses.  Also builds the static
org hierarchy used when no external directory is wired in.

Architecture position
---------------------
**Config layer** -- may import kernel domain types only.  Consumed by the
policy store (persistence of settings documents), the API (request
bodies) and the runtime bootstrap (settings and org files).

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass.
* Missing keys take the product defaults; unknown enum values are
  errors, never silently defaulted.
* ``settings_to_dict`` output is JSON-safe and round-trips through
  ``parse_settings``.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Wrong value types or unknown enum values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any
from uuid import UUID

import yaml

from approval_kernel.domain.org import (
    LeaderTier,
    OrgGroup,
    OrgMember,
    StaticOrgHierarchy,
)
from approval_kernel.domain.settings import (
    ApprovalSettings,
    AutoApprovalSettings,
    DelegationApprovalType,
    DelegationSettings,
    EligibilityScope,
    EscalationSettings,
    NotificationSettings,
    RequestSettings,
)

DEFAULT_SETTINGS_PATH = Path(__file__).parent / "defaults" / "approval_settings.yaml"


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


# =========================================================================
# Scalar parsing
# =========================================================================


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ValueError(f"'{key}' must be a mapping, got {type(value).__name__}")
    return value


def parse_bool(value: Any, name: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ValueError(f"'{name}' must be a boolean, got {value!r}")


def parse_int(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"'{name}' must be an integer, got {value!r}")
    return value


def parse_decimal(value: Any, name: str) -> Decimal:
    if isinstance(value, bool):
        raise ValueError(f"'{name}' must be a number, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"'{name}' must be a number, got {value!r}") from None


def parse_str_tuple(value: Any, name: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"'{name}' must be a list of strings, got {value!r}")
    return tuple(value)


def parse_uuid_tuple(value: Any, name: str) -> tuple[UUID, ...]:
    try:
        return tuple(UUID(str(v)) for v in (value or ()))
    except ValueError:
        raise ValueError(f"'{name}' must be a list of UUIDs, got {value!r}") from None


def _parse_enum(enum_cls, value: Any, name: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(e.value for e in enum_cls)
        raise ValueError(f"'{name}' must be one of [{allowed}], got {value!r}") from None


# =========================================================================
# Settings
# =========================================================================


def parse_delegation_settings(data: dict[str, Any]) -> DelegationSettings:
    d = DelegationSettings()
    return DelegationSettings(
        who_can_delegate=_parse_enum(
            EligibilityScope,
            data.get("who_can_delegate", d.who_can_delegate.value),
            "delegation.who_can_delegate",
        ),
        who_can_be_delegated=_parse_enum(
            EligibilityScope,
            data.get("who_can_be_delegated", d.who_can_be_delegated.value),
            "delegation.who_can_be_delegated",
        ),
        who_approves_delegation=_parse_enum(
            DelegationApprovalType,
            data.get("who_approves_delegation", d.who_approves_delegation.value),
            "delegation.who_approves_delegation",
        ),
        max_delegation_duration_days=parse_int(
            data.get("max_delegation_duration_days", d.max_delegation_duration_days),
            "delegation.max_delegation_duration_days",
        ),
        require_approval=parse_bool(
            data.get("require_approval", d.require_approval),
            "delegation.require_approval",
        ),
        auto_approve_for_upper_leaders=parse_bool(
            data.get("auto_approve_for_upper_leaders", d.auto_approve_for_upper_leaders),
            "delegation.auto_approve_for_upper_leaders",
        ),
        allow_multiple_delegations=parse_bool(
            data.get("allow_multiple_delegations", d.allow_multiple_delegations),
            "delegation.allow_multiple_delegations",
        ),
        history_retention_days=parse_int(
            data.get("history_retention_days", d.history_retention_days),
            "delegation.history_retention_days",
        ),
        specific_user_ids=parse_uuid_tuple(
            data.get("specific_user_ids"), "delegation.specific_user_ids",
        ),
    )


def parse_auto_approval_settings(data: dict[str, Any]) -> AutoApprovalSettings:
    d = AutoApprovalSettings()
    allowed = data.get("allowed_types", list(d.allowed_types))
    return AutoApprovalSettings(
        enabled=parse_bool(data.get("enabled", d.enabled), "auto_approval.enabled"),
        max_amount=parse_decimal(
            data.get("max_amount", d.max_amount), "auto_approval.max_amount",
        ),
        max_days=parse_decimal(
            data.get("max_days", d.max_days), "auto_approval.max_days",
        ),
        allowed_types=parse_str_tuple(allowed, "auto_approval.allowed_types"),
    )


def parse_escalation_settings(data: dict[str, Any]) -> EscalationSettings:
    d = EscalationSettings()
    return EscalationSettings(
        enabled=parse_bool(data.get("enabled", d.enabled), "escalation.enabled"),
        default_timeout_hours=parse_int(
            data.get("default_timeout_hours", d.default_timeout_hours),
            "escalation.default_timeout_hours",
        ),
        escalation_levels=parse_int(
            data.get("escalation_levels", d.escalation_levels),
            "escalation.escalation_levels",
        ),
    )


def parse_notification_settings(data: dict[str, Any]) -> NotificationSettings:
    d = NotificationSettings()
    values = {}
    for name in (
        "email",
        "push",
        "sms",
        "approval_reminders",
        "escalation_notifications",
        "delegation_notifications",
    ):
        values[name] = parse_bool(
            data.get(name, getattr(d, name)), f"notifications.{name}",
        )
    return NotificationSettings(**values)


def parse_request_settings(data: dict[str, Any]) -> RequestSettings:
    d = RequestSettings()
    return RequestSettings(
        duplicate_window_minutes=parse_int(
            data.get("duplicate_window_minutes", d.duplicate_window_minutes),
            "requests.duplicate_window_minutes",
        ),
        retention_days=parse_int(
            data.get("retention_days", d.retention_days),
            "requests.retention_days",
        ),
        custom_request_types=parse_str_tuple(
            data.get("custom_request_types"), "requests.custom_request_types",
        ),
    )


def parse_settings(data: dict[str, Any]) -> ApprovalSettings:
    """
    Parse a complete ``ApprovalSettings`` from a dict.

    Missing sections and keys take defaults.

    Raises:
        ValueError: on wrong value types or unknown enum values.
    """
    if not isinstance(data, dict):
        raise ValueError("settings document must be a mapping")
    d = ApprovalSettings()
    return ApprovalSettings(
        allow_self_approval=parse_bool(
            data.get("allow_self_approval", d.allow_self_approval),
            "allow_self_approval",
        ),
        allow_delegation=parse_bool(
            data.get("allow_delegation", d.allow_delegation), "allow_delegation",
        ),
        delegation=parse_delegation_settings(_section(data, "delegation")),
        auto_approval=parse_auto_approval_settings(_section(data, "auto_approval")),
        escalation=parse_escalation_settings(_section(data, "escalation")),
        notifications=parse_notification_settings(_section(data, "notifications")),
        requests=parse_request_settings(_section(data, "requests")),
    )


def settings_to_dict(settings: ApprovalSettings) -> dict[str, Any]:
    """Serialize settings to a JSON-safe dict accepted by ``parse_settings``."""
    delegation = settings.delegation
    auto = settings.auto_approval
    return {
        "allow_self_approval": settings.allow_self_approval,
        "allow_delegation": settings.allow_delegation,
        "delegation": {
            "who_can_delegate": delegation.who_can_delegate.value,
            "who_can_be_delegated": delegation.who_can_be_delegated.value,
            "who_approves_delegation": delegation.who_approves_delegation.value,
            "max_delegation_duration_days": delegation.max_delegation_duration_days,
            "require_approval": delegation.require_approval,
            "auto_approve_for_upper_leaders": delegation.auto_approve_for_upper_leaders,
            "allow_multiple_delegations": delegation.allow_multiple_delegations,
            "history_retention_days": delegation.history_retention_days,
            "specific_user_ids": [str(u) for u in delegation.specific_user_ids],
        },
        "auto_approval": {
            "enabled": auto.enabled,
            "max_amount": str(auto.max_amount),
            "max_days": str(auto.max_days),
            "allowed_types": list(auto.allowed_types),
        },
        "escalation": {
            "enabled": settings.escalation.enabled,
            "default_timeout_hours": settings.escalation.default_timeout_hours,
            "escalation_levels": settings.escalation.escalation_levels,
        },
        "notifications": {
            "email": settings.notifications.email,
            "push": settings.notifications.push,
            "sms": settings.notifications.sms,
            "approval_reminders": settings.notifications.approval_reminders,
            "escalation_notifications": settings.notifications.escalation_notifications,
            "delegation_notifications": settings.notifications.delegation_notifications,
        },
        "requests": {
            "duplicate_window_minutes": settings.requests.duplicate_window_minutes,
            "retention_days": settings.requests.retention_days,
            "custom_request_types": list(settings.requests.custom_request_types),
        },
    }


def load_settings_file(path: Path | None = None) -> ApprovalSettings:
    """Load settings from a YAML file (the packaged defaults if ``path`` is None)."""
    return parse_settings(load_yaml_file(path or DEFAULT_SETTINGS_PATH))


def dump_settings_yaml(settings: ApprovalSettings) -> str:
    return yaml.safe_dump(settings_to_dict(settings), sort_keys=False)


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


# =========================================================================
# Org directory
# =========================================================================


def parse_org_directory(data: dict[str, Any]) -> StaticOrgHierarchy:
    """
    Build a ``StaticOrgHierarchy`` from a dict of ``groups`` and ``members``.

    Example::

        groups:
          - {group_id: ops, leader_id: <uuid>, parent_group_id: hq}
        members:
          - user_id: <uuid>
            group_id: ops
            roles: [manager]
            leader_tier: group_leader
            approval_chain: [<uuid>, <uuid>]
    """
    org = StaticOrgHierarchy()
    for g in data.get("groups") or ():
        org.add_group(OrgGroup(
            group_id=str(g["group_id"]),
            leader_id=UUID(str(g["leader_id"])) if g.get("leader_id") else None,
            parent_group_id=g.get("parent_group_id"),
        ))
    for m in data.get("members") or ():
        tier_name = str(m.get("leader_tier", "none")).upper()
        try:
            tier = LeaderTier[tier_name]
        except KeyError:
            raise ValueError(f"Unknown leader_tier {m.get('leader_tier')!r}") from None
        org.add_member(OrgMember(
            user_id=UUID(str(m["user_id"])),
            group_id=m.get("group_id"),
            roles=parse_str_tuple(m.get("roles"), "members.roles"),
            leader_tier=tier,
            approval_chain=parse_uuid_tuple(
                m.get("approval_chain"), "members.approval_chain",
            ),
        ))
    return org


def load_org_directory(path: Path) -> StaticOrgHierarchy:
    return parse_org_directory(load_yaml_file(path))
