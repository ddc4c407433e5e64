"""
Settings Validator (``approval_config.validator``).

Responsibility
--------------
Validates a complete ``ApprovalSettings`` value before the policy store
accepts it.  Structural problems are errors; suspicious but workable
combinations are warnings.

Architecture position
---------------------
**Config layer** -- pure validation over kernel domain types.

Invariants enforced
-------------------
* Numeric bounds -- durations, timeouts, levels, windows and retention
  periods are within sane ranges.
* Auto-approval types must be recognized request types.
* Custom request types are unique, lower-case identifiers.

Failure modes
-------------
* ``SettingsValidationResult.errors`` non-empty  -> settings MUST NOT be
  stored.
* Warnings are logged by the caller but do not block the update.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from approval_kernel.domain.approval import BUILTIN_REQUEST_TYPES
from approval_kernel.domain.settings import ApprovalSettings, EligibilityScope

_REQUEST_TYPE_PATTERN = re.compile(r"^[a-z][a-z0-9_]{0,99}$")


@dataclass
class SettingsValidationResult:
    """
    Result of settings validation.

    ``is_valid`` is True only when ``errors`` is empty.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_settings(settings: ApprovalSettings) -> SettingsValidationResult:
    """Validate a complete settings record."""
    result = SettingsValidationResult()

    _validate_request_types(settings, result)
    _validate_delegation(settings, result)
    _validate_auto_approval(settings, result)
    _validate_escalation(settings, result)
    _validate_notifications(settings, result)

    return result


def _validate_request_types(
    settings: ApprovalSettings, result: SettingsValidationResult,
) -> None:
    req = settings.requests
    seen: set[str] = set()
    for t in req.custom_request_types:
        if not _REQUEST_TYPE_PATTERN.match(t):
            result.add_error(f"requests.custom_request_types: invalid type name {t!r}")
        if t in seen:
            result.add_error(f"requests.custom_request_types: duplicate {t!r}")
        if t in BUILTIN_REQUEST_TYPES:
            result.add_warning(
                f"requests.custom_request_types: {t!r} is already built in"
            )
        seen.add(t)
    if req.duplicate_window_minutes < 0:
        result.add_error("requests.duplicate_window_minutes must be >= 0")
    if req.retention_days < 1:
        result.add_error("requests.retention_days must be >= 1")


def _validate_delegation(
    settings: ApprovalSettings, result: SettingsValidationResult,
) -> None:
    d = settings.delegation
    if d.max_delegation_duration_days < 1:
        result.add_error("delegation.max_delegation_duration_days must be >= 1")
    if d.history_retention_days < 1:
        result.add_error("delegation.history_retention_days must be >= 1")
    uses_specific = EligibilityScope.SPECIFIC_MANAGERS_LEADERS in (
        d.who_can_delegate,
        d.who_can_be_delegated,
    )
    if uses_specific and not d.specific_user_ids:
        result.add_warning(
            "delegation: specific_managers_leaders selected with no specific_user_ids"
        )
    if len(set(d.specific_user_ids)) != len(d.specific_user_ids):
        result.add_error("delegation.specific_user_ids contains duplicates")


def _validate_auto_approval(
    settings: ApprovalSettings, result: SettingsValidationResult,
) -> None:
    a = settings.auto_approval
    if a.max_amount < 0:
        result.add_error("auto_approval.max_amount must be >= 0")
    if a.max_days < 0:
        result.add_error("auto_approval.max_days must be >= 0")
    recognized = set(settings.recognized_request_types)
    for t in a.allowed_types:
        if t not in recognized:
            result.add_error(
                f"auto_approval.allowed_types: unrecognized request type {t!r}"
            )
    if a.enabled and not a.allowed_types:
        result.add_warning("auto_approval enabled with no allowed_types")


def _validate_escalation(
    settings: ApprovalSettings, result: SettingsValidationResult,
) -> None:
    e = settings.escalation
    if e.default_timeout_hours < 1:
        result.add_error("escalation.default_timeout_hours must be >= 1")
    if e.escalation_levels < 1:
        result.add_error("escalation.escalation_levels must be >= 1")


def _validate_notifications(
    settings: ApprovalSettings, result: SettingsValidationResult,
) -> None:
    n = settings.notifications
    if not (n.email or n.push or n.sms):
        result.add_warning("notifications: no channel enabled, nothing will be sent")
