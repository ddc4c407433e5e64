"""
Approval configuration layer.

Settings documents (YAML / dict) <-> typed ``ApprovalSettings``, settings
validation, and process runtime configuration.
"""

from approval_config.loader import (
    compute_checksum,
    dump_settings_yaml,
    load_org_directory,
    load_settings_file,
    parse_org_directory,
    parse_settings,
    settings_to_dict,
)
from approval_config.runtime import RuntimeConfig
from approval_config.validator import SettingsValidationResult, validate_settings

__all__ = [
    "compute_checksum",
    "dump_settings_yaml",
    "load_org_directory",
    "load_settings_file",
    "parse_org_directory",
    "parse_settings",
    "settings_to_dict",
    "RuntimeConfig",
    "SettingsValidationResult",
    "validate_settings",
]
