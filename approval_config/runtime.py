"""
Runtime configuration (``approval_config.runtime``).

Process-level settings read from ``APPROVAL_*`` environment variables:
where the database lives, which tenant this process serves, how often the
scheduler polls, and optional settings/org files used at bootstrap.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = "APPROVAL_"


@dataclass(frozen=True)
class RuntimeConfig:
    database_url: str = "sqlite:///approval.db"
    tenant_id: str = "default"
    scheduler_interval_seconds: float = 60.0
    log_level: str = "INFO"
    settings_file: Path | None = None
    org_file: Path | None = None
    echo_sql: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> RuntimeConfig:
        """
        Build a RuntimeConfig from the environment.

        Raises:
            ValueError: if a numeric or boolean variable cannot be parsed.
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        def get(name: str) -> str | None:
            return env.get(f"{ENV_PREFIX}{name}")

        interval = get("SCHEDULER_INTERVAL_SECONDS")
        settings_file = get("SETTINGS_FILE")
        org_file = get("ORG_FILE")
        return cls(
            database_url=get("DATABASE_URL") or defaults.database_url,
            tenant_id=get("TENANT_ID") or defaults.tenant_id,
            scheduler_interval_seconds=(
                float(interval) if interval else defaults.scheduler_interval_seconds
            ),
            log_level=(get("LOG_LEVEL") or defaults.log_level).upper(),
            settings_file=Path(settings_file) if settings_file else None,
            org_file=Path(org_file) if org_file else None,
            echo_sql=_parse_flag(get("ECHO_SQL"), "ECHO_SQL"),
        )


def _parse_flag(value: str | None, name: str) -> bool:
    if value is None or value == "":
        return False
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"{ENV_PREFIX}{name} must be a boolean flag, got {value!r}")
