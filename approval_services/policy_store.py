"""
approval_services.policy_store -- Tenant approval settings.

Responsibility:
    Holds the single ``ApprovalSettings`` record per tenant.  Reads return
    a snapshot; writes replace the whole record atomically.

Architecture position:
    Services -- stateful orchestration over kernel models + config codecs.

Invariants enforced:
    PS-1 -- One record per tenant; defaults when none is stored (version 0).
    PS-2 -- Whole-record replacement only; no partial patch.
    PS-3 -- Every update bumps ``version`` and recomputes ``checksum``.
    PS-4 -- Only admins may update.

Failure modes:
    - ForbiddenError if the actor is not an admin.
    - InvalidSettingsError if validation reports errors (nothing stored).
    - StaleSettingsVersionError if ``expected_version`` is given and stale,
      or a concurrent replacement won at flush.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from approval_config.loader import compute_checksum, parse_settings, settings_to_dict
from approval_config.validator import validate_settings
from approval_kernel.domain.clock import Clock, SystemClock
from approval_kernel.domain.org import OrgHierarchyProvider
from approval_kernel.domain.settings import ApprovalSettings, SettingsRecord
from approval_kernel.exceptions import (
    ForbiddenError,
    InvalidSettingsError,
    StaleSettingsVersionError,
)
from approval_kernel.logging_config import get_logger
from approval_kernel.models.settings import ApprovalSettingsModel

logger = get_logger("services.policy_store")

DEFAULT_TENANT_ID = "default"


class PolicyStore:
    """Reads and replaces a tenant's approval settings."""

    def __init__(
        self,
        session: Session,
        org: OrgHierarchyProvider,
        clock: Clock | None = None,
        tenant_id: str = DEFAULT_TENANT_ID,
        defaults: ApprovalSettings | None = None,
    ) -> None:
        self._session = session
        self._org = org
        self._clock = clock or SystemClock()
        self._tenant_id = tenant_id
        self._defaults = defaults or ApprovalSettings()

    @property
    def tenant_id(self) -> str:
        return self._tenant_id

    def get(self) -> SettingsRecord:
        """Current settings record, or the defaults at version 0."""
        model = self._load()
        if model is None:
            return SettingsRecord(
                tenant_id=self._tenant_id,
                settings=self._defaults,
                version=0,
                checksum=compute_checksum(settings_to_dict(self._defaults)),
            )
        return self._to_record(model)

    def current(self) -> ApprovalSettings:
        return self.get().settings

    def update(
        self,
        new_settings: ApprovalSettings,
        actor_id: UUID,
        expected_version: int | None = None,
    ) -> SettingsRecord:
        """Replace the tenant's settings.

        Args:
            new_settings: The complete replacement record.
            actor_id: Must be an admin.
            expected_version: If given, the version the caller last read.
        """
        if not self._org.is_admin(actor_id):
            raise ForbiddenError(str(actor_id), "update approval settings", "admin only")

        validation = validate_settings(new_settings)
        if not validation.is_valid:
            logger.info(
                "approval_settings_rejected",
                extra={"tenant_id": self._tenant_id, "errors": validation.errors},
            )
            raise InvalidSettingsError(tuple(validation.errors))
        for warning in validation.warnings:
            logger.warning(
                "approval_settings_warning",
                extra={"tenant_id": self._tenant_id, "warning": warning},
            )

        model = self._load()
        current_version = model.version if model is not None else 0
        if expected_version is not None and expected_version != current_version:
            raise StaleSettingsVersionError(
                self._tenant_id, expected_version, current_version,
            )

        document = settings_to_dict(new_settings)
        checksum = compute_checksum(document)
        now = self._clock.now()

        if model is None:
            model = ApprovalSettingsModel(
                tenant_id=self._tenant_id,
                document=document,
                checksum=checksum,
                updated_at=now,
                updated_by=actor_id,
            )
            self._session.add(model)
        else:
            model.document = document
            model.checksum = checksum
            model.updated_at = now
            model.updated_by = actor_id

        try:
            self._session.flush()
        except StaleDataError:
            raise StaleSettingsVersionError(
                self._tenant_id, current_version, current_version + 1,
            ) from None

        logger.info(
            "approval_settings_updated",
            extra={
                "tenant_id": self._tenant_id,
                "actor_id": str(actor_id),
                "version": model.version,
                "checksum": checksum,
            },
        )
        return self._to_record(model)

    def _load(self) -> ApprovalSettingsModel | None:
        return self._session.execute(
            select(ApprovalSettingsModel).where(
                ApprovalSettingsModel.tenant_id == self._tenant_id,
            )
        ).scalar_one_or_none()

    def _to_record(self, model: ApprovalSettingsModel) -> SettingsRecord:
        return SettingsRecord(
            tenant_id=model.tenant_id,
            settings=parse_settings(model.document),
            version=model.version,
            checksum=model.checksum,
            updated_at=model.updated_at,
            updated_by=model.updated_by,
        )
