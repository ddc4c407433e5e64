"""SQLAlchemy ORM models for the approval kernel."""

from approval_kernel.models.approval import ApprovalRequestModel, DecisionEventModel
from approval_kernel.models.delegation import DelegationModel
from approval_kernel.models.settings import ApprovalSettingsModel

__all__ = [
    "ApprovalRequestModel",
    "DecisionEventModel",
    "DelegationModel",
    "ApprovalSettingsModel",
]
