"""Read-only query selectors."""

from approval_kernel.selectors.approval_selector import (
    ApprovalSelector,
    ApprovalStats,
    ApproverCount,
)
from approval_kernel.selectors.base import BaseSelector

__all__ = [
    "ApprovalSelector",
    "ApprovalStats",
    "ApproverCount",
    "BaseSelector",
]
