"""
Module: approval_kernel.selectors.base
Responsibility: Common base for the read side (request lists, approver
    inboxes, statistics).
Architecture position: Kernel > Selectors.  May import db/, models/ and
    domain/.

Invariants enforced:
    - Selectors never add, delete, flush or commit; the caller owns the
      session and its transaction.
    - Results are frozen DTOs, never ORM instances.
    - Absence of data yields empty results, not exceptions.
"""

from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from approval_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(Generic[ModelType]):
    """Read-only queries over one primary model."""

    def __init__(self, session: Session):
        self.session = session
