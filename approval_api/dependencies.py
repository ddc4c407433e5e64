"""Shared FastAPI dependencies: the app context and the calling actor."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from uuid import UUID, uuid4

from fastapi import Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from approval_kernel.db.engine import session_scope
from approval_kernel.logging_config import LogContext
from approval_services.workflow import ApprovalWorkflow

ACTOR_HEADER = "X-Actor-Id"


@dataclass(frozen=True)
class ApiContext:
    session_factory: Callable[[], Session]
    workflow_factory: Callable[[Session], ApprovalWorkflow]

    @contextmanager
    def unit_of_work(self, actor_id: UUID | None = None) -> Iterator[ApprovalWorkflow]:
        """One transaction: committed on success, rolled back on any error."""
        with LogContext.bind(correlation_id=str(uuid4()), actor_id=actor_id):
            with session_scope(self.session_factory) as session:
                yield self.workflow_factory(session)


def get_context(request: Request) -> ApiContext:
    return request.app.state.context


def get_actor_id(
    x_actor_id: str | None = Header(None, alias=ACTOR_HEADER),
) -> UUID:
    """Identity of the caller, as asserted by the upstream auth layer."""
    if not x_actor_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing {ACTOR_HEADER} header",
        )
    try:
        actor_id = UUID(x_actor_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Malformed {ACTOR_HEADER} header",
        ) from None
    return actor_id

