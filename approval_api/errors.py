"""
Error payloads for the approvals HTTP API.

Every failure leaves the API as ``{"error": {"code", "message", ...}}``.
Domain exceptions are mapped to an HTTP status by walking their class
hierarchy, so a new subclass inherits its parent's status.
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from approval_kernel.exceptions import (
    ApprovalEngineError,
    AuthorizationError,
    ConcurrencyError,
    DelegationLimitExceededError,
    DelegationScopeViolationError,
    DuplicateSubmissionError,
    ImmutabilityViolationError,
    InvalidDelegationPeriodError,
    InvalidDelegationTransitionError,
    InvalidRequestTypeError,
    InvalidSettingsError,
    NotFoundError,
    RequestNotPendingError,
)
from approval_kernel.logging_config import get_logger

logger = get_logger("api.errors")

ERROR_STATUS: dict[type[ApprovalEngineError], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    AuthorizationError: status.HTTP_403_FORBIDDEN,
    InvalidRequestTypeError: status.HTTP_422_UNPROCESSABLE_CONTENT,
    DuplicateSubmissionError: status.HTTP_409_CONFLICT,
    RequestNotPendingError: status.HTTP_409_CONFLICT,
    DelegationScopeViolationError: status.HTTP_422_UNPROCESSABLE_CONTENT,
    InvalidDelegationPeriodError: status.HTTP_422_UNPROCESSABLE_CONTENT,
    DelegationLimitExceededError: status.HTTP_409_CONFLICT,
    InvalidDelegationTransitionError: status.HTTP_409_CONFLICT,
    InvalidSettingsError: status.HTTP_422_UNPROCESSABLE_CONTENT,
    ConcurrencyError: status.HTTP_409_CONFLICT,
    ImmutabilityViolationError: status.HTTP_409_CONFLICT,
}


def status_for(exc: ApprovalEngineError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return status.HTTP_400_BAD_REQUEST


def error_body(code: str, message: str, **fields: Any) -> dict[str, Any]:
    return {"error": {"code": code, "message": message, **jsonable_encoder(fields)}}


async def approval_error_handler(request: Request, exc: ApprovalEngineError) -> JSONResponse:
    http_status = status_for(exc)
    if http_status >= 500:
        logger.error("api_error", extra={"error_code": exc.code, "path": request.url.path})
    return JSONResponse(
        status_code=http_status,
        content=error_body(exc.code, str(exc), **vars(exc)),
    )


async def http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(f"HTTP_{exc.status_code}", str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
        content=error_body(
            "VALIDATION_ERROR", "Request validation failed", details=exc.errors(),
        ),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApprovalEngineError, approval_error_handler)
    app.add_exception_handler(HTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
