"""
Typed Exception Hierarchy for the Approval Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Approval errors are part of the contract with API clients.  A client that
lost an optimistic-concurrency race must re-read and retry; a client that
hit a policy violation must change the actor or the input.  Parsing
message strings to tell these apart is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        service.decide(request_id, actor_id, DecisionAction.APPROVE, version)
    except StaleRequestVersionError as e:
        request = service.get_request(e.request_id)   # re-read, retry
    except SelfApprovalForbiddenError as e:
        api_response(code=e.code, requester=e.requester_id)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ApprovalEngineError (base)
    |
    +-- NotFoundError
    |   +-- RequestNotFoundError
    |   +-- DelegationNotFoundError
    |
    +-- AuthorizationError
    |   +-- ForbiddenError
    |   +-- SelfApprovalForbiddenError
    |
    +-- RequestError
    |   +-- InvalidRequestTypeError
    |   +-- DuplicateSubmissionError
    |   +-- RequestNotPendingError
    |
    +-- DelegationError
    |   +-- DelegationScopeViolationError
    |   |   +-- DelegationDurationExceededError
    |   +-- InvalidDelegationPeriodError
    |   +-- DelegationLimitExceededError
    |   +-- InvalidDelegationTransitionError
    |
    +-- SettingsError
    |   +-- InvalidSettingsError
    |
    +-- ConcurrencyError
    |   +-- StaleRequestVersionError
    |   +-- StaleSettingsVersionError
    |
    +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                          | When Raised
----------------|-------------------------------|---------------------------------------
Lookup          | REQUEST_NOT_FOUND             | Request ID doesn't exist
                | DELEGATION_NOT_FOUND          | Delegation ID doesn't exist
----------------|-------------------------------|---------------------------------------
Authorization   | FORBIDDEN                     | Actor may not perform the operation
                | SELF_APPROVAL_FORBIDDEN       | Requester deciding own request
----------------|-------------------------------|---------------------------------------
Request         | INVALID_REQUEST_TYPE          | Type not built-in and not configured
                | DUPLICATE_SUBMISSION          | Identical open request in window
                | REQUEST_NOT_PENDING           | Decision on a closed request
----------------|-------------------------------|---------------------------------------
Delegation      | DELEGATION_SCOPE_VIOLATION    | Delegator/delegate not eligible
                | DELEGATION_DURATION_EXCEEDED  | Longer than max duration
                | INVALID_DELEGATION_PERIOD     | end_date before start_date
                | DELEGATION_LIMIT_EXCEEDED     | Overlapping active delegation
                | INVALID_DELEGATION_TRANSITION | Illegal delegation status change
----------------|-------------------------------|---------------------------------------
Settings        | INVALID_SETTINGS              | Settings record failed validation
----------------|-------------------------------|---------------------------------------
Concurrency     | STALE_REQUEST_VERSION         | Caller's version is out of date
                | STALE_SETTINGS_VERSION        | Settings replaced concurrently
----------------|-------------------------------|---------------------------------------
Immutability    | IMMUTABILITY_VIOLATION        | Modifying append-only history

===============================================================================
HANDLING PATTERNS
===============================================================================

1. ConcurrencyError -> re-read and retry (expected, not an application error)
2. AuthorizationError, DelegationScopeViolationError -> surface to the user,
   never retry with the same actor/input
3. NotFoundError -> 404 at the HTTP boundary
"""


class ApprovalEngineError(Exception):
    """
    Base exception for all approval engine errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "APPROVAL_ENGINE_ERROR"


# Lookup exceptions


class NotFoundError(ApprovalEngineError):
    """Base exception for missing entities."""

    code: str = "NOT_FOUND"


class RequestNotFoundError(NotFoundError):
    """Approval request ID does not exist."""

    code: str = "REQUEST_NOT_FOUND"

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"Approval request not found: {request_id}")


class DelegationNotFoundError(NotFoundError):
    """Delegation ID does not exist."""

    code: str = "DELEGATION_NOT_FOUND"

    def __init__(self, delegation_id: str):
        self.delegation_id = delegation_id
        super().__init__(f"Delegation not found: {delegation_id}")


# Authorization exceptions


class AuthorizationError(ApprovalEngineError):
    """Base exception for actor authorization failures."""

    code: str = "AUTHORIZATION_ERROR"


class ForbiddenError(AuthorizationError):
    """Actor is not authorized to perform the operation."""

    code: str = "FORBIDDEN"

    def __init__(self, actor_id: str, operation: str, reason: str = ""):
        self.actor_id = actor_id
        self.operation = operation
        self.reason = reason
        message = f"Actor {actor_id} may not {operation}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class SelfApprovalForbiddenError(AuthorizationError):
    """
    Requester attempted to decide their own request.

    Raised whenever ``allow_self_approval`` is disabled, regardless of
    whether the requester is also the effective approver.
    """

    code: str = "SELF_APPROVAL_FORBIDDEN"

    def __init__(self, request_id: str, requester_id: str):
        self.request_id = request_id
        self.requester_id = requester_id
        super().__init__(
            f"Requester {requester_id} may not decide own request {request_id}"
        )


# Request exceptions


class RequestError(ApprovalEngineError):
    """Base exception for approval request errors."""

    code: str = "REQUEST_ERROR"


class InvalidRequestTypeError(RequestError):
    """Request type is neither built-in nor configured as a custom type."""

    code: str = "INVALID_REQUEST_TYPE"

    def __init__(self, request_type: str, recognized: tuple[str, ...] = ()):
        self.request_type = request_type
        self.recognized = recognized
        super().__init__(
            f"Unrecognized request type '{request_type}'"
            + (f" (recognized: {', '.join(recognized)})" if recognized else "")
        )


class DuplicateSubmissionError(RequestError):
    """An identical open request exists for the requester within the window."""

    code: str = "DUPLICATE_SUBMISSION"

    def __init__(self, requester_id: str, existing_request_id: str, window_minutes: int):
        self.requester_id = requester_id
        self.existing_request_id = existing_request_id
        self.window_minutes = window_minutes
        super().__init__(
            f"Requester {requester_id} already has identical open request "
            f"{existing_request_id} (window {window_minutes} min)"
        )


class RequestNotPendingError(RequestError):
    """Operation requires an open request but the request is closed."""

    code: str = "REQUEST_NOT_PENDING"

    def __init__(self, request_id: str, status: str):
        self.request_id = request_id
        self.status = status
        super().__init__(
            f"Approval request {request_id} is {status}, not awaiting a decision"
        )


# Delegation exceptions


class DelegationError(ApprovalEngineError):
    """Base exception for delegation errors."""

    code: str = "DELEGATION_ERROR"


class DelegationScopeViolationError(DelegationError):
    """Delegator or delegate does not satisfy the configured eligibility."""

    code: str = "DELEGATION_SCOPE_VIOLATION"

    def __init__(self, delegator_id: str, delegate_id: str, reason: str):
        self.delegator_id = delegator_id
        self.delegate_id = delegate_id
        self.reason = reason
        super().__init__(
            f"Delegation {delegator_id} -> {delegate_id} not allowed: {reason}"
        )


class DelegationDurationExceededError(DelegationScopeViolationError):
    """Delegation period is longer than ``max_delegation_duration_days``."""

    code: str = "DELEGATION_DURATION_EXCEEDED"

    def __init__(
        self,
        delegator_id: str,
        delegate_id: str,
        duration_days: int,
        max_days: int,
    ):
        self.duration_days = duration_days
        self.max_days = max_days
        super().__init__(
            delegator_id,
            delegate_id,
            f"duration {duration_days} days exceeds maximum {max_days}",
        )


class InvalidDelegationPeriodError(DelegationError):
    """Delegation end date precedes its start date."""

    code: str = "INVALID_DELEGATION_PERIOD"

    def __init__(self, start_date: str, end_date: str):
        self.start_date = start_date
        self.end_date = end_date
        super().__init__(
            f"Delegation end date {end_date} is before start date {start_date}"
        )


class DelegationLimitExceededError(DelegationError):
    """An overlapping active delegation exists and multiples are disallowed."""

    code: str = "DELEGATION_LIMIT_EXCEEDED"

    def __init__(self, delegator_id: str, existing_delegation_id: str):
        self.delegator_id = delegator_id
        self.existing_delegation_id = existing_delegation_id
        super().__init__(
            f"Delegator {delegator_id} already has overlapping active "
            f"delegation {existing_delegation_id}"
        )


class InvalidDelegationTransitionError(DelegationError):
    """Illegal delegation status change."""

    code: str = "INVALID_DELEGATION_TRANSITION"

    def __init__(self, delegation_id: str, from_status: str, to_status: str):
        self.delegation_id = delegation_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Delegation {delegation_id} cannot move from {from_status} to {to_status}"
        )


# Settings exceptions


class SettingsError(ApprovalEngineError):
    """Base exception for policy store errors."""

    code: str = "SETTINGS_ERROR"


class InvalidSettingsError(SettingsError):
    """Settings record failed validation; nothing was stored."""

    code: str = "INVALID_SETTINGS"

    def __init__(self, errors: tuple[str, ...]):
        self.errors = errors
        super().__init__("Invalid approval settings: " + "; ".join(errors))


# Concurrency exceptions


class ConcurrencyError(ApprovalEngineError):
    """Base exception for optimistic-concurrency conflicts."""

    code: str = "CONCURRENCY_ERROR"


class StaleRequestVersionError(ConcurrencyError):
    """
    Caller's request version is out of date.

    Expected and recoverable: the caller re-reads the request and retries.
    ``actual_version`` is None when the conflict was detected at flush time
    (another transaction committed after the version check).
    """

    code: str = "STALE_REQUEST_VERSION"

    def __init__(
        self,
        request_id: str,
        expected_version: int,
        actual_version: int | None = None,
    ):
        self.request_id = request_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        detail = (
            f"current version is {actual_version}"
            if actual_version is not None
            else "modified by another transaction"
        )
        super().__init__(
            f"Approval request {request_id} version {expected_version} is stale: {detail}"
        )


class StaleSettingsVersionError(ConcurrencyError):
    """Settings record was replaced since the caller read it."""

    code: str = "STALE_SETTINGS_VERSION"

    def __init__(self, tenant_id: str, expected_version: int, actual_version: int):
        self.tenant_id = tenant_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Settings for tenant {tenant_id} are at version {actual_version}, "
            f"expected {expected_version}"
        )


# Immutability


class ImmutabilityViolationError(ApprovalEngineError):
    """Attempted to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
