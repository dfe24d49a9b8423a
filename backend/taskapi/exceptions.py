"""
Task API — Custom Exception Hierarchy
======================================

What:  Defines application-specific exceptions for every failure the API reports.
Why:   Each failure has a fixed HTTP status and a client-safe message. Services
       raise these; they never build HTTP responses themselves.
How:   Each exception carries a message, an optional context dict (logged,
       never returned) and an ErrorKind tag. Global exception handlers
       (registered in main.py) map the kind to a status code.
Who:   Raised by services and the authentication dependency; caught by handlers.

Exception Hierarchy:
    TaskApiError (base)
    ├── ValidationError          → 400 Bad Request
    ├── InvalidCredentialsError  → 400 Bad Request (undifferentiated)
    ├── ConflictError            → 400 Bad Request (duplicate username/email)
    ├── AuthenticationError      → 401 Unauthorized
    ├── NotFoundError            → 404 Not Found
    ├── ForbiddenError           → 404 Not Found (same body as NotFoundError)
    ├── RateLimitExceededError   → 429 Too Many Requests
    └── DatabaseError            → 500 Internal Server Error

Design Decision:
    Exceptions propagate naturally through the call stack, so a service can
    fail from any depth without every caller checking a result value. The
    ErrorKind tag gives the boundary a closed, typed set of failure kinds to
    map, which keeps the taxonomy explicit.
"""

import enum
from typing import Any, Dict, Optional


class ErrorKind(str, enum.Enum):
    """Closed set of failure kinds surfaced by the API."""

    VALIDATION = "validation"
    INVALID_CREDENTIALS = "invalid_credentials"
    CONFLICT = "conflict"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    INTERNAL = "internal"


class TaskApiError(Exception):
    """
    Base exception for all Task API application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
        kind:     ErrorKind used by the boundary to choose a status code
    """

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(TaskApiError):
    """
    Raised when client input fails a business rule.

    When:    Missing/empty register fields, empty task title or description,
             null values in a partial task update.
    HTTP:    400 Bad Request
    """

    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class InvalidCredentialsError(TaskApiError):
    """
    Raised when login fails for ANY reason.

    Unknown username and wrong password produce this exact error with this
    exact message, so a caller cannot enumerate registered usernames.
    HTTP:    400 Bad Request
    """

    kind = ErrorKind.INVALID_CREDENTIALS

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(message="Invalid username or password", context=context)


class ConflictError(TaskApiError):
    """
    Raised when a registration collides with an existing username or email.

    HTTP:    400 Bad Request
    """

    kind = ErrorKind.CONFLICT

    def __init__(
        self,
        message: str = "Username or email is already registered",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthenticationError(TaskApiError):
    """
    Raised when a protected request has no valid identity.

    When:    Missing/garbled Authorization header, bad signature, expired token,
             or a valid token whose user no longer exists.
    HTTP:    401 Unauthorized (with WWW-Authenticate: Bearer)

    The specific reason goes into context for the server log only.
    """

    kind = ErrorKind.UNAUTHENTICATED

    def __init__(
        self,
        message: str = "Authentication required",
        reason: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if reason:
            ctx["reason"] = reason
        super().__init__(message=message, context=ctx)
        self.reason = reason


class NotFoundError(TaskApiError):
    """
    Raised when a requested resource does not exist.

    HTTP:    404 Not Found
    """

    kind = ErrorKind.NOT_FOUND

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource = resource
        self.resource_id = resource_id


class ForbiddenError(NotFoundError):
    """
    Raised when a resource exists but belongs to another user.

    Subclasses NotFoundError so that the public response is byte-for-byte the
    same as for a missing resource; only the server log tells them apart.
    HTTP:    404 Not Found
    """

    kind = ErrorKind.FORBIDDEN

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        owner_id: Optional[int] = None,
        requester_id: Optional[int] = None,
    ):
        super().__init__(
            resource=resource,
            resource_id=resource_id,
            context={"owner_id": owner_id, "requester_id": requester_id},
        )


class RateLimitExceededError(TaskApiError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP:    429 Too Many Requests (with Retry-After)
    """

    kind = ErrorKind.RATE_LIMITED

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Too many requests. Please wait {retry_after} seconds before retrying."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class DatabaseError(TaskApiError):
    """
    Raised when database operations fail unexpectedly.

    HTTP:    500 Internal Server Error

    Security Note:
        The message returned to the client is always generic. SQL text and
        constraint names are logged server-side only.
    """

    kind = ErrorKind.INTERNAL

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
