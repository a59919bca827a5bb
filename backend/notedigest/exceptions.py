"""
NoteDigest Backend: Custom Exception Hierarchy
==============================================

What:  Application-specific exceptions for the error scenarios of the API.
How:   Each exception carries a user-safe message and an optional context
       dict. Global handlers registered in main.py turn them into JSON
       responses with the matching HTTP status.
Who:   Raised by services, security and middleware; caught by the handlers.

Exception Hierarchy:
    NoteDigestError (base)
    ├── ValidationError          → 400 Bad Request
    ├── AuthenticationError      → 401 Unauthorized
    ├── NotFoundError            → 404 Not Found
    ├── RateLimitExceededError   → 429 Too Many Requests
    ├── DatabaseError            → 500 Internal Server Error
    └── UpstreamServiceError     → status chosen by ErrorKind (see main.py)
"""

from enum import Enum
from typing import Any, Dict, Optional


class NoteDigestError(Exception):
    """
    Base exception for all NoteDigest application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(NoteDigestError):
    """
    Raised when a request is well-formed but violates a business rule.

    Schema-level problems (missing title, title too long) never get here:
    FastAPI rejects them with 422 before the service layer runs.
    """

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


class AuthenticationError(NoteDigestError):
    """
    Raised when the bearer token is missing, malformed, expired or forged.

    The response body is always the same generic "Unauthorized" so that the
    reason a token was rejected is only visible in server logs.
    """

    def __init__(
        self,
        message: str = "Unauthorized",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(NoteDigestError):
    """
    Raised when a requested resource does not exist for the requester.

    A note that belongs to another principal raises exactly the same error
    as a note that was never created.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"{resource.capitalize()} not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class DatabaseError(NoteDigestError):
    """
    Raised when database operations fail unexpectedly.

    The message returned to the client is always generic; the SQL error is
    logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(NoteDigestError):
    """Raised when a client exceeds the per-client request rate limit."""

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


# ══════════════════════════════════════════════════════════════════════════
# Outbound call failures
# ══════════════════════════════════════════════════════════════════════════


class ErrorKind(str, Enum):
    """
    Classification of a failed outbound call.

    Whether a kind is retried is decided separately, in
    services/resilience.py. The kind only labels the outcome.
    """

    CONFIGURATION_MISSING = "configuration_missing"
    EMPTY_INPUT = "empty_input"
    AUTH_FAILED = "auth_failed"
    RATE_LIMITED = "rate_limited"
    MALFORMED = "malformed"
    TIMEOUT = "timeout"
    UNREACHABLE = "unreachable"
    UNKNOWN = "unknown"


class UpstreamServiceError(NoteDigestError):
    """
    Terminal failure of an external dependency call.

    Attributes:
        kind:        ErrorKind used by the caller to pick an HTTP status.
        diagnostic:  Upstream message (e.g. Gemini's `error.message`) or the
                     underlying exception text. Only exposed outside production.
        attempts:    How many attempts were made before giving up
                     (0 when the call was rejected before any network I/O).
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        diagnostic: Optional[str] = None,
        attempts: int = 0,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["kind"] = kind.value
        super().__init__(message=message, context=ctx)
        self.kind = kind
        self.diagnostic = diagnostic
        self.attempts = attempts
