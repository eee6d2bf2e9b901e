"""
DeskBook Backend - Custom Exception Hierarchy
===============================================

What:  Application-specific exceptions for the booking and profile flows.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with the mapped status code.
Who:   Raised by services, security helpers and middleware.

Exception Hierarchy:
    DeskBookError (base)
    ├── ValidationError                 → 400 Bad Request
    │   └── InvalidConfirmationCodeError → 400 Bad Request
    ├── DecryptionError                 → 400 Bad Request
    ├── AuthenticationError             → 401 Unauthorized
    ├── NotFoundError                   → 404 Not Found
    ├── ConflictError                   → 500 (place held by someone else)
    ├── RateLimitExceededError          → 429 Too Many Requests
    └── DependencyError                 → 500 Internal Server Error
        ├── DatabaseError
        ├── ImageHostError
        ├── MailDeliveryError
        └── CircuitBreakerOpenError     → 503 Service Unavailable

Context is logged server-side and never returned verbatim for
DependencyError subclasses.
"""

from typing import Any, Dict, Optional

INVALID_ARGUMENTS = "Invalid arguments"
INVALID_CODE = "Invalid confirmation code"


class DeskBookError(Exception):
    """
    Base exception for all DeskBook application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(DeskBookError):
    """
    Raised when client input is missing or malformed.

    The message defaults to the fixed "Invalid arguments" text the clients
    already match on; `field` names the offending input when known.
    """

    def __init__(
        self,
        message: str = INVALID_ARGUMENTS,
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class InvalidConfirmationCodeError(ValidationError):
    """The email confirmation token is unsigned, expired or already used."""

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(message=INVALID_CODE, field="token", context=context)


class DecryptionError(DeskBookError):
    """
    Raised when a ciphertext cannot be opened with the session key.

    When:    Malformed hex, corrupted ciphertext, or a key other than the one
             used to encrypt (i.e. a different session subject).
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Encrypted value could not be decrypted with this session",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class AuthenticationError(DeskBookError):
    """Missing, malformed, expired or wrongly-signed session token (401)."""

    def __init__(
        self,
        message: str = "Failed to authenticate token",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(DeskBookError):
    """
    Raised when a referenced user or place does not exist.

    Resource ids passed here are lookup indexes or place ids, never
    plaintext personal data.
    """

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


class ConflictError(DeskBookError):
    """
    Raised when a place is already held by someone else.

    What:    Carries the occupant's decrypted name and first name so the
             client can tell the caller who sits there.
    HTTP:    500 (kept for client compatibility)
    """

    def __init__(
        self,
        name: str = "",
        fname: str = "",
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"Place already used by : {fname} {name}".rstrip()
        super().__init__(message=message, context=context)
        self.name = name
        self.fname = fname


class RateLimitExceededError(DeskBookError):
    """Client exceeded the per-IP request rate limit (429)."""

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class DependencyError(DeskBookError):
    """
    Raised when a collaborator (database, mail server, image host) fails.

    The message returned to the client is always generic; context is logged.
    """

    def __init__(
        self,
        message: str = "A dependency failed. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(DependencyError):
    """A database query, insert, or update failed."""

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ImageHostError(DependencyError):
    """The photo could not be decoded, validated or uploaded."""

    def __init__(
        self,
        message: str = "Photo upload failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class MailDeliveryError(DependencyError):
    """The mail server refused or could not be reached."""

    def __init__(
        self,
        message: str = "Email delivery failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class CircuitBreakerOpenError(DependencyError):
    """
    Raised when the circuit breaker guarding a remote dependency is OPEN.

    How circuit breaker works:
        CLOSED (normal) → failures increment counter
        → After N failures → OPEN (reject all calls for recovery_time seconds)
        → After recovery_time → HALF-OPEN (allow one test call)
        → If test succeeds → CLOSED
        → If test fails → OPEN again
    """

    def __init__(
        self,
        recovery_time: int = 60,
        dependency: str = "dependency",
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"The {dependency} is temporarily unavailable due to repeated failures. "
            f"Retry in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, context=ctx)
        self.recovery_time = recovery_time
