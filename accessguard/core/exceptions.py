from __future__ import annotations

"""Centralized, structured exception hierarchy for accessguard.

Each exception carries a machine-readable `code` for programmatic handling and
a human-readable `message` for logging. The codes are what callers see in the
`reason` field of a denial, so the UI can tell "try again later" from "you
don't have access" from "log in again".

Taxonomy:
- transient_store_error: the shared store is unreachable. Logged, and resolved
  by the fail-open policy of the component that hit it.
- invalid_user: the credential failed verification. Terminal.
- session_revoked: the credential's session was revoked. Terminal.
- rate_limited: explicit denial with a retry hint.
- not_entitled: explicit denial with an entitlement reason code.
"""

from typing import Final, Optional

__all__: Final = [
    "AccessGuardError",
    "AuthenticationError",
    "InvalidCredentialError",
    "SessionRevokedError",
    "PermissionError",
    "RateLimitExceededError",
    "NotEntitledError",
    "StoreUnavailableError",
    "ValidationError",
    "NotFoundError",
    "ProductNotFoundError",
    "SessionNotFoundError",
    "EntitlementNotFoundError",
]


class AccessGuardError(Exception):
    """Base exception class for all custom errors in accessguard.

    Attributes:
        message (str): A human-readable error message, suitable for logging.
        code (str): A unique, machine-readable error code.
    """

    message: str
    code: str = "generic_error"

    def __init__(self, message: str, code: str = "generic_error"):
        self.message = message
        self.code = code
        Exception.__init__(self, self.message)

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Auth-related errors (401 / 403)
# ---------------------------------------------------------------------------


class AuthenticationError(AccessGuardError):
    """Raised for authentication failures. Maps to `401 Unauthorized`."""

    def __init__(self, message: str, code: str = "authentication_error"):
        super().__init__(message, code)


class InvalidCredentialError(AuthenticationError):
    """Raised when the bearer credential is missing, malformed, badly signed
    or expired.

    This denial is terminal and never subject to a fail-open policy.
    """

    def __init__(self, message: str = "Invalid or expired credential", code: str = "invalid_user"):
        super().__init__(message, code)


class SessionRevokedError(AuthenticationError):
    """Raised when a cryptographically valid credential belongs to a session
    that was revoked by its owner or an administrator."""

    def __init__(self, message: str = "Session has been revoked", code: str = "session_revoked"):
        super().__init__(message, code)


class PermissionError(AccessGuardError):
    """Raised when an authenticated user lacks the role an operation requires.

    Maps to a `403 Forbidden` HTTP status code.
    """

    def __init__(self, message: str = "Admin access required", code: str = "admin_required"):
        super().__init__(message, code)


# ---------------------------------------------------------------------------
# Explicit denials
# ---------------------------------------------------------------------------


class RateLimitExceededError(AccessGuardError):
    """Raised by entry points when the rate limiter denies a request.

    Attributes:
        retry_after (int): Seconds until the matched window ends, at least 1.
        function_name (str): The protected operation that was throttled.
    """

    def __init__(
        self,
        retry_after: int,
        function_name: str = "",
        message: str = "Rate limit exceeded",
        code: str = "rate_limited",
    ):
        self.retry_after = retry_after
        self.function_name = function_name
        super().__init__(message, code)


class NotEntitledError(AccessGuardError):
    """Raised when the entitlement resolver denies access to a product.

    Maps to `403 Forbidden`; `reason` is the resolver's reason code.
    """

    def __init__(
        self,
        reason: str = "no_entitlement",
        product_id: Optional[str] = None,
        message: str = "No entitlement for this product",
        code: str = "not_entitled",
    ):
        self.reason = reason
        self.product_id = product_id
        super().__init__(message, code)


# ---------------------------------------------------------------------------
# Infrastructure errors
# ---------------------------------------------------------------------------


class StoreUnavailableError(AccessGuardError):
    """Raised when the shared state store cannot be read or written.

    Wraps the underlying driver error so callers can apply their fail-open or
    fail-closed policy without depending on SQLAlchemy.
    """

    def __init__(
        self,
        message: str = "Shared state store unavailable",
        code: str = "transient_store_error",
        cause: Optional[BaseException] = None,
    ):
        self.cause = cause
        super().__init__(message, code)


# ---------------------------------------------------------------------------
# Request errors (400 / 404)
# ---------------------------------------------------------------------------


class ValidationError(AccessGuardError):
    """Raised for invalid input. Maps to `400 Bad Request`."""

    def __init__(self, message: str, code: str = "validation_error"):
        super().__init__(message, code)


class NotFoundError(AccessGuardError):
    """Base class for missing resources. Maps to `404 Not Found`."""

    def __init__(self, message: str, code: str = "not_found"):
        super().__init__(message, code)


class ProductNotFoundError(NotFoundError):
    def __init__(self, message: str = "Product not found", code: str = "product_not_found"):
        super().__init__(message, code)


class SessionNotFoundError(NotFoundError):
    def __init__(self, message: str = "Session not found", code: str = "session_not_found"):
        super().__init__(message, code)


class EntitlementNotFoundError(NotFoundError):
    def __init__(
        self, message: str = "Entitlement not found", code: str = "entitlement_not_found"
    ):
        super().__init__(message, code)
