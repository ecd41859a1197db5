from __future__ import annotations

"""
Global exception handlers for the FastAPI application.

This module contains centralized handlers for custom application exceptions,
translating them into appropriate HTTP responses. Every denial carries a
machine-readable ``reason`` next to the human-readable ``detail``.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette import status
from structlog import get_logger

from accessguard.core.exceptions import (
    AccessGuardError,
    AuthenticationError,
    NotEntitledError,
    NotFoundError,
    PermissionError,
    RateLimitExceededError,
    StoreUnavailableError,
    ValidationError,
)

__all__ = [
    "authentication_error_handler",
    "permission_error_handler",
    "rate_limit_exceeded_error_handler",
    "not_entitled_error_handler",
    "not_found_error_handler",
    "validation_error_handler",
    "store_unavailable_error_handler",
    "accessguard_error_handler",
    "register_exception_handlers",
]

logger = get_logger(__name__)


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def authentication_error_handler(request: Request, exc: AuthenticationError) -> JSONResponse:
    """Handles `AuthenticationError`, returning a `401 Unauthorized`.

    Covers both an invalid credential (``invalid_user``) and a credential
    whose session was revoked (``session_revoked``).

    Args:
        request: The incoming `Request` object.
        exc: The `AuthenticationError` instance.

    Returns:
        A `JSONResponse` with a 401 status code and error detail.
    """
    logger.warning(
        "authentication_failure",
        error=exc.code,
        client_ip=_client_ip(request),
        path=request.url.path,
    )
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"detail": exc.message, "reason": exc.code},
        headers={"WWW-Authenticate": "Bearer"},
    )


async def permission_error_handler(request: Request, exc: PermissionError) -> JSONResponse:
    """Handles `PermissionError`, returning a `403 Forbidden`.

    This handler is invoked when an authenticated user attempts an
    administrator-only operation.
    """
    logger.warning(
        "permission_denied",
        error=exc.code,
        client_ip=_client_ip(request),
        path=request.url.path,
    )
    return JSONResponse(
        status_code=status.HTTP_403_FORBIDDEN,
        content={"detail": exc.message, "reason": exc.code},
    )


async def rate_limit_exceeded_error_handler(
    request: Request, exc: RateLimitExceededError
) -> JSONResponse:
    """Handles `RateLimitExceededError`, returning a `429 Too Many Requests`.

    The retry hint is sent both in the body and in the ``Retry-After`` header.
    """
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={
            "detail": exc.message,
            "reason": exc.code,
            "retry_after": exc.retry_after,
        },
        headers={"Retry-After": str(exc.retry_after)},
    )


async def not_entitled_error_handler(request: Request, exc: NotEntitledError) -> JSONResponse:
    """Handles `NotEntitledError`, returning a `403 Forbidden` with the resolver's reason."""
    return JSONResponse(
        status_code=status.HTTP_403_FORBIDDEN,
        content={
            "detail": exc.message,
            "allowed": False,
            "reason": exc.reason,
            "product_id": exc.product_id,
        },
    )


async def not_found_error_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": exc.message, "reason": exc.code},
    )


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": exc.message, "reason": exc.code},
    )


async def store_unavailable_error_handler(
    request: Request, exc: StoreUnavailableError
) -> JSONResponse:
    """Handles `StoreUnavailableError`, returning a `503 Service Unavailable`.

    Only reached where the failing component is configured to fail closed;
    the underlying error was already logged by the repository.
    """
    logger.error("store_unavailable_response", path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Service temporarily unavailable", "reason": exc.code},
    )


async def accessguard_error_handler(request: Request, exc: AccessGuardError) -> JSONResponse:
    """Fallback for any `AccessGuardError` without a dedicated handler."""
    logger.error("unhandled_application_error", error=exc.code, path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": exc.message, "reason": exc.code},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Registers all custom exception handlers with the FastAPI application.

    Starlette resolves handlers along the exception's MRO, so subclasses such
    as ``SessionRevokedError`` reach the handler of their base class.

    Args:
        app: The `FastAPI` application instance.
    """
    app.add_exception_handler(AuthenticationError, authentication_error_handler)
    app.add_exception_handler(PermissionError, permission_error_handler)
    app.add_exception_handler(RateLimitExceededError, rate_limit_exceeded_error_handler)
    app.add_exception_handler(NotEntitledError, not_entitled_error_handler)
    app.add_exception_handler(NotFoundError, not_found_error_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(StoreUnavailableError, store_unavailable_error_handler)
    app.add_exception_handler(AccessGuardError, accessguard_error_handler)
