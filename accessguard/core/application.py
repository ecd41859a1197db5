"""Application factory for creating and configuring the FastAPI application.

This module provides a factory function to create a properly configured FastAPI application
with CORS, exception handlers, and routers registered.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from accessguard.adapters.api.v1 import api_router
from accessguard.core.config.settings import settings
from accessguard.core.handlers import register_exception_handlers
from accessguard.core.lifecycle import create_lifespan_manager


def create_application(with_lifespan: bool = True) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        with_lifespan: Attach the startup/shutdown manager. Tests that supply
            their own database session turn it off.

    Returns:
        FastAPI: The configured FastAPI application instance
    """
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        description="Rate limiting, session validation and entitlement checks.",
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url=None,
        openapi_url="/openapi.json" if settings.DEBUG else None,
        lifespan=create_lifespan_manager() if with_lifespan else None,
        default_response_class=JSONResponse,
    )

    # Configure middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
    )

    # Register exception handlers
    register_exception_handlers(app)

    # Include routers
    app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    return app
