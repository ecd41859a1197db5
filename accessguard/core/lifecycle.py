"""Application lifecycle management.

This module handles application startup and shutdown events, ensuring proper
initialization and cleanup of application resources.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from tenacity import retry, retry_if_result, stop_after_attempt, wait_exponential

from accessguard.core.config.settings import settings
from accessguard.core.exceptions import StoreUnavailableError
from accessguard.core.logging import logger
from accessguard.domain.services.auth.session import SessionService
from accessguard.infrastructure.database import (
    AsyncSessionFactory,
    check_database_health,
    create_async_db_and_tables,
    engine,
)
from accessguard.infrastructure.repositories import SessionRepository


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=5),
    retry=retry_if_result(lambda healthy: not healthy),
    retry_error_callback=lambda retry_state: retry_state.outcome.result(),
)
async def wait_for_database() -> bool:
    """Probe the shared store, retrying briefly while it comes up."""
    return await check_database_health()


async def purge_expired_sessions() -> int:
    """Drop expired sessions and tombstones; failures are logged, never raised."""
    async with AsyncSessionFactory() as db_session:
        try:
            return await SessionService(SessionRepository(db_session)).purge_expired()
        except StoreUnavailableError:
            logger.warning("expired_session_purge_failed")
            return 0


def create_lifespan_manager():
    """Create the application lifespan manager.

    Returns:
        AsyncContextManager: The lifespan manager for the FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager that handles startup and shutdown events.

        Startup checks the shared store, creates tables outside staging and
        production (where Alembic owns the schema) and purges expired
        sessions. Shutdown disposes of the connection pool.

        Args:
            app (FastAPI): The FastAPI application instance

        Raises:
            RuntimeError: If the database is unavailable during startup
        """
        # Startup
        if not await wait_for_database():
            logger.error("database_unavailable_on_startup")
            raise RuntimeError("Database unavailable")
        if settings.APP_ENV in ("development", "test"):
            await create_async_db_and_tables()
        await purge_expired_sessions()
        logger.info("application_startup", env=settings.APP_ENV, version=settings.VERSION)

        yield

        # Shutdown
        await engine.dispose()
        logger.info("application_shutdown", env=settings.APP_ENV)

    return lifespan
