from __future__ import annotations

"""
Asynchronous Database Utilities Module

Every request handler talks to the shared PostgreSQL store through one
``AsyncSession`` obtained from :func:`get_async_db`. The store is the only
coordination point between instances, so the pool is kept small and the
connection timeout short.

**Security Note**: Ensure that the database connection URL (DATABASE_URL) is
configured for SSL/TLS when connecting over untrusted networks. asyncpg does
not understand ``sslmode``; it is stripped from the URL and must be expressed
through asyncpg's own ``ssl`` parameter if required. Never log the URL.

Key Components:
    - engine: The asynchronous SQLAlchemy engine.
    - AsyncSessionFactory: A factory for creating asynchronous database sessions.
    - get_async_db: FastAPI dependency yielding one session per request.
    - check_database_health: Lightweight ``SELECT 1`` probe.
    - create_async_db_and_tables: Utility to create tables using the async engine.
"""

from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlmodel import SQLModel
from structlog import get_logger

import accessguard.domain.entities  # noqa: F401  (registers every table on SQLModel.metadata)
from accessguard.core.config.settings import settings

logger = get_logger(__name__)


def _build_async_url() -> str:
    """
    Build the asynchronous database URL.

    Replaces a sync driver with asyncpg and drops ``sslmode``, which asyncpg
    rejects.

    Returns:
        str: The cleaned asynchronous database URL.
    """
    url = make_url(settings.DATABASE_URL)
    if url.drivername in ("postgresql", "postgresql+psycopg2"):
        url = url.set(drivername="postgresql+asyncpg")
    url = url.difference_update_query(["sslmode"])
    return url.render_as_string(hide_password=False)


def _create_engine() -> AsyncEngine:
    url = make_url(_build_async_url())
    if url.get_backend_name() == "sqlite":
        return create_async_engine(url, echo=settings.DATABASE_ECHO)
    return create_async_engine(
        url,
        echo=settings.DATABASE_ECHO,
        pool_size=settings.POSTGRES_POOL_SIZE,
        max_overflow=settings.POSTGRES_MAX_OVERFLOW,
        pool_timeout=settings.POSTGRES_POOL_TIMEOUT,
        pool_pre_ping=True,
    )


engine = _create_engine()

AsyncSessionFactory: async_sessionmaker[AsyncSession] = async_sessionmaker(
    bind=engine, class_=AsyncSession, expire_on_commit=False
)


async def get_async_db() -> AsyncGenerator[AsyncSession, None]:  # noqa: D401
    """
    FastAPI dependency that yields an AsyncSession.

    Rolls back the transaction if the request fails and always closes the
    session.

    Yields:
        AsyncSession: An asynchronous database session for use in FastAPI routes.
    """
    async with AsyncSessionFactory() as session:
        logger.debug("async_db_session_created")
        try:
            yield session
        except Exception:  # noqa: BLE001
            await session.rollback()
            logger.error("async_db_session_rollback")
            raise
        finally:
            await session.close()
            logger.debug("async_db_session_closed")


async def check_database_health() -> bool:
    """Return True when a trivial query succeeds."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except (SQLAlchemyError, OSError) as exc:
        logger.error("database_health_check_failed", error=str(exc))
        return False


async def create_async_db_and_tables() -> None:  # noqa: D401
    """
    Create tables using the async engine (development and test runs).

    Production schemas are managed by Alembic.
    """
    logger.info("creating_database_tables")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("database_tables_created")
