"""Shared error handling for the SQL repositories."""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from accessguard.core.exceptions import StoreUnavailableError

logger = get_logger(__name__)


@asynccontextmanager
async def store_operation(
    db_session: AsyncSession, operation: str, **context: Any
) -> AsyncIterator[None]:
    """Translate driver failures inside the block into ``StoreUnavailableError``.

    The transaction is rolled back first so the session stays usable for the
    rest of the request.
    """
    try:
        yield
    except SQLAlchemyError as exc:
        try:
            await db_session.rollback()
        except SQLAlchemyError as rollback_exc:
            logger.warning("store_rollback_failed", operation=operation, error=str(rollback_exc))
        logger.error(
            "store_operation_failed",
            operation=operation,
            error=str(exc),
            error_type=type(exc).__name__,
            **context,
        )
        raise StoreUnavailableError(cause=exc) from exc


class SQLRepository:
    """Holds the request-scoped session every SQL repository works on."""

    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session
