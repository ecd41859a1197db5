"""FastAPI wiring for the shared rate limiter.

Every protected route declares ``Depends(rate_limited("<function-name>"))``.
The quota, identifier type and admin elevation all come from
:class:`~accessguard.core.config.rate_limiting.RateLimitingSettings`, so the
limiter itself is never duplicated per route.
"""

from typing import Annotated, Awaitable, Callable

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from accessguard.core.config.settings import settings
from accessguard.core.dependencies.auth import CurrentSession, DBSession, get_client_ip
from accessguard.core.exceptions import RateLimitExceededError, StoreUnavailableError
from accessguard.domain.rate_limiting import RateLimiter
from accessguard.domain.value_objects.rate_limit import IdentifierType, RateLimitDecision
from accessguard.infrastructure.repositories import RateLimitWindowRepository, RoleRepository

logger = get_logger(__name__)


def get_rate_limiter(db_session: DBSession) -> RateLimiter:
    return RateLimiter(
        RateLimitWindowRepository(db_session),
        enabled=settings.RATE_LIMITING_ENABLED,
        fail_open=settings.RATE_LIMIT_FAIL_OPEN,
    )


Limiter = Annotated[RateLimiter, Depends(get_rate_limiter)]


async def _caller_is_admin(function_name: str, user_id: str, db_session: AsyncSession) -> bool:
    if function_name not in settings.ADMIN_RATE_LIMITS:
        return False
    try:
        return await RoleRepository(db_session).is_admin(user_id)
    except StoreUnavailableError:
        logger.warning("rate_limit_role_lookup_failed", function_name=function_name, user_id=user_id)
        return False


def rate_limited(function_name: str) -> Callable[..., Awaitable[RateLimitDecision]]:
    """Build the dependency enforcing the quota of ``function_name``.

    Raises (from the dependency):
        RateLimitExceededError: The quota is exhausted.
        StoreUnavailableError: The window store failed and the limiter is
            configured to fail closed.
    """

    async def enforce_rate_limit(
        request: Request,
        current: CurrentSession,
        limiter: Limiter,
        db_session: DBSession,
    ) -> RateLimitDecision:
        is_admin = await _caller_is_admin(function_name, current.user_id, db_session)
        quota = settings.get_quota(function_name, is_admin=is_admin)
        if quota.identifier_type is IdentifierType.IP:
            identifier = get_client_ip(request)
        else:
            identifier = current.user_id

        decision = await limiter.check(identifier, quota.identifier_type, function_name, quota)
        if decision.allowed:
            return decision
        if decision.reason == "store_unavailable":
            raise StoreUnavailableError("Rate limit store unavailable")
        raise RateLimitExceededError(
            retry_after=decision.retry_after_seconds, function_name=function_name
        )

    enforce_rate_limit.__name__ = f"rate_limit_{function_name.replace('-', '_')}"
    return enforce_rate_limit
