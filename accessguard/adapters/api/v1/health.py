from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter
from pydantic import BaseModel

from accessguard.core.config.settings import settings
from accessguard.infrastructure.database import check_database_health

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    env: str
    version: str
    services: Dict[str, Any]
    timestamp: datetime


@router.get("", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Report whether the shared store is reachable. Not rate limited."""
    db_healthy = await check_database_health()

    return HealthResponse(
        status="ok" if db_healthy else "degraded",
        env=settings.APP_ENV,
        version=settings.VERSION,
        services={"database": {"status": "healthy" if db_healthy else "unhealthy"}},
        timestamp=datetime.now(timezone.utc),
    )
