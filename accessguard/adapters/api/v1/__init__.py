"""API v1 router configuration.
"""

from fastapi import APIRouter

from .health import router as health_router
from .routes.access import router as access_router
from .routes.admin import router as admin_router
from .routes.sessions import router as sessions_router

api_router = APIRouter()

api_router.include_router(health_router, prefix="/health", tags=["health"])
api_router.include_router(access_router, prefix="/access", tags=["access"])
api_router.include_router(sessions_router, prefix="/sessions", tags=["sessions"])
api_router.include_router(admin_router, prefix="/admin", tags=["admin"])
