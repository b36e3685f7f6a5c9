"""API router definitions."""

from fastapi import APIRouter

from .logs import router as logs_router
from .routes import health_router
from .stations import router as stations_router
from .tiles import router as tiles_router

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(tiles_router)
api_router.include_router(stations_router)
api_router.include_router(logs_router)

__all__ = ["api_router"]
