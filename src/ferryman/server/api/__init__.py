"""API routes and endpoints."""

from fastapi import APIRouter

from ferryman.server.api.credentials import router as credentials_router
from ferryman.server.api.health import router as health_router
from ferryman.server.api.plugins import router as plugins_router
from ferryman.server.api.translation import router as translation_router

# Main API router
api_router = APIRouter()

api_router.include_router(health_router, tags=["health"])
api_router.include_router(translation_router, tags=["translation"])
api_router.include_router(plugins_router, tags=["plugins"])
api_router.include_router(credentials_router, tags=["credentials"])

__all__ = ["api_router"]
