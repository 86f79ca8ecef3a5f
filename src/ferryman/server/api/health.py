"""Health check endpoints."""

from fastapi import APIRouter

from ferryman import __version__
from ferryman.server.schemas.common import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Report service status and version."""
    return HealthResponse(status="healthy", version=__version__)
