"""
Health check and monitoring endpoints.
"""
from fastapi import APIRouter, Depends

from ..config import settings
from ..dependencies import get_service
from ..models import HealthResponse


router = APIRouter(prefix="/health", tags=["health"])


@router.get(
    "",
    response_model=HealthResponse,
    summary="Health check endpoint",
    description="Check if the API is running and healthy",
    responses={
        200: {"description": "Service is healthy"}
    }
)
async def health_check(service=Depends(get_service)) -> HealthResponse:
    """
    Health check endpoint for monitoring.

    Returns:
        Health status information, including network and scheduler state
    """
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        dependencies={
            "network": "online" if service.network.is_online() else "offline",
            "scheduler": service.scheduler.state.value,
        }
    )
