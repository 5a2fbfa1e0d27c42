"""
Request-scoped access to the service container.
"""
from fastapi import HTTPException, Request

from ..main import ChannelSyncAutomation


def get_service(request: Request) -> ChannelSyncAutomation:
    """Service container attached to the application at startup."""
    service = getattr(request.app.state, "service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Sync service not initialized")
    return service
