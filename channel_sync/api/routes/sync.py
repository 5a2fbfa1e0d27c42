"""
Sync, connection and scheduler endpoints.
"""
from fastapi import APIRouter, Depends, HTTPException

from ..dependencies import get_service
from ..models import (
    SyncResponse, SyncResultData, CycleResponse, CycleData, IntervalRequest, IntervalResponse
)


router = APIRouter(tags=["sync"])


@router.post("/units/{unit_id}/sync", response_model=SyncResponse, summary="Sync one rental unit now")
def sync_unit(unit_id: str, service=Depends(get_service)) -> SyncResponse:
    if service.store.get_unit(unit_id) is None:
        raise HTTPException(status_code=404, detail="Unit not found")

    result = service.sync_unit(unit_id)
    return SyncResponse(
        success=not result.errors,
        message="Unit synced" if not result.errors else "Unit synced with errors",
        data=SyncResultData.from_result(result),
    )


@router.post("/sync", response_model=CycleResponse, summary="Run one sync cycle over all units")
def sync_all(service=Depends(get_service)) -> CycleResponse:
    summary = service.sync_all()
    message = "Offline: sync skipped" if summary['offline'] else "Sync cycle completed"
    return CycleResponse(success=not summary['offline'], message=message, data=CycleData(**summary))


@router.delete("/connections/{connection_id}", response_model=SyncResponse, summary="Delete a channel connection")
def delete_connection(connection_id: str, service=Depends(get_service)) -> SyncResponse:
    """Remove the connection and its raw events, then re-reconcile the unit."""
    result = service.delete_connection(connection_id)
    if result is None:
        raise HTTPException(status_code=404, detail="Connection not found")
    return SyncResponse(success=True, message="Connection deleted", data=SyncResultData.from_result(result))


@router.put("/scheduler/interval", response_model=IntervalResponse, summary="Change the sync interval")
def set_interval(request: IntervalRequest, service=Depends(get_service)) -> IntervalResponse:
    try:
        interval = service.set_interval(request.interval)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return IntervalResponse(
        success=True,
        message="Sync interval updated",
        interval=interval.value,
        running=service.scheduler.is_running,
    )
