"""
Outbound iCalendar export endpoint.
"""
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from ..dependencies import get_service


router = APIRouter(tags=["iCal"])


@router.get("/units/{unit_id}/calendar.ics", summary="iCalendar feed of a unit's bookings")
def export_calendar(unit_id: str, service=Depends(get_service)) -> Response:
    content = service.export_calendar(unit_id)
    if content is None:
        raise HTTPException(status_code=404, detail="Unit not found")
    return Response(
        content=content,
        media_type="text/calendar; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{unit_id}.ics"'},
    )
