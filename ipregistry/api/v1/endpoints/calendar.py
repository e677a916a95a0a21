"""
Renewal / expiry calendar
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ipregistry.api.deps import get_record_service, record_filters
from ipregistry.services.query_builder import RecordFilters
from ipregistry.services.record_service import RecordService
from ipregistry.services.renewal_calendar import build_events
from ipregistry.utils.pagination import ASSETS_MAX_LIMIT, PageParams


router = APIRouter(prefix="/calendar", tags=["Calendar"])


@router.get("/events")
async def calendar_events(
    filters: RecordFilters = Depends(record_filters),
    upcoming: bool = Query(False),
    today: Optional[date] = Query(None),
    service: RecordService = Depends(get_record_service),
):
    """Due and expiry dates for every matching record"""
    rows = await service.list_records(filters, PageParams(limit=ASSETS_MAX_LIMIT, offset=0))
    events = build_events(rows, upcoming_only=upcoming, today=today)
    return {"ok": True, "events": events, "count": len(events)}
