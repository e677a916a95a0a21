"""
Records API - canonical CRUD, preview of the next identifier and statistics
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ipregistry.api.deps import get_record_service, record_filters
from ipregistry.schemas.record import RecordCreate, RecordUpdate
from ipregistry.services.query_builder import RecordFilters
from ipregistry.services.record_service import RecordService
from ipregistry.utils.pagination import PageParams


router = APIRouter(prefix="/records", tags=["Records"])


# ============================================
# Fixed paths (declared before /{record_id})
# ============================================

@router.get("/next-id")
async def preview_next_id(service: RecordService = Depends(get_record_service)):
    """Identifier the next create would receive; nothing is reserved"""
    return {"ok": True, "next_id": await service.preview_next_id()}


@router.get("/sample")
async def sample_records(service: RecordService = Depends(get_record_service)):
    rows = await service.sample_records()
    return {"ok": True, "rows": rows}


@router.get("/stats")
async def record_stats(
    filters: RecordFilters = Depends(record_filters),
    service: RecordService = Depends(get_record_service),
):
    return {"ok": True, "stats": await service.stats(filters)}


# ============================================
# Collection
# ============================================

@router.get("")
async def list_records(
    filters: RecordFilters = Depends(record_filters),
    limit: Optional[str] = Query(None),
    offset: Optional[str] = Query(None),
    service: RecordService = Depends(get_record_service),
):
    page = PageParams.from_query(limit, offset)
    rows = await service.list_records(filters, page)
    return {"ok": True, "rows": rows, "count": len(rows)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_record(
    payload: RecordCreate,
    service: RecordService = Depends(get_record_service),
):
    row = await service.create_record(
        payload.record_fields(),
        [c.model_dump() for c in payload.contributors],
    )
    return {"ok": True, "message": "Record created successfully", "row": row}


# ============================================
# Single record
# ============================================

@router.get("/{record_id}")
async def get_record(record_id: str, service: RecordService = Depends(get_record_service)):
    return {"ok": True, "row": await service.get_record(record_id)}


@router.put("/{record_id}")
async def update_record(
    record_id: str,
    payload: RecordUpdate,
    service: RecordService = Depends(get_record_service),
):
    row = await service.update_record(record_id, payload.changes())
    return {"ok": True, "message": "Record updated successfully", "row": row}


@router.delete("/{record_id}")
async def delete_record(record_id: str, service: RecordService = Depends(get_record_service)):
    row = await service.delete_record(record_id)
    return {"ok": True, "message": "Record deleted successfully", "row": row}
