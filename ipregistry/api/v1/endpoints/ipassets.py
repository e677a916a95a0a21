"""
IP Assets API - the dashboard's field names over the same record store

title/ip_type/remarks/inventors/location map onto
ip_title/category/status/owner_inventor_summary/campus.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ipregistry.api.deps import get_record_service
from ipregistry.core.exceptions import ValidationError
from ipregistry.schemas.record import IpAssetCreate, IpAssetUpdate, to_asset_row
from ipregistry.services.query_builder import RecordFilters
from ipregistry.services.record_service import RecordService
from ipregistry.utils.pagination import ASSETS_DEFAULT_LIMIT, ASSETS_MAX_LIMIT, PageParams


router = APIRouter(prefix="/ipassets", tags=["IP Assets"])


def asset_filters(
    type: Optional[str] = Query(None),
    campus: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    q: Optional[str] = Query(None),
) -> RecordFilters:
    """`type` is the dashboard's name for category"""
    return RecordFilters.from_query(category=type, campus=campus, status=status, q=q)


@router.get("/stats")
async def asset_stats(
    filters: RecordFilters = Depends(asset_filters),
    service: RecordService = Depends(get_record_service),
):
    return {"ok": True, "stats": await service.stats(filters)}


@router.get("")
async def list_assets(
    filters: RecordFilters = Depends(asset_filters),
    limit: Optional[str] = Query(None),
    offset: Optional[str] = Query(None),
    service: RecordService = Depends(get_record_service),
):
    page = PageParams.from_query(limit, offset, default_limit=ASSETS_DEFAULT_LIMIT, max_limit=ASSETS_MAX_LIMIT)
    rows = [to_asset_row(row, row["sex"]) for row in await service.list_assets(filters, page)]
    return {"ok": True, "rows": rows, "count": len(rows)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_asset(
    payload: IpAssetCreate,
    service: RecordService = Depends(get_record_service),
):
    fields = payload.record_fields()
    if not fields.get("ip_title"):
        raise ValidationError("title is required", field="title")
    if not fields.get("category"):
        raise ValidationError("ip_type is required", field="ip_type")

    row = await service.create_record(fields)
    return {"ok": True, "message": "IP asset created successfully", "row": to_asset_row(row)}


@router.put("/{asset_id}")
async def update_asset(
    asset_id: str,
    payload: IpAssetUpdate,
    service: RecordService = Depends(get_record_service),
):
    row = await service.update_record(asset_id, payload.changes())
    return {"ok": True, "message": "IP asset updated successfully", "row": to_asset_row(row)}


@router.delete("/{asset_id}")
async def delete_asset(asset_id: str, service: RecordService = Depends(get_record_service)):
    await service.delete_record(asset_id)
    return {"ok": True, "message": "IP asset deleted successfully"}
