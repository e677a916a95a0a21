"""
Contributors API
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ipregistry.api.deps import get_contributor_service
from ipregistry.schemas.contributor import ContributorCreate
from ipregistry.services.contributor_service import ContributorService
from ipregistry.services.query_builder import ContributorFilters
from ipregistry.utils.pagination import PageParams


router = APIRouter(prefix="/contributors", tags=["Contributors"])


@router.get("")
async def list_contributors(
    record_id: Optional[str] = Query(None),
    role: Optional[str] = Query(None),
    q: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    offset: Optional[str] = Query(None),
    service: ContributorService = Depends(get_contributor_service),
):
    filters = ContributorFilters.from_query(record_id=record_id, role=role, q=q)
    rows = await service.list_contributors(filters, PageParams.from_query(limit, offset))
    return {"ok": True, "rows": rows, "count": len(rows)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def add_contributor(
    payload: ContributorCreate,
    service: ContributorService = Depends(get_contributor_service),
):
    row = await service.add_contributor(payload.record_id, payload.contributor_name, payload.role)
    return {"ok": True, "message": "Contributor added successfully", "row": row}
