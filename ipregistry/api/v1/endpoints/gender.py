"""
Contributor gender analytics
"""

from fastapi import APIRouter, Depends

from ipregistry.api.deps import get_contributor_service
from ipregistry.services.contributor_service import ContributorService


router = APIRouter(prefix="/gender", tags=["Gender"])


@router.get("/stats")
async def gender_stats(service: ContributorService = Depends(get_contributor_service)):
    """Contributors and distinct records per gender tag"""
    return {"ok": True, "rows": await service.gender_stats()}


@router.get("/by-category")
async def gender_by_category(service: ContributorService = Depends(get_contributor_service)):
    return {"ok": True, "rows": await service.gender_by_category()}
