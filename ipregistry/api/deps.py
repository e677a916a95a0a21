from typing import Optional

from fastapi import Depends, Query, Request

from ipregistry.core.exceptions import ConfigurationError
from ipregistry.services.contributor_service import ContributorService
from ipregistry.services.query_builder import RecordFilters
from ipregistry.services.record_service import RecordService
from ipregistry.services.registry import Registry


def get_registry(request: Request) -> Registry:
    registry = getattr(request.app.state, "registry", None)
    if registry is None:
        raise ConfigurationError("Registry is not initialised")
    return registry


def get_record_service(registry: Registry = Depends(get_registry)) -> RecordService:
    return registry.records


def get_contributor_service(registry: Registry = Depends(get_registry)) -> ContributorService:
    return registry.contributors


def record_filters(
    category: Optional[str] = Query(None),
    campus: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    q: Optional[str] = Query(None),
) -> RecordFilters:
    """Standard record filter set; blank values and "All" are ignored"""
    return RecordFilters.from_query(category=category, campus=campus, status=status, q=q)
