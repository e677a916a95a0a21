from ipregistry.services.query_builder import (
    Query,
    RecordFilters,
    ContributorFilters,
    RecordQueryBuilder,
    ContributorQueryBuilder,
)
from ipregistry.services.id_allocator import RecordIdAllocator, format_record_id
from ipregistry.services.record_service import RecordService
from ipregistry.services.contributor_service import ContributorService, majority_gender

__all__ = [
    "Query",
    "RecordFilters",
    "ContributorFilters",
    "RecordQueryBuilder",
    "ContributorQueryBuilder",
    "RecordIdAllocator",
    "format_record_id",
    "RecordService",
    "ContributorService",
    "majority_gender",
]
