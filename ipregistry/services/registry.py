"""
Process-wide service container, built once at startup from the
introspected column map and stored on ``app.state.registry``.
"""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine

from ipregistry.core.config import settings
from ipregistry.db.schema import ColumnMap
from ipregistry.services.contributor_service import ContributorService
from ipregistry.services.id_allocator import RecordIdAllocator
from ipregistry.services.record_service import RecordService


@dataclass
class Registry:
    engine: AsyncEngine
    columns: ColumnMap
    records: RecordService
    contributors: ContributorService


def build_registry(engine: AsyncEngine, columns: ColumnMap) -> Registry:
    allocator = RecordIdAllocator(
        columns,
        prefix=settings.RECORD_PREFIX,
        pad=settings.RECORD_PAD,
        lock_key=settings.RECORD_ID_LOCK_KEY,
    )
    return Registry(
        engine=engine,
        columns=columns,
        records=RecordService(engine, columns, allocator, max_attempts=settings.RECORD_ID_MAX_ATTEMPTS),
        contributors=ContributorService(engine, columns),
    )
