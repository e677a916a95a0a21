"""
IP record operations: listing, statistics, creation with identifier
allocation, partial updates and cascading deletes.
"""

import asyncio
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine

from ipregistry.core.config import settings
from ipregistry.core.exceptions import (
    IdAllocationExhaustedError,
    RecordNotFoundError,
    ValidationError,
)
from ipregistry.core.logging_config import logger
from ipregistry.db.schema import ColumnMap
from ipregistry.db.unit_of_work import UnitOfWork, fetch_all, fetch_one, is_unique_violation
from ipregistry.services.contributor_service import majority_gender
from ipregistry.services.id_allocator import RecordIdAllocator
from ipregistry.services.query_builder import (
    ContributorQueryBuilder,
    RecordFilters,
    RecordQueryBuilder,
)
from ipregistry.utils.pagination import PageParams


DEFAULT_STATUS = "Unregistered"
REQUIRED_ON_CREATE = ("ip_title", "category")


def _clean_text(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


class RecordService:

    def __init__(
        self,
        engine: AsyncEngine,
        columns: ColumnMap,
        allocator: Optional[RecordIdAllocator] = None,
        max_attempts: int = settings.RECORD_ID_MAX_ATTEMPTS,
    ):
        self.engine = engine
        self.columns = columns
        self.records = RecordQueryBuilder(columns)
        self.contributors = ContributorQueryBuilder(columns)
        self.allocator = allocator or RecordIdAllocator(columns)
        self.max_attempts = max_attempts

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_records(self, filters: RecordFilters, page: PageParams) -> List[Dict[str, Any]]:
        return await fetch_all(self.engine, self.records.list_query(filters, page))

    async def sample_records(self) -> List[Dict[str, Any]]:
        return await fetch_all(self.engine, self.records.sample_query())

    async def get_record(self, record_id: str) -> Dict[str, Any]:
        row = await fetch_one(self.engine, self.records.get_query(record_id))
        if row is None:
            raise RecordNotFoundError(record_id)
        return row

    async def list_assets(self, filters: RecordFilters, page: PageParams) -> List[Dict[str, Any]]:
        """Listing rows annotated with the majority contributor gender"""
        rows = await fetch_all(self.engine, self.records.asset_list_query(filters, page))
        for row in rows:
            male = row.pop("male_count", 0)
            female = row.pop("female_count", 0)
            if self.columns.has_contributors:
                row["sex"] = majority_gender(male, female) or ""
            else:
                row["sex"] = ""
        return rows

    async def stats(self, filters: RecordFilters) -> Dict[str, Any]:
        """Total and grouped counts; the five queries run concurrently"""
        queries = self.records.stats_queries(filters)
        results = await asyncio.gather(*(fetch_all(self.engine, q) for q in queries.values()))
        by_key = dict(zip(queries.keys(), results))

        total_rows = by_key.pop("total")
        total = total_rows[0]["total"] if total_rows else 0
        return {"total": int(total or 0), **by_key}

    async def preview_next_id(self) -> str:
        return await self.allocator.preview_next_id(self.engine)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _prepare_new_record(self, fields: Mapping[str, Any]) -> Dict[str, Any]:
        values = {key: _clean_text(value) for key, value in fields.items()}
        for field in REQUIRED_ON_CREATE:
            if not values.get(field):
                raise ValidationError(f"{field} is required", field=field)
        values.pop("record_id", None)
        values["status"] = values.get("status") or DEFAULT_STATUS
        return values

    async def create_record(
        self,
        fields: Mapping[str, Any],
        contributors: Iterable[Mapping[str, Any]] = (),
    ) -> Dict[str, Any]:
        """
        Insert a record under a freshly allocated identifier, plus its
        contributors, in one transaction. Nothing persists on failure.
        """
        values = self._prepare_new_record(fields)
        contributors = list(contributors)

        async with self.engine.connect() as conn:
            async with UnitOfWork(conn) as uow:
                row = await self._insert_with_fresh_id(uow, values)
                await self._insert_contributors(uow, row["record_id"], contributors)

        logger.info(f"Created record {row['record_id']}")
        return row

    async def _insert_with_fresh_id(self, uow: UnitOfWork, values: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Allocate-and-insert retry loop. Each insert runs in a savepoint so a
        unique violation only discards that attempt. Any other error
        propagates on the first occurrence.
        """
        candidate = None
        for attempt in range(1, self.max_attempts + 1):
            candidate = await self.allocator.allocate_next_id(uow)
            try:
                async with uow.savepoint():
                    result = await uow.execute(self.records.insert_query(candidate, values))
                    row = dict(result.mappings().one())
            except IntegrityError as exc:
                if not is_unique_violation(exc):
                    raise
                logger.log_allocation(candidate, attempt, "collision")
                continue
            logger.log_allocation(candidate, attempt, "allocated")
            return row

        raise IdAllocationExhaustedError(self.max_attempts, candidate)

    async def _insert_contributors(
        self,
        uow: UnitOfWork,
        record_id: str,
        contributors: List[Mapping[str, Any]],
    ) -> None:
        if not contributors:
            return
        if not self.columns.has_contributors:
            logger.warning(f"Skipping {len(contributors)} contributors for {record_id}: contributor table not found")
            return
        for contributor in contributors:
            name = _clean_text(contributor.get("contributor_name"))
            if not name:
                continue
            role = _clean_text(contributor.get("role"))
            await uow.execute(self.contributors.insert_query(record_id, name, role))

    async def update_record(self, record_id: str, changes: Mapping[str, Any]) -> Dict[str, Any]:
        """Partial update; validation happens before any statement is sent"""
        cleaned = {
            key: (value.strip() if isinstance(value, str) else value)
            for key, value in changes.items()
        }
        query = self.records.update_query(record_id, cleaned)

        async with self.engine.connect() as conn:
            async with UnitOfWork(conn) as uow:
                result = await uow.execute(query)
                row = result.mappings().first()
                if row is None:
                    raise RecordNotFoundError(record_id)

        logger.info(f"Updated record {record_id}")
        return dict(row)

    async def delete_record(self, record_id: str) -> Dict[str, Any]:
        """Delete a record and, first, all of its contributors"""
        async with self.engine.connect() as conn:
            async with UnitOfWork(conn) as uow:
                exists = await uow.execute(self.records.exists_query(record_id))
                if exists.first() is None:
                    raise RecordNotFoundError(record_id)
                if self.columns.has_contributors:
                    await uow.execute(self.contributors.delete_for_record_query(record_id))
                result = await uow.execute(self.records.delete_query(record_id))
                row = dict(result.mappings().one())

        logger.info(f"Deleted record {record_id}")
        return row
