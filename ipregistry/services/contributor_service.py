"""
Contributor (inventor / applicant) listing, creation and gender analytics.

The contributor table is optional in some deployments. When the schema
introspector did not find it, every operation here raises
ContributorsUnavailableError instead of touching the store.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from ipregistry.core.exceptions import ContributorsUnavailableError, RecordNotFoundError, ValidationError
from ipregistry.core.logging_config import logger
from ipregistry.db.schema import ColumnMap
from ipregistry.db.unit_of_work import UnitOfWork, fetch_all
from ipregistry.services.query_builder import ContributorFilters, ContributorQueryBuilder, RecordQueryBuilder
from ipregistry.utils.pagination import PageParams


MALE = "Male"
FEMALE = "Female"


def majority_gender(male_count: Optional[int], female_count: Optional[int]) -> Optional[str]:
    """
    Majority gender of a record's contributors.

    None when nobody is tagged. Ties go to "Male"; this is the registry's
    long-standing reporting policy, not a statistical statement.
    """
    male = int(male_count or 0)
    female = int(female_count or 0)
    if male == 0 and female == 0:
        return None
    return MALE if male >= female else FEMALE


class ContributorService:

    def __init__(self, engine: AsyncEngine, columns: ColumnMap):
        self.engine = engine
        self.columns = columns
        self.queries = ContributorQueryBuilder(columns)
        self.records = RecordQueryBuilder(columns)

    def _require_table(self) -> None:
        if not self.columns.has_contributors:
            raise ContributorsUnavailableError(self.columns.contributors_table)

    async def list_contributors(self, filters: ContributorFilters, page: PageParams) -> List[Dict[str, Any]]:
        self._require_table()
        return await fetch_all(self.engine, self.queries.list_query(filters, page))

    async def add_contributor(self, record_id: Optional[str], contributor_name: Optional[str],
                              role: Optional[str] = None) -> Dict[str, Any]:
        self._require_table()
        record_id = (record_id or "").strip()
        contributor_name = (contributor_name or "").strip()
        if not record_id:
            raise ValidationError("record_id is required", field="record_id")
        if not contributor_name:
            raise ValidationError("contributor_name is required", field="contributor_name")
        role = (role or "").strip() or None

        async with self.engine.connect() as conn:
            async with UnitOfWork(conn) as uow:
                exists = await uow.execute(self.records.exists_query(record_id))
                if exists.first() is None:
                    raise RecordNotFoundError(record_id)
                result = await uow.execute(self.queries.insert_query(record_id, contributor_name, role))
                row = dict(result.mappings().one())

        logger.info(f"Added contributor {row.get('contributor_id')} to {record_id}")
        return row

    async def gender_stats(self) -> List[Dict[str, Any]]:
        self._require_table()
        return await fetch_all(self.engine, self.queries.gender_stats_query())

    async def gender_by_category(self) -> List[Dict[str, Any]]:
        self._require_table()
        return await fetch_all(self.engine, self.queries.gender_by_category_query())
