"""
Schema introspection for the two domain tables.

The registry runs against databases whose ``ip_records`` table has grown
different optional columns over time. At boot we read the catalog once,
check the required columns and bind each optional logical field to the first
candidate column that exists. The result is an immutable ``ColumnMap`` that
every query builder and the id allocator receive by reference.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from ipregistry.core.exceptions import SchemaMismatchError
from ipregistry.core.logging_config import logger


# Logical field -> physical column. Logical names are also the API field names.
RECORD_COLUMNS: Dict[str, str] = {
    "record_id": "record_id",
    "ip_title": "ip_title",
    "category": "category",
    "owner_inventor_summary": "owner_inventor_summary",
    "campus": "campus",
    "status": "status",
    "date_registered": "date_registered",
}

CONTRIBUTOR_COLUMNS: Dict[str, str] = {
    "contributor_id": "contributor_id",
    "record_id": "record_id",
    "contributor_name": "contributor_name",
    "role": "role",  # Male/Female (gender)
}

# Optional logical field -> candidate physical names, highest priority first
OPTIONAL_RECORD_COLUMNS: Dict[str, Tuple[str, ...]] = {
    "ipophl_id": ("ipophl_id", "ipophil_id_number", "ipophl_id_number", "shil_id_number"),
    "gdrive_link": ("gdrive_link",),
}

COLUMNS_SQL = """
    SELECT column_name
    FROM information_schema.columns
    WHERE table_schema = :schema AND table_name = :table
    ORDER BY ordinal_position
"""


def pick_first_existing(columns: Set[str], candidates: Iterable[str]) -> Optional[str]:
    for candidate in candidates:
        if candidate in columns:
            return candidate
    return None


@dataclass(frozen=True)
class ColumnMap:
    """Resolved logical -> physical column mapping, read-only after boot."""

    records_table: str = "ip_records"
    contributors_table: str = "ip_contributors"
    has_contributors: bool = True
    optional: Mapping[str, Optional[str]] = field(
        default_factory=lambda: MappingProxyType({name: None for name in OPTIONAL_RECORD_COLUMNS})
    )

    def __post_init__(self):
        # Freeze whatever mapping the caller handed in
        object.__setattr__(self, "optional", MappingProxyType(dict(self.optional)))

    def __hash__(self) -> int:
        # MappingProxyType is unhashable, so hash its frozen items instead
        return hash((
            self.records_table,
            self.contributors_table,
            self.has_contributors,
            tuple(sorted(self.optional.items())),
        ))

    def record_column(self, logical: str) -> Optional[str]:
        """Physical column for a logical record field, or None when absent"""
        if logical in RECORD_COLUMNS:
            return RECORD_COLUMNS[logical]
        return self.optional.get(logical)

    def contributor_column(self, logical: str) -> str:
        return CONTRIBUTOR_COLUMNS[logical]

    def has_optional(self, logical: str) -> bool:
        return self.optional.get(logical) is not None

    @property
    def record_fields(self) -> List[Tuple[str, str]]:
        """(logical, physical) pairs for every record column present, in output order"""
        fields = list(RECORD_COLUMNS.items())
        for logical in OPTIONAL_RECORD_COLUMNS:
            physical = self.optional.get(logical)
            if physical:
                fields.append((logical, physical))
        return fields

    @property
    def contributor_fields(self) -> List[Tuple[str, str]]:
        return list(CONTRIBUTOR_COLUMNS.items())


def resolve_column_map(
    record_columns: Set[str],
    contributor_columns: Set[str],
    records_table: str = "ip_records",
    contributors_table: str = "ip_contributors",
) -> ColumnMap:
    """
    Build a ColumnMap from the physical column sets of both tables.

    Raises SchemaMismatchError when the records table is missing, when it
    lacks a required column, or when the contributor table exists but lacks
    one. An absent contributor table yields a degraded map instead.
    """
    if not record_columns:
        raise SchemaMismatchError(records_table, RECORD_COLUMNS.values(), record_columns)

    missing = [c for c in RECORD_COLUMNS.values() if c not in record_columns]
    if missing:
        raise SchemaMismatchError(records_table, missing, record_columns)

    has_contributors = bool(contributor_columns)
    if has_contributors:
        missing = [c for c in CONTRIBUTOR_COLUMNS.values() if c not in contributor_columns]
        if missing:
            raise SchemaMismatchError(contributors_table, missing, contributor_columns)

    optional = {
        logical: pick_first_existing(record_columns, candidates)
        for logical, candidates in OPTIONAL_RECORD_COLUMNS.items()
    }

    return ColumnMap(
        records_table=records_table,
        contributors_table=contributors_table,
        has_contributors=has_contributors,
        optional=optional,
    )


async def fetch_columns(conn, schema: str, table: str) -> Set[str]:
    result = await conn.execute(text(COLUMNS_SQL), {"schema": schema, "table": table})
    return set(result.scalars().all())


async def introspect_schema(
    engine: AsyncEngine,
    schema: str = "public",
    records_table: str = "ip_records",
    contributors_table: str = "ip_contributors",
) -> ColumnMap:
    """Read the catalog once and resolve the process-wide ColumnMap"""
    async with engine.connect() as conn:
        record_columns = await fetch_columns(conn, schema, records_table)
        contributor_columns = await fetch_columns(conn, schema, contributors_table)

    column_map = resolve_column_map(
        record_columns,
        contributor_columns,
        records_table=records_table,
        contributors_table=contributors_table,
    )

    logger.info(f"[Startup] Detected table {records_table}")
    if column_map.has_contributors:
        logger.info(f"[Startup] Detected table {contributors_table}")
    else:
        logger.warning(
            f"[Startup] Table {contributors_table} not found. Contributor and gender endpoints are disabled."
        )
    for logical, physical in column_map.optional.items():
        logger.info(f"[Startup] Optional column {logical}: {physical or '(none)'}")

    return column_map
