"""
Parameterized SQL builders for the record and contributor tables.

Only column names resolved by the schema introspector are interpolated into
statement text. Every caller-supplied value travels as a named bind parameter.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Tuple

from ipregistry.core.exceptions import NoFieldsToUpdateError, ContributorsUnavailableError
from ipregistry.db.schema import ColumnMap, OPTIONAL_RECORD_COLUMNS
from ipregistry.utils.pagination import PageParams


SENTINEL_ALL = "All"
SAMPLE_SIZE = 10


class Query(NamedTuple):
    sql: str
    params: Dict[str, Any]
    table: str = "-"


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user text matches literally"""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _clean(value: Optional[str]) -> Optional[str]:
    """Absent, blank and the "All" sentinel all mean: no filter"""
    if value is None:
        return None
    value = str(value).strip()
    if not value or value == SENTINEL_ALL:
        return None
    return value


def _clean_search(value: Optional[str]) -> Optional[str]:
    """Free text: only absent or blank means no filter; "All" is a real search"""
    if value is None:
        return None
    return str(value).strip() or None


@dataclass(frozen=True)
class RecordFilters:
    category: Optional[str] = None
    campus: Optional[str] = None
    status: Optional[str] = None
    q: Optional[str] = None

    @classmethod
    def from_query(cls, category=None, campus=None, status=None, q=None) -> "RecordFilters":
        return cls(category=_clean(category), campus=_clean(campus), status=_clean(status), q=_clean_search(q))


@dataclass(frozen=True)
class ContributorFilters:
    record_id: Optional[str] = None
    role: Optional[str] = None
    q: Optional[str] = None

    @classmethod
    def from_query(cls, record_id=None, role=None, q=None) -> "ContributorFilters":
        record_id = str(record_id).strip() if record_id is not None else None
        return cls(record_id=record_id or None, role=_clean(role), q=_clean_search(q))


class RecordQueryBuilder:
    """Statements against the records table"""

    alias = "r"

    def __init__(self, columns: ColumnMap):
        self.columns = columns
        self.table = columns.records_table

    def _col(self, logical: str, alias: Optional[str] = "r") -> str:
        physical = self.columns.record_column(logical)
        return f"{alias}.{physical}" if alias else physical

    def select_list(self, alias: Optional[str] = "r") -> str:
        prefix = f"{alias}." if alias else ""
        return ",\n       ".join(
            f"{prefix}{physical} AS {logical}" for logical, physical in self.columns.record_fields
        )

    def where_clause(self, filters: RecordFilters) -> Tuple[List[str], Dict[str, Any]]:
        clauses: List[str] = []
        params: Dict[str, Any] = {}

        for logical in ("category", "campus", "status"):
            value = getattr(filters, logical)
            if value is not None:
                params[logical] = value
                clauses.append(f"{self._col(logical)} = :{logical}")

        if filters.q:
            params["q"] = f"%{escape_like(filters.q)}%"
            clauses.append(
                "("
                f"{self._col('ip_title')} ILIKE :q ESCAPE '\\' "
                f"OR {self._col('owner_inventor_summary')} ILIKE :q ESCAPE '\\' "
                f"OR {self._col('record_id')} ILIKE :q ESCAPE '\\'"
                ")"
            )

        return clauses, params

    @staticmethod
    def _where_sql(clauses: List[str]) -> str:
        return f"WHERE {' AND '.join(clauses)}" if clauses else ""

    def _order_by(self) -> str:
        return f"ORDER BY {self._col('date_registered')} DESC NULLS LAST, {self._col('record_id')} DESC"

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_query(self, filters: RecordFilters, page: PageParams) -> Query:
        clauses, params = self.where_clause(filters)
        params.update(limit=page.limit, offset=page.offset)
        sql = "\n".join(part for part in (
            f"SELECT {self.select_list()}",
            f"FROM {self.table} r",
            self._where_sql(clauses),
            self._order_by(),
            "LIMIT :limit OFFSET :offset",
        ) if part)
        return Query(sql, params, self.table)

    def sample_query(self, size: int = SAMPLE_SIZE) -> Query:
        sql = "\n".join((
            f"SELECT {self.select_list()}",
            f"FROM {self.table} r",
            self._order_by(),
            "LIMIT :limit",
        ))
        return Query(sql, {"limit": size}, self.table)

    def get_query(self, record_id: str) -> Query:
        sql = "\n".join((
            f"SELECT {self.select_list()}",
            f"FROM {self.table} r",
            f"WHERE {self._col('record_id')} = :record_id",
            "LIMIT 1",
        ))
        return Query(sql, {"record_id": record_id}, self.table)

    def exists_query(self, record_id: str) -> Query:
        sql = (
            f"SELECT {self._col('record_id')} FROM {self.table} r "
            f"WHERE {self._col('record_id')} = :record_id LIMIT 1"
        )
        return Query(sql, {"record_id": record_id}, self.table)

    def record_ids_query(self) -> Query:
        """Every stored identifier; the allocator filters them itself"""
        return Query(f"SELECT {self._col('record_id', None)} FROM {self.table}", {}, self.table)

    def asset_list_query(self, filters: RecordFilters, page: PageParams) -> Query:
        """Listing for the dashboard, with per-record gender counts when contributors exist"""
        clauses, params = self.where_clause(filters)
        params.update(limit=page.limit, offset=page.offset)

        select = f"SELECT {self.select_list()}"
        join = ""
        if self.columns.has_contributors:
            c_record = self.columns.contributor_column("record_id")
            c_role = self.columns.contributor_column("role")
            params.update(male="Male", female="Female")
            select += ",\n       COALESCE(g.male_count, 0) AS male_count, COALESCE(g.female_count, 0) AS female_count"
            join = "\n".join((
                "LEFT JOIN (",
                f"    SELECT c.{c_record} AS record_id,",
                f"           SUM(CASE WHEN c.{c_role} = :male THEN 1 ELSE 0 END) AS male_count,",
                f"           SUM(CASE WHEN c.{c_role} = :female THEN 1 ELSE 0 END) AS female_count",
                f"    FROM {self.columns.contributors_table} c",
                f"    GROUP BY c.{c_record}",
                f") g ON g.record_id = {self._col('record_id')}",
            ))

        sql = "\n".join(part for part in (
            select,
            f"FROM {self.table} r",
            join,
            self._where_sql(clauses),
            self._order_by(),
            "LIMIT :limit OFFSET :offset",
        ) if part)
        return Query(sql, params, self.table)

    def stats_queries(self, filters: RecordFilters) -> Dict[str, Query]:
        """Total plus the four grouped breakdowns, all under the same filters"""
        clauses, params = self.where_clause(filters)
        where = self._where_sql(clauses)
        queries: Dict[str, Query] = {
            "total": Query(
                "\n".join(p for p in (f"SELECT COUNT(*) AS total FROM {self.table} r", where) if p),
                dict(params),
                self.table,
            )
        }

        for key, logical in (("by_category", "category"), ("by_status", "status"), ("by_campus", "campus")):
            col = self._col(logical)
            sql = "\n".join(p for p in (
                f"SELECT {col} AS label, COUNT(*) AS value",
                f"FROM {self.table} r",
                where,
                f"GROUP BY {col}",
                "ORDER BY value DESC, label ASC",
            ) if p)
            queries[key] = Query(sql, dict(params), self.table)

        date_col = self._col("date_registered")
        year_where = self._where_sql(clauses + [f"{date_col} IS NOT NULL"])
        queries["by_year"] = Query(
            "\n".join((
                f"SELECT CAST(EXTRACT(YEAR FROM {date_col}) AS INTEGER) AS year, COUNT(*) AS value",
                f"FROM {self.table} r",
                year_where,
                "GROUP BY 1",
                "ORDER BY value DESC, year ASC",
            )),
            dict(params),
            self.table,
        )
        return queries

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert_query(self, record_id: str, values: Mapping[str, Any]) -> Query:
        """INSERT one record; optional fields are written only when their column exists"""
        columns = [self._col("record_id", None)]
        placeholders = [":record_id"]
        params: Dict[str, Any] = {"record_id": record_id}

        for logical, physical in self.columns.record_fields:
            if logical == "record_id":
                continue
            columns.append(physical)
            placeholders.append(f":{logical}")
            params[logical] = values.get(logical)

        sql = "\n".join((
            f"INSERT INTO {self.table} ({', '.join(columns)})",
            f"VALUES ({', '.join(placeholders)})",
            f"RETURNING {self.select_list(None)}",
        ))
        return Query(sql, params, self.table)

    def update_query(self, record_id: str, changes: Mapping[str, Any]) -> Query:
        """
        Partial UPDATE. Fields that are absent, None, immutable or bound to a
        missing optional column are skipped. An empty string clears an
        optional column. Raises NoFieldsToUpdateError if nothing remains.
        """
        assignments: List[str] = []
        params: Dict[str, Any] = {}

        for logical, value in changes.items():
            if logical == "record_id" or value is None:
                continue
            if logical in OPTIONAL_RECORD_COLUMNS:
                if not self.columns.has_optional(logical):
                    continue
                if value == "":
                    value = None
            physical = self.columns.record_column(logical)
            if physical is None:
                continue
            params[f"set_{logical}"] = value
            assignments.append(f"{physical} = :set_{logical}")

        if not assignments:
            raise NoFieldsToUpdateError()

        params["record_id"] = record_id
        sql = "\n".join((
            f"UPDATE {self.table}",
            f"SET {', '.join(assignments)}",
            f"WHERE {self._col('record_id', None)} = :record_id",
            f"RETURNING {self.select_list(None)}",
        ))
        return Query(sql, params, self.table)

    def delete_query(self, record_id: str) -> Query:
        sql = "\n".join((
            f"DELETE FROM {self.table}",
            f"WHERE {self._col('record_id', None)} = :record_id",
            f"RETURNING {self.select_list(None)}",
        ))
        return Query(sql, {"record_id": record_id}, self.table)


class ContributorQueryBuilder:
    """Statements against the contributor table"""

    def __init__(self, columns: ColumnMap):
        self.columns = columns
        self.table = columns.contributors_table

    def _require_table(self) -> None:
        if not self.columns.has_contributors:
            raise ContributorsUnavailableError(self.table)

    def _col(self, logical: str, alias: Optional[str] = "c") -> str:
        physical = self.columns.contributor_column(logical)
        return f"{alias}.{physical}" if alias else physical

    def select_list(self, alias: Optional[str] = "c") -> str:
        prefix = f"{alias}." if alias else ""
        return ", ".join(
            f"{prefix}{physical} AS {logical}" for logical, physical in self.columns.contributor_fields
        )

    def list_query(self, filters: ContributorFilters, page: PageParams) -> Query:
        self._require_table()
        clauses: List[str] = []
        params: Dict[str, Any] = {}

        if filters.record_id:
            params["record_id"] = filters.record_id
            clauses.append(f"{self._col('record_id')} = :record_id")
        if filters.role:
            params["role"] = filters.role
            clauses.append(f"{self._col('role')} = :role")
        if filters.q:
            params["q"] = f"%{escape_like(filters.q)}%"
            clauses.append(f"{self._col('contributor_name')} ILIKE :q ESCAPE '\\'")

        params.update(limit=page.limit, offset=page.offset)
        sql = "\n".join(part for part in (
            f"SELECT {self.select_list()}",
            f"FROM {self.table} c",
            f"WHERE {' AND '.join(clauses)}" if clauses else "",
            f"ORDER BY {self._col('contributor_id')} ASC",
            "LIMIT :limit OFFSET :offset",
        ) if part)
        return Query(sql, params, self.table)

    def insert_query(self, record_id: str, contributor_name: str, role: Optional[str]) -> Query:
        self._require_table()
        sql = "\n".join((
            f"INSERT INTO {self.table} ({self._col('record_id', None)}, "
            f"{self._col('contributor_name', None)}, {self._col('role', None)})",
            "VALUES (:record_id, :contributor_name, :role)",
            f"RETURNING {self.select_list(None)}",
        ))
        return Query(sql, {"record_id": record_id, "contributor_name": contributor_name, "role": role}, self.table)

    def delete_for_record_query(self, record_id: str) -> Query:
        self._require_table()
        return Query(
            f"DELETE FROM {self.table} WHERE {self._col('record_id', None)} = :record_id",
            {"record_id": record_id},
            self.table,
        )

    def gender_stats_query(self) -> Query:
        self._require_table()
        role = self._col("role")
        sql = "\n".join((
            f"SELECT {role} AS gender,",
            "       COUNT(*) AS contributor_count,",
            f"       COUNT(DISTINCT {self._col('record_id')}) AS unique_ip_records",
            f"FROM {self.table} c",
            f"GROUP BY {role}",
            "ORDER BY contributor_count DESC, gender ASC",
        ))
        return Query(sql, {}, self.table)

    def gender_by_category_query(self) -> Query:
        self._require_table()
        records = self.columns.records_table
        category = f"r.{self.columns.record_column('category')}"
        role = self._col("role")
        sql = "\n".join((
            f"SELECT {category} AS category, {role} AS gender, COUNT(*) AS contributor_count",
            f"FROM {records} r",
            f"JOIN {self.table} c ON {self._col('record_id')} = r.{self.columns.record_column('record_id')}",
            f"GROUP BY {category}, {role}",
            f"ORDER BY {category}, {role}",
        ))
        return Query(sql, {}, self.table)
