"""
Pagination Utility Module

Lenient limit/offset parsing shared by every listing endpoint. Raw query
values arrive as strings; anything unparseable or below range falls back to
the endpoint default instead of producing an error.
"""
from typing import Any, Optional
from pydantic import BaseModel


# General listing endpoints (records, contributors)
LIST_DEFAULT_LIMIT = 200
LIST_MAX_LIMIT = 2000

# Compatibility listing used by the dashboard
ASSETS_DEFAULT_LIMIT = 2000
ASSETS_MAX_LIMIT = 5000

# Largest value PostgreSQL accepts for OFFSET (bigint)
MAX_OFFSET = 2 ** 63 - 1


def _to_int(raw: Any) -> Optional[int]:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    try:
        return int(str(raw).strip())
    except ValueError:
        return None


def parse_limit(raw: Any, default: int = LIST_DEFAULT_LIMIT, maximum: int = LIST_MAX_LIMIT) -> int:
    """Non-numeric or < 1 -> default; above maximum -> maximum"""
    value = _to_int(raw)
    if value is None or value < 1:
        return default
    return min(value, maximum)


def parse_offset(raw: Any) -> int:
    """Non-numeric, negative or beyond bigint -> 0"""
    value = _to_int(raw)
    if value is None or value < 0 or value > MAX_OFFSET:
        return 0
    return value


class PageParams(BaseModel):
    """Standard limit/offset window"""
    limit: int = LIST_DEFAULT_LIMIT
    offset: int = 0

    @classmethod
    def from_query(
        cls,
        limit: Any = None,
        offset: Any = None,
        default_limit: int = LIST_DEFAULT_LIMIT,
        max_limit: int = LIST_MAX_LIMIT,
    ) -> "PageParams":
        return cls(
            limit=parse_limit(limit, default_limit, max_limit),
            offset=parse_offset(offset),
        )
