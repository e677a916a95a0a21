"""
Record identifier allocation.

Identifiers look like ``KTTM-21`` (or ``KTTM-021`` with zero padding). The
next number is max(existing numeric suffix) + 1, computed while holding a
transaction-scoped lock so concurrent allocations never see the same base
state. Historic rows are dirty (mixed case, stray spaces, other series), so
the scan trims, matches case-insensitively and ignores anything that does
not look like PREFIX + digits.
"""

import re
from typing import Iterable, Optional, Pattern

from sqlalchemy.ext.asyncio import AsyncEngine

from ipregistry.core.config import settings
from ipregistry.core.logging_config import logger
from ipregistry.db.schema import ColumnMap
from ipregistry.db.unit_of_work import UnitOfWork
from ipregistry.services.query_builder import RecordQueryBuilder


def format_record_id(number: int, prefix: str = "KTTM-", pad: int = 0) -> str:
    """
    >>> format_record_id(21)
    'KTTM-21'
    >>> format_record_id(21, pad=3)
    'KTTM-021'
    """
    if pad <= 0:
        return f"{prefix}{number}"
    return f"{prefix}{str(number).zfill(pad)}"


def record_id_pattern(prefix: str) -> Pattern[str]:
    return re.compile(rf"^{re.escape(prefix)}([0-9]+)$", re.IGNORECASE)


def compute_next_number(record_ids: Iterable[Optional[str]], prefix: str = "KTTM-") -> int:
    """max(matching suffixes) + 1, or 1 when nothing matches"""
    pattern = record_id_pattern(prefix)
    highest = 0
    for record_id in record_ids:
        if record_id is None:
            continue
        match = pattern.match(str(record_id).strip())
        if match:
            highest = max(highest, int(match.group(1)))
    return highest + 1


class RecordIdAllocator:
    """Issues record identifiers under the shared allocation lock"""

    def __init__(
        self,
        columns: ColumnMap,
        prefix: str = settings.RECORD_PREFIX,
        pad: int = settings.RECORD_PAD,
        lock_key: str = settings.RECORD_ID_LOCK_KEY,
    ):
        self.columns = columns
        self.prefix = prefix
        self.pad = pad
        self.lock_key = lock_key
        self.queries = RecordQueryBuilder(columns)

    def format(self, number: int) -> str:
        return format_record_id(number, self.prefix, self.pad)

    async def next_number(self, uow: UnitOfWork) -> int:
        """Lock, then scan. Must run inside an open UnitOfWork."""
        await uow.acquire_lock(self.lock_key)
        result = await uow.execute(self.queries.record_ids_query())
        return compute_next_number(result.scalars().all(), self.prefix)

    async def allocate_next_id(self, uow: UnitOfWork) -> str:
        """
        Candidate identifier for an insert in the same transaction.

        Safe to call repeatedly inside a retry loop: the lock is taken once
        and held until the transaction ends.
        """
        return self.format(await self.next_number(uow))

    async def preview_next_id(self, engine: AsyncEngine) -> str:
        """What allocate_next_id would return right now; never persists anything"""
        async with engine.connect() as conn:
            async with UnitOfWork(conn, read_only=True) as uow:
                record_id = await self.allocate_next_id(uow)
        logger.debug(f"Previewed next record id {record_id}")
        return record_id
