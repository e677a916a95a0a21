"""
Transaction helpers shared by the registry services.

``UnitOfWork`` wraps one connection-level transaction: it commits on a clean
exit, rolls back on error, exposes savepoints for partial rollback and hands
out the transaction-scoped named lock used by the record-id allocator.
"""

import asyncio
import time
import weakref
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional, Set

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from ipregistry.core.logging_config import logger


UNIQUE_VIOLATION = "23505"

ADVISORY_LOCK_SQL = "SELECT pg_advisory_xact_lock(hashtext(:key))"

# Stores without advisory locks get a per-event-loop mutex instead.
# Only valid for a single writer process.
_local_locks: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, Dict[str, asyncio.Lock]]" = (
    weakref.WeakKeyDictionary()
)


def is_unique_violation(exc: BaseException) -> bool:
    """True when a driver error carries SQLSTATE 23505 (unique_violation)"""
    orig = getattr(exc, "orig", None) or exc
    for candidate in (orig, orig.__cause__):
        if candidate is None:
            continue
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code == UNIQUE_VIOLATION:
            return True
    return False


def _local_lock(key: str) -> asyncio.Lock:
    loop = asyncio.get_running_loop()
    locks = _local_locks.setdefault(loop, {})
    if key not in locks:
        locks[key] = asyncio.Lock()
    return locks[key]


class UnitOfWork:
    """
    One transaction on one connection.

    Usage:
        async with engine.connect() as conn:
            async with UnitOfWork(conn) as uow:
                await uow.acquire_lock("some-key")
                await uow.execute(query)

    A ``read_only`` unit of work always rolls back, so nothing it did persists.
    """

    def __init__(self, conn: AsyncConnection, read_only: bool = False):
        self.conn = conn
        self.read_only = read_only
        self._transaction = None
        self._held_keys: Set[str] = set()
        self._local_held: List[asyncio.Lock] = []

    async def __aenter__(self) -> "UnitOfWork":
        self._transaction = await self.conn.begin()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        try:
            if exc_type is None and not self.read_only:
                await self._transaction.commit()
            else:
                await self._rollback(original_error=exc_type is not None)
        finally:
            self._release_local_locks()
        return False

    async def _rollback(self, original_error: bool) -> None:
        try:
            await self._transaction.rollback()
        except Exception:
            if not original_error:
                raise
            # The original error is what the caller needs to see
            logger.warning("Rollback failed while handling an earlier error", exc_info=True)

    def _release_local_locks(self) -> None:
        while self._local_held:
            self._local_held.pop().release()
        self._held_keys.clear()

    async def execute(self, query) -> Any:
        """Run a built Query(sql, params) inside this transaction"""
        start = time.perf_counter()
        result = await self.conn.execute(text(query.sql), query.params)
        logger.log_db_query(
            query.sql.split(None, 1)[0].upper(),
            getattr(query, "table", "-"),
            (time.perf_counter() - start) * 1000,
            rows_affected=getattr(result, "rowcount", 0) or 0,
        )
        return result

    @asynccontextmanager
    async def savepoint(self):
        """Nested transaction; an error inside rolls back only to this point"""
        nested = await self.conn.begin_nested()
        try:
            yield self
        except BaseException:
            try:
                await nested.rollback()
            except Exception:
                logger.warning("Savepoint rollback failed", exc_info=True)
            raise
        else:
            await nested.commit()

    async def acquire_lock(self, key: str) -> None:
        """
        Take the named lock for the rest of this transaction.

        PostgreSQL uses pg_advisory_xact_lock, released by commit or rollback.
        Other dialects fall back to an in-process mutex released in __aexit__.
        Re-acquiring a key already held by this transaction is a no-op.
        """
        if key in self._held_keys:
            return
        if self.conn.dialect.name == "postgresql":
            await self.conn.execute(text(ADVISORY_LOCK_SQL), {"key": key})
        else:
            lock = _local_lock(key)
            await lock.acquire()
            self._local_held.append(lock)
        self._held_keys.add(key)


async def fetch_all(engine: AsyncEngine, query) -> List[Dict[str, Any]]:
    """Run a read-only Query on its own pooled connection"""
    async with engine.connect() as conn:
        start = time.perf_counter()
        result = await conn.execute(text(query.sql), query.params)
        rows = [dict(row) for row in result.mappings().all()]
        logger.log_db_query(
            "SELECT",
            getattr(query, "table", "-"),
            (time.perf_counter() - start) * 1000,
            rows_affected=len(rows),
        )
        return rows


async def fetch_one(engine: AsyncEngine, query) -> Optional[Dict[str, Any]]:
    rows = await fetch_all(engine, query)
    return rows[0] if rows else None
