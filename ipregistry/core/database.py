from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from ipregistry.core.config import settings

# Created on first use so importing the app never opens a connection
_engine: Optional[AsyncEngine] = None


def _connect_args() -> Dict[str, Any]:
    """asyncpg server settings: tag the connection and resolve unqualified table names in DB_SCHEMA"""
    server_settings = {"application_name": settings.APP_NAME.lower().replace(" ", "-")}
    if settings.DB_SCHEMA != "public":
        server_settings["search_path"] = settings.DB_SCHEMA
    return {"server_settings": server_settings}


def get_engine() -> AsyncEngine:
    """
    Get or create the process-wide engine.

    Development runs without a pool for simpler debugging. Everywhere else
    uses a QueuePool sized by DB_POOL_SIZE / DB_MAX_OVERFLOW, with
    pre-ping so connections dropped by PostgreSQL are replaced transparently.
    """
    global _engine
    if _engine is not None:
        return _engine

    options: Dict[str, Any] = {
        "echo": settings.DB_ECHO,
        "connect_args": _connect_args(),
    }
    if settings.DEBUG or settings.ENVIRONMENT == "development":
        options["poolclass"] = NullPool
    else:
        options.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            pool_recycle=settings.DB_POOL_RECYCLE,
            pool_pre_ping=True,
        )

    _engine = create_async_engine(settings.async_database_url, **options)
    return _engine


async def close_db() -> None:
    """Dispose the engine; the next get_engine() call builds a new one"""
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None
