"""
Health and catalogue endpoints
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from ipregistry.api.deps import get_registry
from ipregistry.core.config import settings
from ipregistry.core.logging_config import logger
from ipregistry.db.unit_of_work import fetch_all, fetch_one
from ipregistry.services.query_builder import Query
from ipregistry.services.registry import Registry


router = APIRouter(tags=["Health"])

NOW_QUERY = Query("SELECT NOW() AS now", {})
TABLES_QUERY = "SELECT tablename FROM pg_catalog.pg_tables WHERE schemaname = :schema ORDER BY tablename"


@router.get("/health")
async def health(registry: Registry = Depends(get_registry)):
    """Database round trip"""
    try:
        row = await fetch_one(registry.engine, NOW_QUERY)
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"[HealthCheck] Database check failed: {e}")
        return JSONResponse(
            status_code=500,
            content={"ok": False, "error": {"code": "DB_UNAVAILABLE", "message": "DB connection failed", "details": {}}},
        )
    return {"ok": True, "now": row["now"] if row else None}


@router.get("/tables")
async def list_tables(registry: Registry = Depends(get_registry)):
    rows = await fetch_all(registry.engine, Query(TABLES_QUERY, {"schema": settings.DB_SCHEMA}, "pg_tables"))
    return {"ok": True, "tables": [row["tablename"] for row in rows]}
