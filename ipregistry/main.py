from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from ipregistry.core.config import settings
from ipregistry.core.database import get_engine, close_db
from ipregistry.core.exceptions import ConfigurationError, RegistryError, error_response
from ipregistry.core.logging_config import logger
from ipregistry.core.middleware import RequestLoggingMiddleware
from ipregistry.api.v1.router import api_router
from ipregistry.db.schema import introspect_schema
from ipregistry.services.id_allocator import format_record_id
from ipregistry.services.registry import build_registry


async def validate_critical_config():
    """Validate critical configuration at startup - fail fast if missing"""
    errors = []
    warnings = []

    if not settings.DATABASE_URL:
        errors.append("DATABASE_URL is not set")

    if "*" in settings.CORS_ORIGINS:
        warnings.append("CORS allows every origin")

    if errors:
        for err in errors:
            logger.critical(f"[Startup] CRITICAL: {err}")
        raise ConfigurationError(f"Missing critical configuration: {', '.join(errors)}")

    for warn in warnings:
        logger.warning(f"[Startup] WARNING: {warn}")

    logger.info("[Startup] ✓ Critical configuration validated")
    return True


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Validate configuration, introspect the schema once, build the services"""
    logger.info("=" * 60)
    logger.info(f"Starting {settings.APP_NAME}...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info("=" * 60)

    await validate_critical_config()

    engine = get_engine()
    try:
        column_map = await introspect_schema(
            engine,
            schema=settings.DB_SCHEMA,
            records_table=settings.RECORDS_TABLE,
            contributors_table=settings.CONTRIBUTORS_TABLE,
        )
    except ConfigurationError as e:
        logger.critical(f"[Startup] CRITICAL: {e.message}", extra={"details": e.details})
        await close_db()
        raise

    logger.info(
        f"[Startup] Record id format: {format_record_id(21, settings.RECORD_PREFIX, settings.RECORD_PAD)}"
    )
    app.state.registry = build_registry(engine, column_map)

    yield

    logger.info(f"Shutting down {settings.APP_NAME}...")
    await close_db()


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        description="Registry of institutional intellectual-property records",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
        redirect_slashes=False
    )

    # Middleware (order matters - last added runs first)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials="*" not in settings.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Response-Time"],
    )

    @app.exception_handler(RegistryError)
    async def registry_exception_handler(request: Request, exc: RegistryError):
        if exc.status_code >= 500:
            logger.log_error_with_context(exc, context=f"{request.method} {request.url.path}")
        else:
            logger.warning(f"{exc.code}: {exc.message}", extra={"error_code": exc.code})
        return JSONResponse(status_code=exc.status_code, content=error_response(exc))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body") or None
        return JSONResponse(
            status_code=400,
            content={
                "ok": False,
                "error": {
                    "code": "VALIDATION_ERROR",
                    "message": first.get("msg", "Invalid request"),
                    "details": {"field": field},
                },
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Global exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "ok": False,
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": str(exc) if settings.DEBUG else "Internal server error",
                    "details": {},
                },
            },
        )

    @app.get("/", tags=["Root"])
    async def root():
        return {
            "message": f"Welcome to {settings.APP_NAME}",
            "version": "1.0.0",
            "docs": "/docs",
            "health": "/api/health"
        }

    app.include_router(api_router, prefix="/api")
    return app


app = create_app()
