"""
FastAPI application factory.

Run with ``uvicorn estoque.api.main:app`` or ``python -m estoque.api.main``.
The schema is migrated before the first request is served; a database whose
ledger guards are missing stops startup instead of accepting writes.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from estoque.api.middleware import ErrorHandlerMiddleware, LoggingMiddleware
from estoque.api.middleware.error_handler import setup_exception_handlers
from estoque.api.routes import (
    allocations_router,
    health_router,
    materials_router,
    reports_router,
    serials_router,
)
from estoque.config import configure_logging, get_logger, get_settings
from estoque.core.exceptions import ConfigurationError
from estoque.infrastructure.storage.sqlite import close_pool, get_pool
from estoque.infrastructure.storage.sqlite.migrations import run_migrations

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Migrate and open the pool on startup; close the pool on shutdown."""
    settings = get_settings()
    logger.info(
        "application_starting",
        environment=settings.environment,
        db_path=str(settings.storage.db_path),
    )

    try:
        results = await run_migrations()
    except ConfigurationError as e:
        logger.error("database_refused", error_code=e.code, error=e.message, details=e.details)
        raise

    failed = [r for r in results if not r.success]
    if failed:
        raise ConfigurationError(
            f"Migration v{failed[0].version} failed: {failed[0].error}",
            code="MIGRATION_FAILED",
        )
    logger.info("database_ready", applied=[r.version for r in results])

    await get_pool()
    logger.info("application_started")

    yield

    await close_pool()
    logger.info("application_stopped")


def create_app() -> FastAPI:
    """Build the application with middleware, error handlers and routers."""
    settings = get_settings()
    configure_logging()

    app = FastAPI(
        title=settings.app_name,
        description="Material lifecycle, event allocations and the append-only movement ledger",
        version=settings.app_version,
        docs_url="/docs" if settings.api.debug else None,
        redoc_url="/redoc" if settings.api.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(LoggingMiddleware)

    if settings.api.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.api.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=["X-Request-ID", "X-Response-Time", "Retry-After"],
        )

    setup_exception_handlers(app)

    for router in (health_router, materials_router, serials_router, allocations_router, reports_router):
        app.include_router(router)

    @app.get("/")
    async def root() -> dict[str, str]:
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "materiais": "/api/estoque/materiais",
            "health": "/api/health",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "estoque.api.main:app",
        host=settings.api.host,
        port=settings.api.port,
        reload=settings.api.debug,
    )
