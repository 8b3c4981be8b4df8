"""
Health check endpoints.
"""

import time

import aiosqlite
from fastapi import APIRouter

from estoque.application.dto.responses import (
    HealthResponse,
    ProviderHealthResponse,
    SchemaGuardResponse,
)
from estoque.config import get_logger, get_settings
from estoque.infrastructure.storage.sqlite import get_pool
from estoque.infrastructure.storage.sqlite.migrations import check_guards

logger = get_logger(__name__)

router = APIRouter(prefix="/api/health", tags=["health"])

_start_time = time.time()


def _uptime() -> float:
    return time.time() - _start_time


@router.get("", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Liveness: the process answers."""
    return HealthResponse(
        status="healthy",
        version=get_settings().app_version,
        uptime_seconds=_uptime(),
    )


@router.get("/db", response_model=HealthResponse)
async def db_health() -> HealthResponse:
    """
    Database readiness.

    Reports SQLite latency, the applied schema version and whether the
    append-only triggers and the open-allocation index are in place. A
    reachable database without those guards is ``degraded``: writes would
    succeed but the ledger could be edited.
    """
    guards: list[SchemaGuardResponse] = []
    schema_version = None

    try:
        pool = await get_pool()
        start = time.perf_counter()
        async with pool.acquire() as conn:
            await conn.execute("SELECT 1")
            latency = (time.perf_counter() - start) * 1000

            guards = [SchemaGuardResponse.model_validate(c) for c in await check_guards(conn)]
            if all(g.passed for g in guards):
                cursor = await conn.execute("SELECT MAX(version) FROM schema_migrations")
                schema_version = (await cursor.fetchone())[0]

        database = ProviderHealthResponse(name="sqlite", available=True, latency_ms=latency)
    except (aiosqlite.Error, OSError) as e:
        logger.warning("db_health_failed", error=str(e))
        database = ProviderHealthResponse(name="sqlite", available=False, error=str(e))

    if not database.available:
        status = "unhealthy"
    elif all(g.passed for g in guards):
        status = "healthy"
    else:
        status = "degraded"

    return HealthResponse(
        status=status,
        version=get_settings().app_version,
        uptime_seconds=_uptime(),
        database=database,
        schema_version=schema_version,
        guards=guards,
    )
