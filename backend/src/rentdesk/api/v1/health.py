"""Health check endpoints for liveness and readiness probes."""
from datetime import datetime

import structlog
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from redis import asyncio as aioredis
from sqlalchemy import text

from rentdesk.config import settings
from rentdesk.database import engine

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/health", status_code=status.HTTP_200_OK, tags=["Health"])
async def health_check() -> dict[str, str]:
    """
    Liveness probe.

    Returns basic health status if the process is running. Does not check
    external dependencies.
    """
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "version": "0.1.0",
    }


@router.get("/health/ready", tags=["Health"])
async def readiness_check() -> JSONResponse:
    """
    Readiness probe.

    The database is required to accept notifications. Redis only backs the
    background workers, so an unreachable Redis is reported but does not
    fail readiness.
    """
    checks = {
        "database": "unknown",
        "redis": "unknown",
    }
    ready = True

    # Check database connectivity
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "connected"
    except Exception as exc:
        logger.error("database_health_check_failed", error=str(exc))
        checks["database"] = "disconnected"
        ready = False

    # Check Redis connectivity
    try:
        redis_client = aioredis.from_url(str(settings.arq_redis_url), encoding="utf-8", decode_responses=True)
        await redis_client.ping()
        checks["redis"] = "connected"
        await redis_client.aclose()
    except Exception as exc:
        logger.warning("redis_health_check_failed", error=str(exc))
        checks["redis"] = "disconnected"

    status_code = status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE

    return JSONResponse(
        status_code=status_code,
        content={
            "ready": ready,
            "checks": checks,
            "timestamp": datetime.utcnow().isoformat(),
        },
    )
