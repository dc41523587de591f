"""
Health check endpoints for scoresync.
"""

import time
from typing import Any

from fastapi import APIRouter, Request

from ...core.config.settings import settings
from ...core.logging.logger import get_app_logger
from ...persistence.redis.redis_manager import RedisManager

logger = get_app_logger()
router = APIRouter(tags=["Health"])

SYNCED = "CONNECTED & SYNCED"
LOCAL_MODE = "LOCAL MODE"


@router.get("/health")
async def health_check() -> dict[str, Any]:
    """
    Basic health check endpoint.

    Returns application status, environment information, and response time.
    """
    start_time = time.time()
    response_time = time.time() - start_time

    return {
        "status": "healthy",
        "timestamp": time.time(),
        "response_time_ms": round(response_time * 1000, 2),
        "environment": {
            "environment": settings.environment,
            "version": settings.version,
            "log_level": settings.log_level,
        },
    }


@router.get("/health/detailed")
async def detailed_health_check(request: Request) -> dict[str, Any]:
    """
    Detailed health check with storage tier status.

    The service stays up when the remote store is down; it reports LOCAL MODE
    and mutations are kept in the local cache until the store is back.
    """
    start_time = time.time()

    store = getattr(request.app.state, "store", None)
    cache = getattr(request.app.state, "cache", None)
    store_reachable = bool(store is not None and await store.ping())

    response_time = time.time() - start_time

    detailed_data: dict[str, Any] = {
        "status": "healthy" if store_reachable else "degraded",
        "mode": SYNCED if store_reachable else LOCAL_MODE,
        "timestamp": time.time(),
        "response_time_ms": round(response_time * 1000, 2),
        "application": {
            "name": "scoresync",
            "version": settings.version,
            "environment": settings.environment,
            "is_development": settings.is_development,
        },
        "configuration": {
            "time_zone": settings.time_zone,
            "cooldown_seconds": settings.cooldown_seconds,
            "point_total": settings.point_total,
            "history_limit": settings.history_limit,
        },
        "storage": {
            "remote": {
                "backend": store.name if store is not None else None,
                "reachable": store_reachable,
            },
            "local": {"backend": cache.name if cache is not None else None},
        },
    }

    if settings.remote_store == "redis":
        detailed_data["storage"]["redis"] = await RedisManager.get_health_status()

    logger.info(f"Detailed health check completed - {detailed_data['mode']}")
    return detailed_data
