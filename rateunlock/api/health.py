"""
Health check endpoints - used by load balancers and monitoring.

- GET /health       - basic liveness (always 200 if app running)
- GET /health/ready - readiness check (DB + Redis + delivery worker heartbeat)
"""
import logging
from datetime import datetime, timezone
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
from rateunlock.database import get_db
from rateunlock.utils.redis_client import KEY_PREFIX

logger = logging.getLogger(__name__)
router = APIRouter(tags=["health"])

VERSION = "1.0.0"


@router.get("/health")
async def health_check():
    """Basic liveness check - returns 200 if the app is running."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": VERSION,
    }


@router.get("/health/ready")
async def readiness_check(
    db: AsyncSession = Depends(get_db),
):
    """
    Readiness check - verifies database and Redis connectivity.
    The worker heartbeat is reported but does not gate readiness.
    """
    checks = {"database": False, "redis": False}
    worker_heartbeat = None

    # Check database
    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = True
    except Exception as e:
        logger.error("Database health check failed: %s", str(e))

    # Check Redis
    try:
        from rateunlock.utils.redis_client import get_redis
        redis = await get_redis()
        await redis.ping()
        checks["redis"] = True
        worker_heartbeat = await redis.get(f"{KEY_PREFIX}:worker_health:delivery_worker")
    except Exception as e:
        logger.warning("Redis health check failed: %s", str(e))

    all_healthy = all(checks.values())
    return {
        "status": "ready" if all_healthy else "degraded",
        "checks": checks,
        "workers": {"delivery_worker": worker_heartbeat},
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
