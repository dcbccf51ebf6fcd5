"""
Shared async Redis connection.
Redis backs rate limiting, alert cooldowns and worker heartbeats. None of these
may block lead processing, so every caller treats Redis errors as soft failures.
"""
import logging
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

KEY_PREFIX = "rateunlock"

# Redis client (lazily initialized)
_redis_client = None


async def get_redis():
    """Get or create Redis connection."""
    global _redis_client
    if _redis_client is None:
        import redis.asyncio as aioredis
        from rateunlock.config import get_settings
        _redis_client = aioredis.from_url(
            get_settings().redis_url,
            decode_responses=True,
        )
    return _redis_client


async def record_heartbeat(worker_name: str, ttl_seconds: int = 300) -> None:
    """Store a worker heartbeat timestamp in Redis."""
    try:
        redis = await get_redis()
        await redis.set(
            f"{KEY_PREFIX}:worker_health:{worker_name}",
            datetime.now(timezone.utc).isoformat(),
            ex=ttl_seconds,
        )
    except Exception as e:
        logger.debug("Heartbeat write failed for %s: %s", worker_name, str(e))
