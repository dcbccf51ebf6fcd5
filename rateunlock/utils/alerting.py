"""
Critical alerting system - sends alerts on important system events.

Alert channels:
1. Structured log (always) - at ERROR level
2. Webhook (configurable) - Discord/Slack URL via ALERT_WEBHOOK_URL env var

Rate limiting: per-type cooldowns stored in Redis to prevent alert storms,
with an in-memory fallback when Redis is unavailable.
"""
import logging
import time
from typing import Optional

import httpx

from rateunlock.utils.redis_client import KEY_PREFIX

logger = logging.getLogger(__name__)

ALERT_COOLDOWN_SECONDS = 300  # 5 minutes (default)

ALERT_COOLDOWN_OVERRIDES: dict[str, int] = {
    "lender_webhook_dead": 900,
}

# In-memory fallback when Redis is down
_local_cooldowns: dict[str, float] = {}  # alert_type -> expiry timestamp


class AlertType:
    """Alert type constants."""
    LEAD_PERSIST_FAILED = "lead_persist_failed"
    LEAD_ROUTING_FAILED = "lead_routing_failed"
    LENDER_WEBHOOK_DEAD = "lender_webhook_dead"
    DELIVERY_WORKER_ERROR = "delivery_worker_error"


def _get_cooldown_seconds(alert_type: str) -> int:
    return ALERT_COOLDOWN_OVERRIDES.get(alert_type, ALERT_COOLDOWN_SECONDS)


async def send_alert(
    alert_type: str,
    message: str,
    correlation_id: Optional[str] = None,
    severity: str = "error",
    extra: Optional[dict] = None,
) -> None:
    """
    Send an alert through all configured channels.
    Rate-limited per alert type to prevent alert storms.
    """
    if not await _acquire_cooldown(alert_type):
        return

    from rateunlock.utils.logging import get_correlation_id
    cid = correlation_id or get_correlation_id()

    log_message = f"ALERT [{alert_type}]: {message}"
    if cid:
        log_message += f" (correlation_id={cid})"

    if severity == "critical":
        logger.critical(log_message)
    else:
        logger.error(log_message)

    await _send_webhook_alert(alert_type, message, severity, cid, extra)


async def _acquire_cooldown(alert_type: str) -> bool:
    """
    Atomically check-and-set alert cooldown. Returns True if alert should be sent.
    Uses Redis SET NX EX, falling back to an in-memory dict when Redis is unavailable.
    """
    cooldown = _get_cooldown_seconds(alert_type)

    try:
        from rateunlock.utils.redis_client import get_redis
        redis = await get_redis()
        cooldown_key = f"{KEY_PREFIX}:alert_cooldown:{alert_type}"
        acquired = await redis.set(cooldown_key, "1", nx=True, ex=cooldown)
        return bool(acquired)
    except Exception as e:
        logger.debug("Alert cooldown Redis check failed, using in-memory fallback: %s", str(e))
        now = time.monotonic()
        expiry = _local_cooldowns.get(alert_type, 0)
        if now < expiry:
            return False
        _local_cooldowns[alert_type] = now + cooldown
        return True


async def _send_webhook_alert(
    alert_type: str,
    message: str,
    severity: str,
    correlation_id: Optional[str],
    extra: Optional[dict],
) -> None:
    """Send alert to configured webhook (Discord/Slack)."""
    from rateunlock.config import get_settings
    webhook_url = get_settings().alert_webhook_url
    if not webhook_url:
        return

    content = f"[{severity.upper()}] **{alert_type}**\n{message}"
    if correlation_id:
        content += f"\n`correlation_id: {correlation_id}`"
    if extra:
        for key, val in extra.items():
            content += f"\n`{key}: {val}`"

    try:
        async with httpx.AsyncClient(timeout=5.0) as client:
            await client.post(webhook_url, json={"content": content})
    except httpx.HTTPError as e:
        # Alert sending failure should never crash the system
        logger.warning("Failed to send webhook alert: %s", str(e))
