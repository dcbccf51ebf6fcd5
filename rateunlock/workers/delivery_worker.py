"""
Delivery worker - retries lender webhooks from the lead_deliveries outbox.
Runs every 30 seconds, picks the oldest pending deliveries where next_attempt_at <= now.
"""
import asyncio
import logging
from datetime import datetime, timezone

from sqlalchemy import select

from rateunlock.utils.redis_client import record_heartbeat

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 30
BATCH_SIZE = 20
WORKER_NAME = "delivery_worker"


async def run_delivery_worker():
    """Main delivery worker loop. Runs continuously."""
    logger.info("Delivery worker started")

    while True:
        try:
            processed = await process_due_deliveries()
            if processed > 0:
                logger.info("Delivery worker attempted %d deliveries", processed)
        except Exception as e:
            logger.error("Delivery worker error: %s", str(e), exc_info=True)
            from rateunlock.utils.alerting import send_alert, AlertType
            await send_alert(AlertType.DELIVERY_WORKER_ERROR, f"Delivery worker cycle failed: {str(e)}")

        await record_heartbeat(WORKER_NAME)
        await asyncio.sleep(POLL_INTERVAL_SECONDS)


async def process_due_deliveries(batch_size: int = BATCH_SIZE) -> int:
    """Attempt every pending delivery that is due. Returns count attempted."""
    from rateunlock.database import async_session_factory
    from rateunlock.models.lead_delivery import LeadDelivery
    from rateunlock.services.delivery import attempt_delivery

    now = datetime.now(timezone.utc)
    processed = 0

    async with async_session_factory() as db:
        result = await db.execute(
            select(LeadDelivery)
            .where(
                LeadDelivery.status == "pending",
                LeadDelivery.next_attempt_at <= now,
            )
            .order_by(LeadDelivery.next_attempt_at)
            .limit(batch_size)
            .with_for_update(skip_locked=True)
        )
        deliveries = result.scalars().all()

        for delivery in deliveries:
            status = await attempt_delivery(db, delivery)
            processed += 1
            if status == "dead":
                logger.error(
                    "Delivery %s for lead %s is dead after %d attempts",
                    str(delivery.id)[:8], str(delivery.lead_id)[:8], delivery.attempts,
                )

        await db.commit()

    return processed
