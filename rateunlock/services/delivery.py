"""
Lender webhook delivery.

Every routed lead gets a LeadDelivery outbox row, written in the routing
transaction. The lead submission makes one inline attempt after the routing
commit; the delivery worker retries the rest with exponential backoff.

Retry schedule: 1min, 5min, 15min, 1hr, 4hr. After max_attempts the row is
marked dead and an alert fires.
"""
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from rateunlock.models.event_log import EventLog
from rateunlock.models.lead_delivery import LeadDelivery
from rateunlock.utils.alerting import send_alert, AlertType
from rateunlock.utils.logging import get_correlation_id
from rateunlock.utils.webhook_signatures import sign_payload, SIGNATURE_HEADER

logger = logging.getLogger(__name__)

EVENT_HEADER = "X-RateUnlock-Event"
DELIVERY_HEADER = "X-RateUnlock-Delivery"
USER_AGENT = "RateUnlock-Webhooks/1.0"
LEAD_EVENT = "lead.new"

# Backoff schedule in minutes, indexed by attempt number (0-based)
RETRY_DELAYS_MINUTES = [1, 5, 15, 60, 240]

# Outcome reported back to the lead submitter
DELIVERY_STATUS_DELIVERED = "delivered"
DELIVERY_STATUS_PENDING = "pending"
DELIVERY_STATUS_FAILED = "failed"
DELIVERY_STATUS_NONE = "none"


def _number(value):
    return float(value) if value is not None else None


def build_envelope(lead, lender) -> dict:
    """Build the JSON body POSTed to a lender's webhook."""
    return {
        "event": LEAD_EVENT,
        "lead": {
            "id": str(lead.id),
            "email": lead.email,
            "phone": lead.phone,
            "firstName": lead.first_name,
            "lastName": lead.last_name,
            "homePrice": _number(lead.home_price),
            "loanAmount": _number(lead.loan_amount),
            "downPayment": _number(lead.down_payment),
            "creditScore": lead.credit_score,
            "propertyType": lead.property_type,
            "propertyUse": lead.property_use,
            "state": lead.state,
            "zipCode": lead.zip_code,
            "loanType": lead.loan_type,
            "loanTerm": lead.loan_term,
            "quality": lead.quality,
            "qualityScore": lead.quality_score,
            "bidAmount": _number(lender.bid_amount),
            "createdAt": lead.created_at.isoformat() if lead.created_at else None,
        },
    }


def first_attempt_at(inline: bool, timeout_seconds: float) -> datetime:
    """
    When the worker may first pick up a new outbox row.
    With inline delivery the request owns the first attempt, so the row stays
    out of the worker's reach until that POST has timed out and the first
    retry delay has passed.
    """
    now = datetime.now(timezone.utc)
    if not inline:
        return now
    return now + timedelta(seconds=timeout_seconds) + next_retry_delay(1)


def enqueue_delivery(db: AsyncSession, lead, lender) -> Optional[LeadDelivery]:
    """
    Add an outbox row for a routed lead. Caller owns the transaction.
    Lenders without a webhook URL get no row.
    """
    if not lender.webhook_url:
        logger.info(
            "Lender %s has no webhook_url, skipping delivery for lead %s",
            str(lender.id)[:8], str(lead.id)[:8],
        )
        return None

    from rateunlock.config import get_settings
    settings = get_settings()
    delivery = LeadDelivery(
        lead_id=lead.id,
        lender_id=lender.id,
        url=lender.webhook_url,
        payload=build_envelope(lead, lender),
        status="pending",
        attempts=0,
        max_attempts=settings.webhook_max_attempts,
        next_attempt_at=first_attempt_at(settings.webhook_inline_delivery, settings.webhook_timeout_seconds),
        correlation_id=get_correlation_id(),
    )
    db.add(delivery)
    return delivery


def next_retry_delay(attempts: int) -> timedelta:
    """Backoff delay after the given number of failed attempts (1-based)."""
    index = min(max(attempts - 1, 0), len(RETRY_DELAYS_MINUTES) - 1)
    return timedelta(minutes=RETRY_DELAYS_MINUTES[index])


def _build_headers(delivery: LeadDelivery, body: bytes) -> dict:
    from rateunlock.config import get_settings
    headers = {
        "Content-Type": "application/json",
        "User-Agent": USER_AGENT,
        EVENT_HEADER: (delivery.payload or {}).get("event", LEAD_EVENT),
        DELIVERY_HEADER: str(delivery.id),
    }
    signing_key = get_settings().webhook_signing_key
    if signing_key:
        headers[SIGNATURE_HEADER] = sign_payload(signing_key, body)
    return headers


async def attempt_delivery(db: AsyncSession, delivery: LeadDelivery) -> str:
    """
    POST the stored envelope once and record the outcome on the outbox row.
    Never raises for HTTP or network failures. Caller commits.

    Returns the row status after the attempt: delivered, pending or dead.
    """
    from rateunlock.config import get_settings
    settings = get_settings()

    body = json.dumps(delivery.payload, separators=(",", ":"), default=str).encode("utf-8")
    headers = _build_headers(delivery, body)
    now = datetime.now(timezone.utc)
    delivery.attempts = (delivery.attempts or 0) + 1

    error: Optional[str] = None
    try:
        async with httpx.AsyncClient(timeout=settings.webhook_timeout_seconds) as client:
            response = await client.post(delivery.url, content=body, headers=headers)
        delivery.last_status_code = response.status_code
        if 200 <= response.status_code < 300:
            delivery.status = "delivered"
            delivery.delivered_at = now
            delivery.next_attempt_at = None
            delivery.last_error = None
            db.add(EventLog(
                lead_id=delivery.lead_id,
                action="webhook_delivered",
                status="success",
                message=f"Lead delivered to lender {str(delivery.lender_id)[:8]}",
                data={"delivery_id": str(delivery.id), "attempts": delivery.attempts},
                correlation_id=delivery.correlation_id,
            ))
            logger.info(
                "Lead %s delivered to lender %s (attempt %d)",
                str(delivery.lead_id)[:8], str(delivery.lender_id)[:8], delivery.attempts,
            )
            return delivery.status
        error = f"HTTP {response.status_code}"
    except httpx.HTTPError as e:
        error = f"{type(e).__name__}: {str(e)}"

    delivery.last_error = error[:1000]
    logger.warning(
        "Webhook delivery %s failed (attempt %d/%d): %s",
        str(delivery.id)[:8], delivery.attempts, delivery.max_attempts, error,
    )

    if delivery.attempts >= delivery.max_attempts:
        delivery.status = "dead"
        delivery.next_attempt_at = None
        db.add(EventLog(
            lead_id=delivery.lead_id,
            action="webhook_failed",
            status="failure",
            message=f"Delivery exhausted after {delivery.attempts} attempts",
            error_message=delivery.last_error,
            data={"delivery_id": str(delivery.id), "url": delivery.url},
            correlation_id=delivery.correlation_id,
        ))
        await send_alert(
            AlertType.LENDER_WEBHOOK_DEAD,
            f"Lead {str(delivery.lead_id)[:8]} could not be delivered to lender "
            f"{str(delivery.lender_id)[:8]} after {delivery.attempts} attempts: {error}",
            correlation_id=delivery.correlation_id,
            extra={"delivery_id": str(delivery.id)},
        )
        return delivery.status

    delivery.status = "pending"
    delivery.next_attempt_at = now + next_retry_delay(delivery.attempts)
    return delivery.status


def delivery_status_for_response(status: Optional[str], attempted: bool = False) -> str:
    """
    Map an outbox row status onto the deliveryStatus reported to the submitter.

    "pending" means no attempt has been made yet. A row that is still pending
    after an attempt failed, and the worker will retry it.
    """
    if status is None:
        return DELIVERY_STATUS_NONE
    if status == "delivered":
        return DELIVERY_STATUS_DELIVERED
    if status == "dead" or attempted:
        return DELIVERY_STATUS_FAILED
    return DELIVERY_STATUS_PENDING
