"""
Lead pipeline - orchestrates one lead submission end to end.

  validate -> score -> persist lead (commit) -> fetch candidates -> match
  -> route (one commit) -> inline webhook attempt -> response

The lead is committed before routing starts, so a routing failure never loses
the lead: the routing transaction is rolled back as a unit, the lead stays
"new" and the submitter is told it was queued.
"""
import logging
import uuid
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from rateunlock.models.event_log import EventLog
from rateunlock.models.lead import Lead
from rateunlock.models.partner import Partner
from rateunlock.schemas.lead_submission import LeadSubmission
from rateunlock.services.delivery import (
    attempt_delivery,
    delivery_status_for_response,
    DELIVERY_STATUS_NONE,
    DELIVERY_STATUS_PENDING,
)
from rateunlock.services.matching import fetch_candidate_lenders
from rateunlock.services.routing import route_lead, RoutingOutcome
from rateunlock.services.scoring import score_lead
from rateunlock.utils.alerting import send_alert, AlertType
from rateunlock.utils.logging import get_correlation_id, mask_email
from rateunlock.utils.metrics import Timer
from rateunlock.utils.validation import normalize_phone, normalize_state_code

logger = logging.getLogger(__name__)


class LeadPersistError(Exception):
    """The lead could not be stored. Nothing downstream ran."""


def _derive_down_payment(submission: LeadSubmission) -> tuple[Optional[float], Optional[float]]:
    """
    Down payment defaults to home price minus loan amount.
    The percentage is always recomputed and never taken from the caller.
    """
    down_payment = submission.down_payment
    if down_payment is None:
        down_payment = max(submission.home_price - submission.loan_amount, 0.0)

    percent = None
    if submission.home_price > 0:
        percent = float(
            (Decimal(str(down_payment)) / Decimal(str(submission.home_price)) * 100)
            .quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        )
    return down_payment, percent


async def _resolve_partner(db: AsyncSession, partner_id: Optional[str]) -> Optional[Partner]:
    """Look up the referring partner. Unknown or malformed ids drop the attribution."""
    if not partner_id:
        return None
    try:
        partner_uuid = uuid.UUID(str(partner_id))
    except ValueError:
        logger.warning("Ignoring malformed partnerId %r", str(partner_id)[:64])
        return None

    partner = await db.get(Partner, partner_uuid)
    if not partner:
        logger.warning("Ignoring unknown partnerId %s", str(partner_uuid)[:8])
        return None
    return partner


def build_lead(submission: LeadSubmission, partner: Optional[Partner]) -> Lead:
    """Normalize a submission and score it into an unsaved Lead."""
    down_payment, down_payment_percent = _derive_down_payment(submission)
    phone = normalize_phone(submission.phone) or (submission.phone or None)
    state = normalize_state_code(submission.state) or submission.state.strip().upper()

    score = score_lead(
        phone=phone,
        first_name=submission.first_name,
        last_name=submission.last_name,
        credit_score=submission.credit_score,
        loan_amount=submission.loan_amount,
        home_price=submission.home_price,
        down_payment=down_payment,
        zip_code=submission.zip_code,
    )

    return Lead(
        id=uuid.uuid4(),
        email=submission.email.strip().lower(),
        phone=phone,
        first_name=submission.first_name or None,
        last_name=submission.last_name or None,
        home_price=submission.home_price,
        loan_amount=submission.loan_amount,
        down_payment=down_payment,
        down_payment_percent=down_payment_percent,
        credit_score=submission.credit_score,
        property_type=submission.property_type,
        property_use=submission.property_use,
        state=state,
        zip_code=submission.zip_code or None,
        loan_type=submission.loan_type.lower() if submission.loan_type else None,
        loan_term=submission.loan_term,
        interest_rate=submission.interest_rate,
        monthly_payment=submission.monthly_payment,
        calculator=submission.calculator,
        partner_id=partner.id if partner else None,
        utm_source=submission.utm_source,
        utm_medium=submission.utm_medium,
        utm_campaign=submission.utm_campaign,
        quality=score.quality.value,
        quality_score=score.score,
        status="new",
    )


async def _persist_lead(db: AsyncSession, lead: Lead) -> None:
    db.add(lead)
    await db.flush()
    db.add(EventLog(
        lead_id=lead.id,
        partner_id=lead.partner_id,
        action="lead_created",
        status="success",
        message=f"Lead scored {lead.quality} ({lead.quality_score})",
        data={"calculator": lead.calculator, "state": lead.state, "loan_type": lead.loan_type},
        correlation_id=get_correlation_id(),
    ))
    if lead.partner_id:
        await db.execute(
            update(Partner)
            .where(Partner.id == lead.partner_id)
            .values(total_leads=Partner.total_leads + 1)
            .execution_options(synchronize_session=False)
        )
    await db.commit()


async def _route(db: AsyncSession, lead: Lead) -> RoutingOutcome:
    """Run routing in its own transaction. Failures roll back and leave the lead queued."""
    lead_id = lead.id
    try:
        candidates = await fetch_candidate_lenders(db)
        outcome = await route_lead(db, lead, candidates)
        if not outcome.routed:
            db.add(EventLog(
                lead_id=lead_id,
                partner_id=lead.partner_id,
                action="lead_queued",
                status="skipped",
                message="No eligible lender with capacity",
                data={"candidates": len(candidates), "matching_lenders": outcome.matching_lenders},
                correlation_id=get_correlation_id(),
            ))
        await db.commit()
        return outcome
    except Exception as e:
        logger.error("Routing failed for lead %s: %s", str(lead_id)[:8], str(e), exc_info=True)
        await _record_routing_failure(db, lead_id, e)
        await send_alert(
            AlertType.LEAD_ROUTING_FAILED,
            f"Routing failed for lead {str(lead_id)[:8]}: {str(e)}",
        )
        return RoutingOutcome(routed=False)


async def _record_routing_failure(db: AsyncSession, lead_id: uuid.UUID, error: Exception) -> None:
    """
    Roll routing back and log the failure event. The lead is already committed,
    so a broken session here is logged and never reaches the submitter.
    """
    try:
        await db.rollback()
        db.add(EventLog(
            lead_id=lead_id,
            action="lead_routing_failed",
            status="failure",
            error_message=str(error)[:1000],
            correlation_id=get_correlation_id(),
        ))
        await db.commit()
    except Exception as cleanup_error:
        logger.error(
            "Could not record routing failure for lead %s: %s",
            str(lead_id)[:8], str(cleanup_error),
        )
        try:
            await db.rollback()
        except Exception as rollback_error:
            logger.warning("Rollback after routing failure also failed: %s", str(rollback_error))


async def _deliver_inline(db: AsyncSession, outcome: RoutingOutcome) -> str:
    """First webhook attempt, inside the request. The worker owns every retry."""
    from rateunlock.config import get_settings

    if outcome.delivery is None:
        return DELIVERY_STATUS_NONE
    if not get_settings().webhook_inline_delivery:
        return DELIVERY_STATUS_PENDING

    delivery_id = outcome.delivery.id
    try:
        status = await attempt_delivery(db, outcome.delivery)
        await db.commit()
        return delivery_status_for_response(status, attempted=True)
    except Exception as e:
        logger.warning(
            "Inline delivery bookkeeping failed for %s, leaving it to the worker: %s",
            str(delivery_id)[:8], str(e),
        )
        await db.rollback()
        return DELIVERY_STATUS_PENDING


def _build_response(summary: dict, outcome: RoutingOutcome, delivery_status: str) -> dict:
    """Response body from values captured before routing, so no expired ORM state is read."""
    routing = None
    payout = None
    if outcome.routed:
        routing = {
            "lenderId": str(outcome.lender.id),
            "lenderName": outcome.lender.name,
            "bidAmount": float(outcome.bid),
        }
        if outcome.payout is not None:
            payout = {
                "partnerId": str(summary["partner_id"]),
                "amount": float(outcome.payout),
                "status": "pending",
            }

    return {
        "success": True,
        "leadId": str(summary["id"]),
        "quality": summary["quality"],
        "qualityScore": summary["quality_score"],
        "status": "routed" if outcome.routed else "queued",
        "routing": routing,
        "payout": payout,
        "matchingLenders": outcome.matching_lenders,
        "deliveryStatus": delivery_status,
    }


async def handle_new_lead(db: AsyncSession, submission: LeadSubmission) -> dict:
    """
    Process a validated lead submission.
    This is the entry point for the entire pipeline.

    Returns the camelCase response body for POST /api/leads.
    Raises LeadPersistError if the lead itself cannot be stored.
    """
    timer = Timer().start()

    partner = await _resolve_partner(db, submission.partner_id)
    lead = build_lead(submission, partner)
    summary = {
        "id": lead.id,
        "partner_id": lead.partner_id,
        "quality": lead.quality,
        "quality_score": lead.quality_score,
    }

    try:
        await _persist_lead(db, lead)
    except Exception as e:
        logger.error(
            "Failed to persist lead for %s: %s",
            mask_email(submission.email), str(e), exc_info=True,
        )
        await db.rollback()
        await send_alert(AlertType.LEAD_PERSIST_FAILED, f"Lead insert failed: {str(e)}")
        raise LeadPersistError(str(e)) from e

    outcome = await _route(db, lead)

    response = _build_response(summary, outcome, await _deliver_inline(db, outcome))

    logger.info(
        "Lead %s processed: quality=%s score=%d status=%s delivery=%s (%dms)",
        response["leadId"][:8], response["quality"], response["qualityScore"],
        response["status"], response["deliveryStatus"], timer.elapsed_ms,
        extra={"lead_id": response["leadId"]},
    )

    return response
