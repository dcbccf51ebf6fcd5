"""
Lead router - sells a scored lead to the highest-bidding eligible lender.

Capacity is claimed with a single conditional UPDATE:
    current_leads_today = current_leads_today + 1
    WHERE current_leads_today < max_leads_per_day
so concurrent submissions can never push a lender past its daily cap, no
matter how stale their candidate list is. A lender whose last slot was taken
in between is skipped and the next eligible lender is tried.

Everything the routing decision writes (capacity claim, lead fields, payout,
partner totals, outbox row, audit event) is flushed into the caller's session
and committed by the caller in one transaction.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Sequence

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from rateunlock.models.event_log import EventLog
from rateunlock.models.lead import Lead
from rateunlock.models.lead_delivery import LeadDelivery
from rateunlock.models.lender import Lender
from rateunlock.models.partner import Partner
from rateunlock.models.payout import Payout
from rateunlock.services.delivery import enqueue_delivery
from rateunlock.services.matching import match_lenders

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


@dataclass
class RoutingOutcome:
    routed: bool
    lender: Optional[Lender] = None
    bid: Optional[Decimal] = None
    payout: Optional[Decimal] = None
    payout_record: Optional[Payout] = None
    delivery: Optional[LeadDelivery] = None
    matching_lenders: int = 0


def compute_partner_payout(bid, share) -> Decimal:
    """Partner's cut of a lender bid, rounded half-up to the cent."""
    amount = Decimal(str(bid)) * Decimal(str(share))
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


async def claim_lender_capacity(db: AsyncSession, lender_id: uuid.UUID) -> bool:
    """
    Atomically take one of today's slots from a lender.
    Returns False if the lender is inactive or already at its daily cap.
    """
    result = await db.execute(
        update(Lender)
        .where(
            Lender.id == lender_id,
            Lender.active.is_(True),
            Lender.current_leads_today < Lender.max_leads_per_day,
        )
        .values(current_leads_today=Lender.current_leads_today + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def route_lead(
    db: AsyncSession,
    lead: Lead,
    candidates: Sequence[Lender],
    payout_share: Optional[float] = None,
) -> RoutingOutcome:
    """
    Pick a winning lender for the lead and stage every routing write.
    Does not commit. With no winner, nothing is written and the lead stays new.
    """
    if payout_share is None:
        from rateunlock.config import get_settings
        payout_share = get_settings().partner_payout_share

    eligible = match_lenders(lead, candidates)
    if not eligible:
        logger.info("No eligible lenders for lead %s", str(lead.id)[:8])
        return RoutingOutcome(routed=False)

    winner: Optional[Lender] = None
    for lender in eligible:
        if await claim_lender_capacity(db, lender.id):
            winner = lender
            break
        logger.info(
            "Lender %s reached daily capacity, trying next for lead %s",
            str(lender.id)[:8], str(lead.id)[:8],
        )

    if winner is None:
        logger.info(
            "All %d eligible lenders at capacity for lead %s",
            len(eligible), str(lead.id)[:8],
        )
        return RoutingOutcome(routed=False, matching_lenders=len(eligible))

    bid = Decimal(str(winner.bid_amount)).quantize(CENTS, rounding=ROUND_HALF_UP)
    payout = compute_partner_payout(bid, payout_share) if lead.partner_id else None
    now = datetime.now(timezone.utc)

    lead.routed_to_lender_id = winner.id
    lead.lender_bid = bid
    lead.partner_payout = payout
    lead.routed_at = now
    lead.status = "contacted"

    payout_record = None
    if payout is not None:
        payout_record = Payout(
            partner_id=lead.partner_id,
            lead_id=lead.id,
            lender_id=winner.id,
            amount=payout,
            status="pending",
        )
        db.add(payout_record)
        await db.execute(
            update(Partner)
            .where(Partner.id == lead.partner_id)
            .values(
                total_conversions=Partner.total_conversions + 1,
                total_earnings=Partner.total_earnings + payout,
            )
            .execution_options(synchronize_session=False)
        )

    delivery = enqueue_delivery(db, lead, winner)

    db.add(EventLog(
        lead_id=lead.id,
        partner_id=lead.partner_id,
        action="lead_routed",
        status="success",
        message=f"Routed to {winner.name} at ${bid}",
        data={
            "lender_id": str(winner.id),
            "bid_amount": str(bid),
            "partner_payout": str(payout) if payout is not None else None,
            "matching_lenders": len(eligible),
        },
    ))
    await db.flush()

    logger.info(
        "Lead %s routed to lender %s bid=%s payout=%s",
        str(lead.id)[:8], str(winner.id)[:8], bid, payout,
    )

    return RoutingOutcome(
        routed=True,
        lender=winner,
        bid=bid,
        payout=payout,
        payout_record=payout_record,
        delivery=delivery,
        matching_lenders=len(eligible),
    )
