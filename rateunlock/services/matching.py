"""
Lender matching - filters a candidate pool down to lenders whose buying
criteria accept a lead.

A lender is eligible when ALL of these hold:
1. Lead quality rank >= lender quality_minimum rank
2. Lender targets the lead's state (or targets "*")
3. Lender buys the lead's loan type
4. Lead loan amount falls inside the lender's [min, max] range (inclusive;
   a missing bound is open on that side)

Capacity and active status are enforced by the candidate query and again by
the router's atomic claim, not here.
"""
import logging
from decimal import Decimal, InvalidOperation
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rateunlock.models.lender import Lender
from rateunlock.services.scoring import parse_quality

logger = logging.getLogger(__name__)

WILDCARD_STATE = "*"


def _as_decimal(value) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def _normalized(values) -> set[str]:
    if not values:
        return set()
    return {str(v).strip().upper() for v in values if v is not None}


def is_eligible(lead, lender) -> bool:
    """Check a single lender's buying criteria against a lead."""
    lead_quality = parse_quality(lead.quality)
    minimum = parse_quality(lender.quality_minimum)
    if lead_quality is None:
        return False
    if minimum is None:
        logger.warning(
            "Lender %s has unrecognized quality_minimum %r, skipping",
            str(lender.id)[:8], lender.quality_minimum,
        )
        return False
    if lead_quality.rank < minimum.rank:
        return False

    states = _normalized(lender.target_states)
    lead_state = (lead.state or "").strip().upper()
    if WILDCARD_STATE not in states and lead_state not in states:
        return False

    if not lead.loan_type:
        return False
    if lead.loan_type.strip().upper() not in _normalized(lender.target_loan_types):
        return False

    amount = _as_decimal(lead.loan_amount)
    if amount is None:
        return False
    min_amount = _as_decimal(lender.min_loan_amount)
    max_amount = _as_decimal(lender.max_loan_amount)
    if min_amount is not None and amount < min_amount:
        return False
    if max_amount is not None and amount > max_amount:
        return False

    return True


def match_lenders(lead, candidates: Sequence) -> list:
    """
    Filter candidates down to eligible lenders, preserving input order.
    The pool arrives sorted by bid descending, so the first match is the winner.
    """
    if not candidates:
        return []
    return [lender for lender in candidates if is_eligible(lead, lender)]


async def fetch_candidate_lenders(
    db: AsyncSession,
    limit: Optional[int] = None,
) -> list[Lender]:
    """
    Load the routing pool: active lenders with capacity left today,
    highest bid first. Equal bids are broken by lender id so routing is deterministic.
    """
    if limit is None:
        from rateunlock.config import get_settings
        limit = get_settings().routing_candidate_limit

    result = await db.execute(
        select(Lender)
        .where(
            Lender.active.is_(True),
            Lender.current_leads_today < Lender.max_leads_per_day,
        )
        .order_by(Lender.bid_amount.desc(), Lender.id.asc())
        .limit(limit)
    )
    return list(result.scalars().all())
