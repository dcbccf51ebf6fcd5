"""
Public lender directory - active lenders serving a state, best rated first.
Bid amounts and capacity never leave this service.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rateunlock.database import get_db
from rateunlock.models.lender import Lender
from rateunlock.services.matching import WILDCARD_STATE
from rateunlock.utils.validation import normalize_state_code

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["lenders"])

DEFAULT_LIMIT = 50
MAX_LIMIT = 200


def _serves_state(lender: Lender, state: str) -> bool:
    states = {str(s).strip().upper() for s in (lender.target_states or [])}
    return WILDCARD_STATE in states or state in states


def serialize_lender(lender: Lender) -> dict:
    return {
        "id": str(lender.id),
        "name": lender.name,
        "website": lender.website,
        "phone": lender.phone,
        "nmlsId": lender.nmls_id,
        "rating": lender.rating,
        "loanTypes": list(lender.target_loan_types or []),
        "states": list(lender.target_states or []),
    }


@router.get("/lenders")
async def list_lenders(
    state: Optional[str] = None,
    limit: int = Query(default=DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    db: AsyncSession = Depends(get_db),
):
    """List active lenders. With ?state=, only lenders licensed there (national lenders always included)."""
    state_code = None
    if state:
        state_code = normalize_state_code(state)
        if not state_code:
            raise HTTPException(status_code=400, detail="Invalid state code")

    result = await db.execute(
        select(Lender)
        .where(Lender.active.is_(True))
        .order_by(Lender.rating.desc().nulls_last(), Lender.name.asc())
    )
    lenders = result.scalars().all()
    if state_code:
        lenders = [lender for lender in lenders if _serves_state(lender, state_code)]
    lenders = lenders[:limit]

    return {
        "success": True,
        "lenders": [serialize_lender(lender) for lender in lenders],
        "total": len(lenders),
    }
