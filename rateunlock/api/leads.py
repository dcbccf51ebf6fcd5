"""
Lead endpoints - public submission from calculators and partner widgets,
plus status lookups.

Submission layers (in order):
1. Rate limiting (per client IP)
2. JSON parsing and required-field check
3. Schema validation (types, ranges, email, state)
4. Pipeline: score -> persist -> route -> deliver
"""
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Request, Depends, HTTPException, Query
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from rateunlock.database import get_db
from rateunlock.models.lead import Lead
from rateunlock.schemas.lead_submission import LeadSubmission, missing_required_fields
from rateunlock.services.lead_pipeline import handle_new_lead, LeadPersistError
from rateunlock.services.partners import find_partner, get_partner_lead_stats
from rateunlock.utils.rate_limiter import check_lead_rate_limit
from rateunlock.utils.validation import describe_validation_error, is_valid_email_format, normalize_state_code

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["leads"])


def _client_ip(request: Request) -> str:
    # Proxy headers are client-controlled and never used as the rate-limit key
    return request.client.host if request.client else "unknown"


@router.post("/leads")
async def submit_lead(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Accept a lead, score it and try to sell it to a lender."""
    allowed, retry_after = await check_lead_rate_limit(_client_ip(request))
    if not allowed:
        raise HTTPException(
            status_code=429,
            detail="Too many submissions. Please try again shortly.",
            headers={"Retry-After": str(retry_after)},
        )

    try:
        body = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Request body must be valid JSON")
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object")

    missing = missing_required_fields(body)
    if missing:
        raise HTTPException(
            status_code=400,
            detail=f"Missing required fields: {', '.join(missing)}",
        )

    try:
        submission = LeadSubmission.model_validate(body)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid lead data: {describe_validation_error(e)}")

    if not is_valid_email_format(submission.email):
        raise HTTPException(status_code=400, detail="Invalid email address")
    if not normalize_state_code(submission.state):
        raise HTTPException(status_code=400, detail="Invalid state code")

    try:
        return await handle_new_lead(db, submission)
    except LeadPersistError:
        raise HTTPException(status_code=500, detail="Failed to save lead")


@router.get("/leads")
async def get_leads(
    lead_id: Optional[str] = Query(default=None, alias="id"),
    partner_id: Optional[str] = Query(default=None, alias="partner"),
    db: AsyncSession = Depends(get_db),
):
    """Public status of one lead, or a partner's referral stats."""
    if lead_id:
        try:
            lead_uuid = uuid.UUID(lead_id)
        except ValueError:
            raise HTTPException(status_code=404, detail="Lead not found")
        lead = await db.get(Lead, lead_uuid)
        if not lead:
            raise HTTPException(status_code=404, detail="Lead not found")
        return {
            "success": True,
            "lead": {
                "id": str(lead.id),
                "status": lead.status,
                "quality": lead.quality,
                "qualityScore": lead.quality_score,
                "routed": lead.routed_to_lender_id is not None,
                "createdAt": lead.created_at.isoformat() if lead.created_at else None,
            },
        }

    if partner_id:
        partner = await find_partner(db, partner_id=partner_id)
        if not partner:
            raise HTTPException(status_code=404, detail="Partner not found")
        stats = await get_partner_lead_stats(db, partner)
        return {"success": True, **stats}

    raise HTTPException(status_code=400, detail="Provide id or partner")
