"""
Partner program endpoints - self-serve registration and lookup.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Request, Depends, HTTPException, Query
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from rateunlock.database import get_db
from rateunlock.schemas.partners import PartnerRegistration
from rateunlock.services.partners import (
    register_partner,
    find_partner,
    serialize_partner,
    PartnerRegistrationError,
)
from rateunlock.utils.validation import describe_validation_error, is_valid_email_format, missing_fields

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/partners", tags=["partners"])


@router.post("/register")
async def register(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Register a partner and hand back its API key."""
    try:
        body = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Request body must be valid JSON")
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object")

    try:
        registration = PartnerRegistration.model_validate(body)
    except ValidationError as e:
        if missing_fields(e):
            raise HTTPException(status_code=400, detail="Missing required fields")
        raise HTTPException(status_code=400, detail=f"Invalid partner data: {describe_validation_error(e)}")

    if not is_valid_email_format(registration.email):
        raise HTTPException(status_code=400, detail="Invalid email address")

    try:
        partner = await register_partner(db, registration)
    except PartnerRegistrationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    from rateunlock.config import get_settings
    base_url = get_settings().app_base_url.rstrip("/")

    return {
        "success": True,
        "partner": {
            "id": str(partner.id),
            "companyName": partner.company_name,
            "email": partner.email,
            "plan": partner.plan,
            "subdomain": partner.subdomain,
            "apiKey": partner.api_key,
            "dashboardUrl": f"{base_url}/partners/dashboard",
            "widgetsUrl": f"{base_url}/widgets",
        },
        "message": "Registration successful!",
    }


@router.get("")
async def get_partner(
    partner_id: Optional[str] = Query(default=None, alias="id"),
    api_key: Optional[str] = Query(default=None, alias="apiKey"),
    email: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    """Look a partner up by id, apiKey or email."""
    if not (partner_id or api_key or email):
        raise HTTPException(status_code=400, detail="Provide id, apiKey, or email")

    partner = await find_partner(db, partner_id=partner_id, api_key=api_key, email=email)
    if not partner:
        raise HTTPException(status_code=404, detail="Partner not found")

    return {"success": True, "partner": serialize_partner(partner)}
