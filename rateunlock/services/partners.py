"""
Partner program - registration, lookup and referral stats.

Partners embed RateUnlock calculators and earn a share of the lender bid on
every referred lead that gets routed. Billing and welcome emails are handled
outside this service.
"""
import logging
import re
import secrets
import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from rateunlock.models.event_log import EventLog
from rateunlock.models.lead import Lead
from rateunlock.models.partner import Partner
from rateunlock.models.payout import Payout
from rateunlock.schemas.partners import PartnerRegistration
from rateunlock.utils.logging import mask_email

logger = logging.getLogger(__name__)

PLANS = ("free", "basic", "pro", "enterprise")
API_KEY_PREFIX = "ru_"
RECENT_LEADS_LIMIT = 10

_SUBDOMAIN_REGEX = re.compile(r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$")


class PartnerRegistrationError(Exception):
    """Registration rejected because of a conflict or invalid input."""


def generate_api_key() -> str:
    return f"{API_KEY_PREFIX}{secrets.token_hex(24)}"


def normalize_subdomain(subdomain: Optional[str]) -> Optional[str]:
    """Lower-case and validate a DNS label. Returns None when not supplied."""
    if not subdomain or not subdomain.strip():
        return None
    label = subdomain.strip().lower()
    if not _SUBDOMAIN_REGEX.match(label):
        raise PartnerRegistrationError("Invalid subdomain")
    return label


async def register_partner(db: AsyncSession, registration: PartnerRegistration) -> Partner:
    """Create an active partner with a fresh API key. Caller commits."""
    email = registration.email.strip().lower()
    plan = registration.plan or "free"
    if plan not in PLANS:
        raise PartnerRegistrationError(f"Unknown plan: {plan}")
    subdomain = normalize_subdomain(registration.subdomain)

    existing = await db.execute(select(Partner.id).where(Partner.email == email))
    if existing.scalar_one_or_none():
        raise PartnerRegistrationError("Email already registered")

    if subdomain:
        taken = await db.execute(select(Partner.id).where(Partner.subdomain == subdomain))
        if taken.scalar_one_or_none():
            raise PartnerRegistrationError("Subdomain already taken")

    partner = Partner(
        id=uuid.uuid4(),
        company_name=registration.company_name,
        institution_type=registration.institution_type,
        website=registration.website,
        first_name=registration.first_name,
        last_name=registration.last_name,
        email=email,
        phone=registration.phone,
        job_title=registration.job_title,
        plan=plan,
        subdomain=subdomain,
        primary_color=registration.primary_color or "#10b981",
        secondary_color=registration.secondary_color or "#8b5cf6",
        api_key=generate_api_key(),
        status="active",
    )
    db.add(partner)
    try:
        await db.flush()
    except IntegrityError as e:
        # Lost a race with a concurrent registration for the same email or subdomain
        await db.rollback()
        logger.warning("Partner registration conflict for %s: %s", mask_email(email), str(e.orig))
        raise PartnerRegistrationError("Email or subdomain already registered") from e
    db.add(EventLog(
        partner_id=partner.id,
        action="partner_registered",
        status="success",
        message=f"{registration.company_name} registered on {plan} plan",
    ))
    await db.flush()

    logger.info("Partner registered: %s (%s, plan=%s)", str(partner.id)[:8], mask_email(email), plan)
    return partner


async def find_partner(
    db: AsyncSession,
    partner_id: Optional[str] = None,
    api_key: Optional[str] = None,
    email: Optional[str] = None,
) -> Optional[Partner]:
    """Look a partner up by id, API key or email (first one supplied wins)."""
    if partner_id:
        try:
            return await db.get(Partner, uuid.UUID(partner_id))
        except ValueError:
            return None
    if api_key:
        query = select(Partner).where(Partner.api_key == api_key)
    elif email:
        query = select(Partner).where(Partner.email == email.strip().lower())
    else:
        return None
    result = await db.execute(query)
    return result.scalar_one_or_none()


def serialize_partner(partner: Partner) -> dict:
    """Public partner projection. The API key is only returned at registration."""
    return {
        "id": str(partner.id),
        "companyName": partner.company_name,
        "institutionType": partner.institution_type,
        "firstName": partner.first_name,
        "lastName": partner.last_name,
        "email": partner.email,
        "plan": partner.plan,
        "subdomain": partner.subdomain,
        "primaryColor": partner.primary_color,
        "secondaryColor": partner.secondary_color,
        "status": partner.status,
        "totalViews": partner.total_views,
        "totalLeads": partner.total_leads,
        "totalConversions": partner.total_conversions,
        "totalEarnings": float(partner.total_earnings or 0),
        "createdAt": partner.created_at.isoformat() if partner.created_at else None,
    }


async def get_partner_lead_stats(db: AsyncSession, partner: Partner) -> dict:
    """Aggregate stats, the most recent referred leads and pending payout total."""
    leads_result = await db.execute(
        select(Lead)
        .where(Lead.partner_id == partner.id)
        .order_by(Lead.created_at.desc())
        .limit(RECENT_LEADS_LIMIT)
    )
    recent = leads_result.scalars().all()

    pending_result = await db.execute(
        select(func.coalesce(func.sum(Payout.amount), 0)).where(
            Payout.partner_id == partner.id,
            Payout.status == "pending",
        )
    )
    pending_total = Decimal(str(pending_result.scalar() or 0))

    return {
        "partner": {
            "id": str(partner.id),
            "companyName": partner.company_name,
            "totalLeads": partner.total_leads,
            "totalConversions": partner.total_conversions,
            "totalEarnings": float(partner.total_earnings or 0),
        },
        "recentLeads": [
            {
                "id": str(lead.id),
                "quality": lead.quality,
                "status": lead.status,
                "partnerPayout": float(lead.partner_payout) if lead.partner_payout is not None else None,
                "createdAt": lead.created_at.isoformat() if lead.created_at else None,
            }
            for lead in recent
        ],
        "pendingPayouts": float(pending_total),
    }
