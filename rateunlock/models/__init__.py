"""
Database models - import all models here so Alembic can discover them.
"""
from rateunlock.models.partner import Partner
from rateunlock.models.lender import Lender
from rateunlock.models.lead import Lead
from rateunlock.models.payout import Payout
from rateunlock.models.event_log import EventLog
from rateunlock.models.lead_delivery import LeadDelivery

__all__ = [
    "Partner",
    "Lender",
    "Lead",
    "Payout",
    "EventLog",
    "LeadDelivery",
]
