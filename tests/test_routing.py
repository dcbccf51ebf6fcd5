"""
Tests for rateunlock/services/routing.py - winner selection, capacity claims,
payout math and the routing transaction.
"""
import uuid
from decimal import Decimal

import pytest
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from rateunlock.models.event_log import EventLog
from rateunlock.models.lead import Lead
from rateunlock.models.lead_delivery import LeadDelivery
from rateunlock.models.lender import Lender
from rateunlock.models.payout import Payout
from rateunlock.services.matching import fetch_candidate_lenders
from rateunlock.services.routing import (
    claim_lender_capacity,
    compute_partner_payout,
    route_lead,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _add_lead(db, **overrides) -> Lead:
    values = {
        "id": uuid.uuid4(),
        "email": f"lead-{uuid.uuid4().hex[:6]}@example.com",
        "home_price": 400000,
        "loan_amount": 320000,
        "down_payment": 80000,
        "state": "FL",
        "loan_type": "conventional",
        "quality": "medium",
        "quality_score": 30,
        "status": "new",
    }
    values.update(overrides)
    lead = Lead(**values)
    db.add(lead)
    await db.commit()
    return lead


# ---------------------------------------------------------------------------
# compute_partner_payout
# ---------------------------------------------------------------------------

class TestComputePartnerPayout:
    def test_exact_half(self):
        assert compute_partner_payout(Decimal("100.00"), 0.5) == Decimal("50.00")

    def test_rounds_half_up_to_cents(self):
        assert compute_partner_payout(Decimal("99.99"), 0.5) == Decimal("50.00")
        assert compute_partner_payout(Decimal("0.01"), 0.5) == Decimal("0.01")

    def test_float_bid(self):
        assert compute_partner_payout(75, 0.5) == Decimal("37.50")

    def test_configurable_share(self):
        assert compute_partner_payout(Decimal("200"), 0.3) == Decimal("60.00")


# ---------------------------------------------------------------------------
# claim_lender_capacity
# ---------------------------------------------------------------------------

class TestClaimLenderCapacity:
    async def test_claims_until_full(self, db, make_lender):
        lender = await make_lender(max_leads_per_day=2)

        assert await claim_lender_capacity(db, lender.id) is True
        assert await claim_lender_capacity(db, lender.id) is True
        assert await claim_lender_capacity(db, lender.id) is False
        await db.commit()

        await db.refresh(lender)
        assert lender.current_leads_today == 2

    async def test_inactive_lender_cannot_be_claimed(self, db, make_lender):
        lender = await make_lender(active=False)
        assert await claim_lender_capacity(db, lender.id) is False

    async def test_unknown_lender(self, db):
        assert await claim_lender_capacity(db, uuid.uuid4()) is False

    async def test_database_rejects_counter_above_cap(self, db, make_lender):
        lender = await make_lender(max_leads_per_day=1, current_leads_today=1)

        with pytest.raises(IntegrityError):
            await db.execute(
                update(Lender).where(Lender.id == lender.id).values(current_leads_today=2)
            )
        await db.rollback()


# ---------------------------------------------------------------------------
# route_lead
# ---------------------------------------------------------------------------

class TestRouteLead:
    async def test_routes_to_single_eligible_lender(self, db, make_lender):
        lender = await make_lender(bid_amount=Decimal("100"))
        lead = await _add_lead(db)

        outcome = await route_lead(db, lead, await fetch_candidate_lenders(db, limit=10), payout_share=0.5)
        await db.commit()

        assert outcome.routed is True
        assert outcome.lender.id == lender.id
        assert outcome.bid == Decimal("100.00")
        assert outcome.payout is None
        assert lead.status == "contacted"
        assert lead.routed_to_lender_id == lender.id
        assert lead.routed_at is not None
        assert lead.partner_payout is None

    async def test_highest_bid_wins(self, db, make_lender):
        low = await make_lender(name="Low", bid_amount=Decimal("100"))
        high = await make_lender(name="High", bid_amount=Decimal("200"))
        lead = await _add_lead(db)

        candidates = await fetch_candidate_lenders(db, limit=10)
        outcome = await route_lead(db, lead, candidates, payout_share=0.5)

        assert outcome.lender.id == high.id
        assert outcome.matching_lenders == 2
        await db.refresh(low)
        assert low.current_leads_today == 0

    async def test_no_eligible_lender_leaves_lead_new(self, db, make_lender):
        await make_lender(target_states=["GA"])
        lead = await _add_lead(db)

        outcome = await route_lead(db, lead, await fetch_candidate_lenders(db, limit=10), payout_share=0.5)
        await db.commit()

        assert outcome.routed is False
        assert outcome.lender is None
        assert lead.status == "new"
        assert lead.routed_to_lender_id is None
        deliveries = (await db.execute(select(LeadDelivery))).scalars().all()
        assert deliveries == []

    async def test_empty_candidate_pool(self, db):
        lead = await _add_lead(db)
        outcome = await route_lead(db, lead, [], payout_share=0.5)
        assert outcome.routed is False

    async def test_partner_attributed_lead_gets_payout(self, db, make_lender, make_partner):
        partner = await make_partner()
        lender = await make_lender(bid_amount=Decimal("85.55"))
        lead = await _add_lead(db, partner_id=partner.id)

        outcome = await route_lead(db, lead, await fetch_candidate_lenders(db, limit=10), payout_share=0.5)
        await db.commit()

        assert outcome.payout == Decimal("42.78")
        assert lead.partner_payout == Decimal("42.78")

        payouts = (await db.execute(select(Payout))).scalars().all()
        assert len(payouts) == 1
        assert payouts[0].amount == Decimal("42.78")
        assert payouts[0].status == "pending"
        assert payouts[0].lender_id == lender.id
        assert payouts[0].lead_id == lead.id

        await db.refresh(partner)
        assert partner.total_conversions == 1
        assert partner.total_earnings == Decimal("42.78")

    async def test_writes_outbox_row_and_event(self, db, make_lender):
        lender = await make_lender()
        lead = await _add_lead(db)

        outcome = await route_lead(db, lead, await fetch_candidate_lenders(db, limit=10), payout_share=0.5)
        await db.commit()

        delivery = outcome.delivery
        assert delivery is not None
        assert delivery.status == "pending"
        assert delivery.url == lender.webhook_url
        assert delivery.payload["event"] == "lead.new"
        assert delivery.payload["lead"]["id"] == str(lead.id)

        events = (await db.execute(
            select(EventLog).where(EventLog.action == "lead_routed")
        )).scalars().all()
        assert len(events) == 1
        assert events[0].data["lender_id"] == str(lender.id)

    async def test_lender_without_webhook_gets_no_outbox_row(self, db, make_lender):
        await make_lender(webhook_url=None)
        lead = await _add_lead(db)

        outcome = await route_lead(db, lead, await fetch_candidate_lenders(db, limit=10), payout_share=0.5)
        assert outcome.routed is True
        assert outcome.delivery is None

    async def test_full_lender_is_skipped_for_next_eligible(self, db, make_lender):
        top = await make_lender(name="Top", bid_amount=Decimal("200"), max_leads_per_day=1)
        runner_up = await make_lender(name="RunnerUp", bid_amount=Decimal("100"))
        candidates = await fetch_candidate_lenders(db, limit=10)

        first = await _add_lead(db)
        second = await _add_lead(db)
        outcome_1 = await route_lead(db, first, candidates, payout_share=0.5)
        await db.commit()
        outcome_2 = await route_lead(db, second, candidates, payout_share=0.5)
        await db.commit()

        assert outcome_1.lender.id == top.id
        assert outcome_2.lender.id == runner_up.id


class TestCapacityUnderStaleReads:
    """N submissions share one stale candidate snapshot; only K may route to a lender with K slots."""

    @pytest.mark.parametrize("capacity,submissions", [(1, 3), (2, 5), (3, 8)])
    async def test_at_most_capacity_routed(self, db, make_lender, capacity, submissions):
        lender = await make_lender(max_leads_per_day=capacity)
        snapshot = await fetch_candidate_lenders(db, limit=10)
        leads = [await _add_lead(db) for _ in range(submissions)]

        routed = 0
        for lead in leads:
            outcome = await route_lead(db, lead, snapshot, payout_share=0.5)
            await db.commit()
            routed += int(outcome.routed)

        assert routed == capacity
        await db.refresh(lender)
        assert lender.current_leads_today == capacity

        contacted = (await db.execute(
            select(Lead).where(Lead.routed_to_lender_id == lender.id)
        )).scalars().all()
        assert len(contacted) == capacity
