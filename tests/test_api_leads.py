"""
Tests for rateunlock/api/leads.py - POST/GET /api/leads over HTTP.
"""
import uuid
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from rateunlock.database import get_db
from rateunlock.main import app


@pytest.fixture
async def client(db):
    async def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# POST /api/leads - validation
# ---------------------------------------------------------------------------

class TestSubmitLeadValidation:
    async def test_missing_required_fields(self, client):
        response = await client.post("/api/leads", json={"email": "a@b.com"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Missing required fields: homePrice, loanAmount, state"

    async def test_blank_required_field_counts_as_missing(self, client, scenario_lead_body):
        response = await client.post("/api/leads", json={**scenario_lead_body, "email": "  "})
        assert response.status_code == 400
        assert response.json()["detail"] == "Missing required fields: email"

    async def test_non_json_body(self, client):
        response = await client.post(
            "/api/leads", content=b"email=a@b.com", headers={"Content-Type": "text/plain"},
        )
        assert response.status_code == 400

    async def test_json_array_body(self, client):
        response = await client.post("/api/leads", json=[1, 2, 3])
        assert response.status_code == 400

    async def test_malformed_email(self, client, scenario_lead_body):
        response = await client.post("/api/leads", json={**scenario_lead_body, "email": "not-an-email"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid email address"

    async def test_unknown_state(self, client, scenario_lead_body):
        response = await client.post("/api/leads", json={**scenario_lead_body, "state": "ZZ"})
        assert response.status_code == 400

    async def test_non_numeric_amount(self, client, scenario_lead_body):
        response = await client.post("/api/leads", json={**scenario_lead_body, "loanAmount": "lots"})
        assert response.status_code == 400
        assert "loanAmount" in response.json()["detail"]

    async def test_rate_limited(self, client, scenario_lead_body):
        with patch(
            "rateunlock.api.leads.check_lead_rate_limit",
            new_callable=AsyncMock,
            return_value=(False, 60),
        ):
            response = await client.post("/api/leads", json=scenario_lead_body)
        assert response.status_code == 429
        assert response.headers["Retry-After"] == "60"

    async def test_forwarded_for_header_does_not_change_rate_limit_key(self, client, scenario_lead_body):
        with patch(
            "rateunlock.api.leads.check_lead_rate_limit",
            new_callable=AsyncMock,
            side_effect=[(True, None), (False, 60)],
        ) as mock_limit:
            first = await client.post(
                "/api/leads", json=scenario_lead_body, headers={"X-Forwarded-For": "10.0.0.1"},
            )
            second = await client.post(
                "/api/leads", json=scenario_lead_body, headers={"X-Forwarded-For": "10.0.0.2"},
            )

        assert first.status_code == 200
        assert second.status_code == 429
        keys = [c.args[0] for c in mock_limit.await_args_list]
        assert keys[0] == keys[1]
        assert "10.0.0.1" not in keys

    async def test_persist_failure_is_500(self, client, scenario_lead_body):
        with (
            patch("rateunlock.services.lead_pipeline._persist_lead", new_callable=AsyncMock,
                  side_effect=RuntimeError("disk full")),
            patch("rateunlock.services.lead_pipeline.send_alert", new_callable=AsyncMock),
        ):
            response = await client.post("/api/leads", json=scenario_lead_body)
        assert response.status_code == 500


# ---------------------------------------------------------------------------
# POST /api/leads - end to end
# ---------------------------------------------------------------------------

class TestSubmitLeadEndToEnd:
    async def test_single_lender_routes(self, client, make_lender, lender_webhook, scenario_lead_body):
        """One eligible lender bidding 100, no partner."""
        await make_lender(bid_amount=Decimal("100"))

        response = await client.post("/api/leads", json=scenario_lead_body)

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "routed"
        assert data["quality"] == "medium"
        assert data["qualityScore"] == 30
        assert data["payout"] is None
        assert data["deliveryStatus"] == "delivered"
        assert len(lender_webhook.requests) == 1

    async def test_single_lender_with_partner_has_payout(
        self, client, make_lender, make_partner, lender_webhook, scenario_lead_body,
    ):
        partner = await make_partner()
        await make_lender(bid_amount=Decimal("100"))

        response = await client.post("/api/leads", json={**scenario_lead_body, "partnerId": str(partner.id)})

        data = response.json()
        assert data["status"] == "routed"
        assert data["payout"]["amount"] == 50.0
        assert data["payout"]["partnerId"] == str(partner.id)

    async def test_no_eligible_lenders_queues(self, client, scenario_lead_body):
        response = await client.post("/api/leads", json=scenario_lead_body)

        data = response.json()
        assert response.status_code == 200
        assert data["status"] == "queued"
        assert data["routing"] is None
        assert data["payout"] is None

        status = await client.get("/api/leads", params={"id": data["leadId"]})
        assert status.json()["lead"]["status"] == "new"

    async def test_higher_bid_wins(self, client, make_lender, lender_webhook, scenario_lead_body):
        await make_lender(name="Bid100", bid_amount=Decimal("100"))
        winner = await make_lender(name="Bid200", bid_amount=Decimal("200"))

        response = await client.post("/api/leads", json=scenario_lead_body)

        assert response.json()["routing"]["lenderId"] == str(winner.id)

    async def test_response_carries_correlation_id(self, client, scenario_lead_body):
        response = await client.post(
            "/api/leads", json=scenario_lead_body, headers={"X-Correlation-ID": "abc123"},
        )
        assert response.headers["X-Correlation-ID"] == "abc123"


# ---------------------------------------------------------------------------
# GET /api/leads
# ---------------------------------------------------------------------------

class TestGetLeads:
    async def test_requires_a_parameter(self, client):
        response = await client.get("/api/leads")
        assert response.status_code == 400

    async def test_unknown_lead(self, client):
        response = await client.get("/api/leads", params={"id": str(uuid.uuid4())})
        assert response.status_code == 404

    async def test_malformed_lead_id(self, client):
        response = await client.get("/api/leads", params={"id": "nope"})
        assert response.status_code == 404

    async def test_lead_projection(self, client, make_lender, lender_webhook, scenario_lead_body):
        await make_lender()
        lead_id = (await client.post("/api/leads", json=scenario_lead_body)).json()["leadId"]

        response = await client.get("/api/leads", params={"id": lead_id})

        lead = response.json()["lead"]
        assert set(lead) == {"id", "status", "quality", "qualityScore", "routed", "createdAt"}
        assert lead["routed"] is True
        assert lead["status"] == "contacted"

    async def test_unknown_partner(self, client):
        response = await client.get("/api/leads", params={"partner": str(uuid.uuid4())})
        assert response.status_code == 404

    async def test_partner_stats(self, client, make_lender, make_partner, lender_webhook, scenario_lead_body):
        partner = await make_partner()
        await make_lender(bid_amount=Decimal("120"))
        for _ in range(2):
            await client.post("/api/leads", json={**scenario_lead_body, "partnerId": str(partner.id)})

        response = await client.get("/api/leads", params={"partner": str(partner.id)})

        data = response.json()
        assert response.status_code == 200
        assert len(data["recentLeads"]) == 2
        assert data["pendingPayouts"] == 120.0
