"""
Test configuration and fixtures.
Uses SQLite in-memory for fast tests. Mocks Redis and outbound HTTP.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import uuid
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.dialects.postgresql import JSONB

from rateunlock.database import Base
import rateunlock.models  # noqa: F401  (registers every table on Base.metadata)
from rateunlock.models.lender import Lender
from rateunlock.models.partner import Partner


# Register JSONB as JSON for SQLite compatibility in tests
@compiles(JSONB, "sqlite")
def _compile_jsonb_sqlite(type_, compiler, **kw):
    return "JSON"


@pytest.fixture
async def db():
    """In-memory SQLite database for tests."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session
    await engine.dispose()


@pytest.fixture(autouse=True)
def mock_redis():
    """Mock for async Redis - prevents real Redis calls in tests."""
    redis_mock = MagicMock()
    redis_mock.set = AsyncMock(return_value=True)
    redis_mock.get = AsyncMock(return_value=None)
    redis_mock.ping = AsyncMock(return_value=True)
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[0, 1, 1, True])
    redis_mock.pipeline = MagicMock(return_value=pipe)
    with patch(
        "rateunlock.utils.redis_client.get_redis",
        new=AsyncMock(return_value=redis_mock),
    ):
        yield redis_mock


@pytest.fixture
def lender_webhook():
    """
    Route outbound lender webhooks to an in-memory handler.
    Set .status_code or .error on the returned object to change the outcome.
    Clients built with an explicit transport (e.g. ASGITransport) are untouched.
    """
    real_client = httpx.AsyncClient
    state = SimpleNamespace(requests=[], status_code=200, error=None)

    def handler(request: httpx.Request) -> httpx.Response:
        state.requests.append(request)
        if state.error is not None:
            raise state.error
        return httpx.Response(state.status_code, json={"received": True})

    def factory(*args, **kwargs):
        kwargs.setdefault("transport", httpx.MockTransport(handler))
        return real_client(*args, **kwargs)

    with patch.object(httpx, "AsyncClient", side_effect=factory):
        yield state


@pytest.fixture
def make_lender(db):
    """Factory that inserts a lender. Defaults buy any conventional FL lead."""
    async def _make(**overrides) -> Lender:
        values = {
            "id": uuid.uuid4(),
            "name": "Test Lender",
            "active": True,
            "bid_amount": Decimal("100.00"),
            "quality_minimum": "low",
            "target_states": ["FL"],
            "target_loan_types": ["conventional"],
            "min_loan_amount": None,
            "max_loan_amount": None,
            "max_leads_per_day": 10,
            "current_leads_today": 0,
            "webhook_url": "https://lender.example.com/hooks/leads",
        }
        values.update(overrides)
        lender = Lender(**values)
        db.add(lender)
        await db.commit()
        return lender
    return _make


@pytest.fixture
def make_partner(db):
    """Factory that inserts an active partner."""
    async def _make(**overrides) -> Partner:
        values = {
            "id": uuid.uuid4(),
            "company_name": "Sunshine Credit Union",
            "institution_type": "credit_union",
            "first_name": "Dana",
            "last_name": "Reyes",
            "email": f"partner-{uuid.uuid4().hex[:8]}@example.com",
            "plan": "free",
            "api_key": f"ru_{uuid.uuid4().hex}",
            "status": "active",
            "total_earnings": Decimal("0"),
        }
        values.update(overrides)
        partner = Partner(**values)
        db.add(partner)
        await db.commit()
        return partner
    return _make


@pytest.fixture
def scenario_lead_body():
    """The basic calculator submission: no phone, name, credit score or ZIP."""
    return {
        "email": "a@b.com",
        "homePrice": 400000,
        "loanAmount": 320000,
        "state": "FL",
        "loanType": "conventional",
    }
