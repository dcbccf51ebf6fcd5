"""
Lead model - every mortgage lead submitted through the site, calculators or partner widgets.
Lifecycle: new -> contacted (set once by the router when a lender buys the lead).
Leads are never deleted by the pipeline.
"""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from sqlalchemy import String, Integer, Numeric, DateTime, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column
from rateunlock.database import Base


class Lead(Base):
    __tablename__ = "leads"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )

    # Contact info
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(20))
    first_name: Mapped[Optional[str]] = mapped_column(String(100))
    last_name: Mapped[Optional[str]] = mapped_column(String(100))

    # Loan scenario
    home_price: Mapped[float] = mapped_column(Numeric(12, 2), nullable=False)
    loan_amount: Mapped[float] = mapped_column(Numeric(12, 2), nullable=False)
    down_payment: Mapped[Optional[float]] = mapped_column(Numeric(12, 2))
    down_payment_percent: Mapped[Optional[float]] = mapped_column(Numeric(6, 2))
    credit_score: Mapped[Optional[int]] = mapped_column(Integer)
    property_type: Mapped[Optional[str]] = mapped_column(String(50))  # single_family, condo, townhouse, multi_family
    property_use: Mapped[Optional[str]] = mapped_column(String(50))  # primary, secondary, investment
    state: Mapped[str] = mapped_column(String(2), nullable=False)
    zip_code: Mapped[Optional[str]] = mapped_column(String(10))
    loan_type: Mapped[Optional[str]] = mapped_column(String(30))  # conventional, fha, va, usda, jumbo
    loan_term: Mapped[Optional[int]] = mapped_column(Integer)
    interest_rate: Mapped[Optional[float]] = mapped_column(Numeric(6, 3))
    monthly_payment: Mapped[Optional[float]] = mapped_column(Numeric(10, 2))

    # Attribution
    calculator: Mapped[Optional[str]] = mapped_column(String(50))
    partner_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("partners.id")
    )
    utm_source: Mapped[Optional[str]] = mapped_column(String(100))
    utm_medium: Mapped[Optional[str]] = mapped_column(String(100))
    utm_campaign: Mapped[Optional[str]] = mapped_column(String(100))

    # Scoring
    quality: Mapped[str] = mapped_column(String(10), nullable=False)  # low, medium, high
    quality_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(20), default="new", nullable=False)

    # Routing (written once, together, by the router)
    routed_to_lender_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("lenders.id")
    )
    lender_bid: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2))
    partner_payout: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2))
    routed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        Index("ix_leads_email", "email"),
        Index("ix_leads_status", "status"),
        Index("ix_leads_partner_id", "partner_id"),
        Index("ix_leads_routed_to_lender_id", "routed_to_lender_id"),
        Index("ix_leads_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Lead {str(self.id)[:8]} quality={self.quality} status={self.status}>"
