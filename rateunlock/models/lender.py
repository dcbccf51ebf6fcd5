"""
Lender model - buyers of routed leads.
Managed by an external admin process; the pipeline only reads lenders for
matching and increments current_leads_today when it routes a lead.
current_leads_today is reset externally once a day.
"""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from sqlalchemy import String, Integer, Float, Numeric, Boolean, DateTime, Index, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import Mapped, mapped_column
from rateunlock.database import Base


class Lender(Base):
    __tablename__ = "lenders"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Buying criteria
    bid_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    quality_minimum: Mapped[str] = mapped_column(String(10), default="low", nullable=False)
    target_states: Mapped[list] = mapped_column(JSONB, default=list)  # ["FL", "GA"] or ["*"]
    target_loan_types: Mapped[list] = mapped_column(JSONB, default=list)
    min_loan_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    max_loan_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))

    # Daily capacity
    max_leads_per_day: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    current_leads_today: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Delivery
    webhook_url: Mapped[Optional[str]] = mapped_column(String(500))

    # Public directory
    website: Mapped[Optional[str]] = mapped_column(String(255))
    phone: Mapped[Optional[str]] = mapped_column(String(20))
    nmls_id: Mapped[Optional[str]] = mapped_column(String(20))
    rating: Mapped[Optional[float]] = mapped_column(Float)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        Index("ix_lenders_active_bid", "active", "bid_amount"),
        CheckConstraint("current_leads_today <= max_leads_per_day", name="ck_lenders_daily_capacity"),
    )

    def __repr__(self) -> str:
        return f"<Lender {self.name} bid={self.bid_amount}>"
