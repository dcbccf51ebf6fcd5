"""
Partner model - affiliates and institutions that embed RateUnlock widgets
and earn a payout share on the leads they refer.
"""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from sqlalchemy import String, Integer, Numeric, DateTime, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column
from rateunlock.database import Base


class Partner(Base):
    __tablename__ = "partners"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    institution_type: Mapped[str] = mapped_column(String(50), nullable=False)  # bank, credit_union, broker, realtor, affiliate
    website: Mapped[Optional[str]] = mapped_column(String(255))

    # Contact
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    phone: Mapped[Optional[str]] = mapped_column(String(20))
    job_title: Mapped[Optional[str]] = mapped_column(String(100))

    # Plan and branding
    plan: Mapped[str] = mapped_column(String(20), default="free", nullable=False)
    subdomain: Mapped[Optional[str]] = mapped_column(String(63), unique=True)
    primary_color: Mapped[str] = mapped_column(String(7), default="#10b981")
    secondary_color: Mapped[str] = mapped_column(String(7), default="#8b5cf6")
    api_key: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    status: Mapped[str] = mapped_column(String(20), default="active", nullable=False)

    # Aggregates
    total_views: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_leads: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_conversions: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_earnings: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        Index("ix_partners_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<Partner {self.company_name} plan={self.plan}>"
