"""
Event log model - audit trail for every significant pipeline action.
Used for debugging, partner disputes and performance analysis.
"""
import uuid
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import String, Text, Integer, DateTime, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import Mapped, mapped_column
from rateunlock.database import Base


class EventLog(Base):
    __tablename__ = "event_logs"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    lead_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("leads.id")
    )
    partner_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("partners.id")
    )

    action: Mapped[str] = mapped_column(
        String(100), nullable=False
    )  # lead_created, lead_routed, lead_queued, lead_routing_failed, webhook_delivered, webhook_failed
    status: Mapped[str] = mapped_column(String(20), default="success")  # success, failure, skipped
    duration_ms: Mapped[Optional[int]] = mapped_column(Integer)

    message: Mapped[Optional[str]] = mapped_column(Text)
    error_message: Mapped[Optional[str]] = mapped_column(Text)
    data: Mapped[Optional[dict]] = mapped_column(JSONB)
    correlation_id: Mapped[Optional[str]] = mapped_column(String(64))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        Index("ix_events_lead_id", "lead_id"),
        Index("ix_events_action", "action"),
        Index("ix_events_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<EventLog {self.action} status={self.status}>"
