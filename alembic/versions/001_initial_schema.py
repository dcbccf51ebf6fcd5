"""Initial schema - partners, lenders, leads, payouts, event log and delivery outbox.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Partners
    op.create_table(
        "partners",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("company_name", sa.String(255), nullable=False),
        sa.Column("institution_type", sa.String(50), nullable=False),
        sa.Column("website", sa.String(255)),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("phone", sa.String(20)),
        sa.Column("job_title", sa.String(100)),
        sa.Column("plan", sa.String(20), nullable=False, server_default="free"),
        sa.Column("subdomain", sa.String(63), unique=True),
        sa.Column("primary_color", sa.String(7), server_default="#10b981"),
        sa.Column("secondary_color", sa.String(7), server_default="#8b5cf6"),
        sa.Column("api_key", sa.String(64), nullable=False, unique=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("total_views", sa.Integer, nullable=False, server_default="0"),
        sa.Column("total_leads", sa.Integer, nullable=False, server_default="0"),
        sa.Column("total_conversions", sa.Integer, nullable=False, server_default="0"),
        sa.Column("total_earnings", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_partners_status", "partners", ["status"])

    # Lenders
    op.create_table(
        "lenders",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("bid_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("quality_minimum", sa.String(10), nullable=False, server_default="low"),
        sa.Column("target_states", postgresql.JSONB, server_default="[]"),
        sa.Column("target_loan_types", postgresql.JSONB, server_default="[]"),
        sa.Column("min_loan_amount", sa.Numeric(12, 2)),
        sa.Column("max_loan_amount", sa.Numeric(12, 2)),
        sa.Column("max_leads_per_day", sa.Integer, nullable=False, server_default="0"),
        sa.Column("current_leads_today", sa.Integer, nullable=False, server_default="0"),
        sa.Column("webhook_url", sa.String(500)),
        sa.Column("website", sa.String(255)),
        sa.Column("phone", sa.String(20)),
        sa.Column("nmls_id", sa.String(20)),
        sa.Column("rating", sa.Float),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint(
            "current_leads_today <= max_leads_per_day",
            name="ck_lenders_daily_capacity",
        ),
    )
    op.create_index("ix_lenders_active_bid", "lenders", ["active", "bid_amount"])

    # Leads
    op.create_table(
        "leads",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(20)),
        sa.Column("first_name", sa.String(100)),
        sa.Column("last_name", sa.String(100)),
        sa.Column("home_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("loan_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("down_payment", sa.Numeric(12, 2)),
        sa.Column("down_payment_percent", sa.Numeric(6, 2)),
        sa.Column("credit_score", sa.Integer),
        sa.Column("property_type", sa.String(50)),
        sa.Column("property_use", sa.String(50)),
        sa.Column("state", sa.String(2), nullable=False),
        sa.Column("zip_code", sa.String(10)),
        sa.Column("loan_type", sa.String(30)),
        sa.Column("loan_term", sa.Integer),
        sa.Column("interest_rate", sa.Numeric(6, 3)),
        sa.Column("monthly_payment", sa.Numeric(10, 2)),
        sa.Column("calculator", sa.String(50)),
        sa.Column("partner_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("partners.id")),
        sa.Column("utm_source", sa.String(100)),
        sa.Column("utm_medium", sa.String(100)),
        sa.Column("utm_campaign", sa.String(100)),
        sa.Column("quality", sa.String(10), nullable=False),
        sa.Column("quality_score", sa.Integer, nullable=False, server_default="0"),
        sa.Column("status", sa.String(20), nullable=False, server_default="new"),
        sa.Column("routed_to_lender_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("lenders.id")),
        sa.Column("lender_bid", sa.Numeric(10, 2)),
        sa.Column("partner_payout", sa.Numeric(10, 2)),
        sa.Column("routed_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_leads_email", "leads", ["email"])
    op.create_index("ix_leads_status", "leads", ["status"])
    op.create_index("ix_leads_partner_id", "leads", ["partner_id"])
    op.create_index("ix_leads_routed_to_lender_id", "leads", ["routed_to_lender_id"])
    op.create_index("ix_leads_created_at", "leads", ["created_at"])

    # Payouts
    op.create_table(
        "payouts",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("partner_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("partners.id"), nullable=False),
        sa.Column("lead_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("leads.id"), nullable=False, unique=True),
        sa.Column("lender_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("lenders.id"), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_payouts_partner_status", "payouts", ["partner_id", "status"])

    # Event logs
    op.create_table(
        "event_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("lead_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("leads.id")),
        sa.Column("partner_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("partners.id")),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("status", sa.String(20), server_default="success"),
        sa.Column("duration_ms", sa.Integer),
        sa.Column("message", sa.Text),
        sa.Column("error_message", sa.Text),
        sa.Column("data", postgresql.JSONB),
        sa.Column("correlation_id", sa.String(64)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_events_lead_id", "event_logs", ["lead_id"])
    op.create_index("ix_events_action", "event_logs", ["action"])
    op.create_index("ix_events_created_at", "event_logs", ["created_at"])

    # Lender webhook outbox
    op.create_table(
        "lead_deliveries",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("lead_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("leads.id"), nullable=False),
        sa.Column("lender_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("lenders.id"), nullable=False),
        sa.Column("url", sa.String(500)),
        sa.Column("payload", postgresql.JSONB, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("attempts", sa.Integer, nullable=False, server_default="0"),
        sa.Column("max_attempts", sa.Integer, nullable=False, server_default="5"),
        sa.Column("next_attempt_at", sa.DateTime(timezone=True)),
        sa.Column("last_status_code", sa.Integer),
        sa.Column("last_error", sa.Text),
        sa.Column("delivered_at", sa.DateTime(timezone=True)),
        sa.Column("correlation_id", sa.String(64)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_lead_deliveries_status_next", "lead_deliveries", ["status", "next_attempt_at"])
    op.create_index("ix_lead_deliveries_lead_id", "lead_deliveries", ["lead_id"])


def downgrade() -> None:
    op.drop_table("lead_deliveries")
    op.drop_table("event_logs")
    op.drop_table("payouts")
    op.drop_table("leads")
    op.drop_table("lenders")
    op.drop_table("partners")
