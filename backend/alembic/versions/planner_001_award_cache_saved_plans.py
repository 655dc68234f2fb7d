"""Planner: award cache, onboarding sessions, saved plans

Revision ID: planner_001
Revises:
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision = "planner_001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # --- award_deals (written by ingestion, read by the planner) ---
    op.create_table(
        "award_deals",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("external_id", sa.String(128), nullable=True),
        sa.Column("airline", sa.String(100), nullable=True),
        sa.Column("program", sa.String(50), nullable=True),
        sa.Column("origin", sa.String(5), nullable=False),
        sa.Column("destination", sa.String(5), nullable=False),
        sa.Column("departure_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cabin", sa.String(20), nullable=True),
        sa.Column("miles", sa.Integer, nullable=True),
        sa.Column("cash_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("booking_url", sa.Text, nullable=True),
        sa.Column("raw_data", JSONB, nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(
        "ix_award_deals_route_departure", "award_deals", ["origin", "destination", "departure_date"]
    )
    op.create_index("ix_award_deals_updated_at", "award_deals", ["updated_at"])

    # --- onboarding_sessions ---
    op.create_table(
        "onboarding_sessions",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("user_state", JSONB, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- saved_plans ---
    op.create_table(
        "saved_plans",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column(
            "session_id", sa.String(64),
            sa.ForeignKey("onboarding_sessions.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("title", sa.String(255), nullable=True),
        sa.Column("visibility", sa.String(10), nullable=False, server_default="private"),
        sa.Column("share_token", sa.String(64), nullable=True),
        sa.Column("query_json", JSONB, nullable=False),
        sa.Column("selected_json", JSONB, nullable=False),
        sa.Column("provenance", JSONB, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_saved_plans_session_created", "saved_plans", ["session_id", "created_at"])
    op.create_index("ix_saved_plans_share_token", "saved_plans", ["share_token"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_saved_plans_share_token")
    op.drop_index("ix_saved_plans_session_created")
    op.drop_table("saved_plans")
    op.drop_table("onboarding_sessions")
    op.drop_index("ix_award_deals_updated_at")
    op.drop_index("ix_award_deals_route_departure")
    op.drop_table("award_deals")
