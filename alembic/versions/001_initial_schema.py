"""Initial schema — users, app_settings, quotes.

Revision ID: 001
Revises: None
Create Date: 2026-10-17
"""
from __future__ import annotations

from typing import Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, tuple[str, ...], None] = None
depends_on: Union[str, tuple[str, ...], None] = None


def upgrade() -> None:
    # ── Standalone tables (no FKs) ─────────────────────────────────────

    op.create_table(
        "app_settings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("default_checks", sa.Integer(), server_default=sa.text("10"), nullable=False),
        sa.Column("scrap_rate_per_kg", sa.Numeric(10, 4), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "users",
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(30)),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("checks_left", sa.Integer(), server_default=sa.text("10"), nullable=False),
        sa.Column("first_login", sa.Boolean(), nullable=False),
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # ── Quotes ─────────────────────────────────────────────────────────

    op.create_table(
        "quotes",
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("reg_number", sa.String(16), nullable=False),
        sa.Column("state", sa.String(30), nullable=False),
        sa.Column("kind", sa.String(10), nullable=False),
        sa.Column("client_decision", sa.String(10), nullable=False),
        sa.Column("vehicle_data", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("estimated_price", sa.Numeric(10, 2)),
        sa.Column("final_price", sa.Numeric(10, 2)),
        sa.Column("manual_details", postgresql.JSONB(astext_type=sa.Text())),
        sa.Column("admin_offer_price", sa.Numeric(10, 2)),
        sa.Column("admin_message", sa.Text()),
        sa.Column("is_reviewed_by_admin", sa.Boolean(), nullable=False),
        sa.Column("reviewed_at", sa.DateTime(timezone=True)),
        sa.Column("reviewed_by", sa.String(100), comment="Admin username"),
        sa.Column("rejection_reason", sa.Text()),
        sa.Column("rejected_at", sa.DateTime(timezone=True)),
        sa.Column("accepted_at", sa.DateTime(timezone=True)),
        sa.Column("collection_details", postgresql.JSONB(astext_type=sa.Text())),
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "reg_number", "kind", name="uq_quotes_user_reg_kind"),
    )
    op.create_index("ix_quotes_user_id", "quotes", ["user_id"])
    op.create_index("ix_quotes_reg_number", "quotes", ["reg_number"])
    op.create_index("ix_quotes_client_decision", "quotes", ["client_decision"])
    op.create_index("ix_quotes_state_kind", "quotes", ["state", "kind"])


def downgrade() -> None:
    # Drop in reverse dependency order
    op.drop_table("quotes")
    op.drop_table("users")
    op.drop_table("app_settings")
