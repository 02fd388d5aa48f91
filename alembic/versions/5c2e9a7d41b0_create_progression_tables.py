"""Create progression tables

Revision ID: 5c2e9a7d41b0
Revises:
Create Date: 2026-10-18 09:12:41.508113

"""
from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '5c2e9a7d41b0'
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create accounts, ledger, badge, stability and settings tables."""

    # --- accounts ---
    op.create_table(
        "accounts",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("display_name", sa.String(100), nullable=True),
        sa.Column("score", sa.Float, nullable=False, server_default="0"),
        sa.Column("xp", sa.Integer, nullable=False, server_default="0"),
        sa.Column("coins", sa.Integer, nullable=False, server_default="0"),
        sa.Column("current_streak", sa.Integer, nullable=False, server_default="0"),
        sa.Column("longest_streak", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_active_date", sa.Date, nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(),
        ),
        sa.CheckConstraint("score >= 0", name="ck_accounts_score_non_negative"),
    )
    op.create_index("ix_accounts_score_desc", "accounts", ["score"])

    # --- activity_events (append-only ledger) ---
    op.create_table(
        "activity_events",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("account_id", sa.String(64), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("kind", sa.String(50), nullable=False),
        sa.Column("points", sa.Integer, nullable=False, server_default="0"),
        sa.Column("source_event_id", sa.String(100), nullable=True),
        sa.Column("metadata", postgresql.JSONB, nullable=True),
        sa.Column(
            "timestamp", sa.DateTime(timezone=True), server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "ix_activity_events_source", "activity_events",
        ["source_event_id"],
        unique=True,
        postgresql_where=sa.text("source_event_id IS NOT NULL"),
    )
    op.create_index(
        "ix_activity_events_account_kind", "activity_events", ["account_id", "kind"],
    )
    op.create_index(
        "ix_activity_events_account_time", "activity_events", ["account_id", "timestamp"],
    )

    # --- badge_definitions ---
    op.create_table(
        "badge_definitions",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("icon", sa.String(100), nullable=True),
        sa.Column("layer", sa.String(30), nullable=True),
        sa.Column("requirement_counter", sa.String(50), nullable=False),
        sa.Column("requirement_threshold", sa.Integer, nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("name", name="uq_badge_definitions_name"),
    )

    # --- badge_awards (PK is the exactly-once guarantee) ---
    op.create_table(
        "badge_awards",
        sa.Column("account_id", sa.String(64), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column(
            "badge_id", sa.Integer, sa.ForeignKey("badge_definitions.id"), nullable=False,
        ),
        sa.Column(
            "earned_at", sa.DateTime(timezone=True), server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("account_id", "badge_id"),
    )

    # --- stability_records ---
    op.create_table(
        "stability_records",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "account_id", sa.String(64),
            sa.ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("r", sa.Float, nullable=False),
        sa.Column("l", sa.Float, nullable=False),
        sa.Column("g", sa.Float, nullable=False),
        sa.Column("c", sa.Float, nullable=False),
        sa.Column("a", sa.Float, nullable=False),
        sa.Column("n", sa.Float, nullable=False),
        sa.Column("score", sa.Float, nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "ix_stability_records_account_time", "stability_records",
        ["account_id", "created_at"],
    )

    # --- settings ---
    op.create_table(
        "settings",
        sa.Column("key", sa.String(100), primary_key=True),
        sa.Column("value_json", sa.Text, nullable=False),
        sa.Column("category", sa.String(50), nullable=False, server_default="general"),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_settings_category", "settings", ["category"])


def downgrade() -> None:
    """Drop every progression table."""
    op.drop_index("ix_settings_category", table_name="settings")
    op.drop_table("settings")
    op.drop_index("ix_stability_records_account_time", table_name="stability_records")
    op.drop_table("stability_records")
    op.drop_table("badge_awards")
    op.drop_table("badge_definitions")
    op.drop_index("ix_activity_events_account_time", table_name="activity_events")
    op.drop_index("ix_activity_events_account_kind", table_name="activity_events")
    op.drop_index("ix_activity_events_source", table_name="activity_events")
    op.drop_table("activity_events")
    op.drop_index("ix_accounts_score_desc", table_name="accounts")
    op.drop_table("accounts")
