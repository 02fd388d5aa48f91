"""
akorfa.database.models — SQLAlchemy 2.0 Data Models
====================================================

Tables:
- accounts            — Progression state per user (score, XP, streaks)
- activity_events     — Append-only activity ledger with idempotent insert
- badge_definitions   — Static achievement catalog (counter + threshold)
- badge_awards        — Earned badges, one row per (account, badge)
- stability_records   — Persisted stability calculator results
- settings            — Gameplay tuning key/value store
"""

from __future__ import annotations

import enum
from datetime import date, datetime

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Akorfa ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class ActivityKind(enum.StrEnum):
    """Every scoring-relevant action that can be written to the ledger."""
    POST_CREATED = "post_created"
    COMMENT_MADE = "comment_made"
    CHALLENGE_JOINED = "challenge_joined"
    CHALLENGE_COMPLETED = "challenge_completed"
    ASSESSMENT_COMPLETED = "assessment_completed"
    REACTION_GIVEN = "reaction_given"
    REACTION_RECEIVED = "reaction_received"
    REFERRAL_COMPLETED = "referral_completed"
    MANUAL_ADJUSTMENT = "manual_adjustment"


# ---------------------------------------------------------------------------
# Accounts — one row per user
# ---------------------------------------------------------------------------
class Account(Base):
    __tablename__ = "accounts"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    display_name: Mapped[str | None] = mapped_column(String(100), default=None)
    score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    coins: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_active_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    events: Mapped[list[ActivityEvent]] = relationship(back_populates="account")
    badges: Mapped[list[BadgeAward]] = relationship(back_populates="account")

    __table_args__ = (
        CheckConstraint("score >= 0", name="ck_accounts_score_non_negative"),
        Index("ix_accounts_score_desc", "score"),
    )

    def __repr__(self) -> str:
        return f"<Account id={self.id!r} score={self.score} streak={self.current_streak}>"


# ---------------------------------------------------------------------------
# ActivityEvent — append-only ledger
# ---------------------------------------------------------------------------
class ActivityEvent(Base):
    __tablename__ = "activity_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("accounts.id"), nullable=False
    )
    kind: Mapped[str] = mapped_column(String(50), nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    source_event_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    metadata_: Mapped[dict | None] = mapped_column("metadata", JSONB, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    account: Mapped[Account] = relationship(back_populates="events")

    __table_args__ = (
        # Deduplication key for safe retries of the originating action
        Index(
            "ix_activity_events_source",
            "source_event_id",
            unique=True,
            postgresql_where=source_event_id.isnot(None),
        ),
        Index("ix_activity_events_account_kind", "account_id", "kind"),
        Index("ix_activity_events_account_time", "account_id", "timestamp"),
    )

    def __repr__(self) -> str:
        return f"<ActivityEvent id={self.id} account={self.account_id!r} kind={self.kind}>"


# ---------------------------------------------------------------------------
# BadgeDefinition — the achievement catalog
# ---------------------------------------------------------------------------
class BadgeDefinition(Base):
    __tablename__ = "badge_definitions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    icon: Mapped[str | None] = mapped_column(String(100), default=None)
    layer: Mapped[str | None] = mapped_column(String(30), default=None)
    requirement_counter: Mapped[str] = mapped_column(String(50), nullable=False)
    requirement_threshold: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    earned_by: Mapped[list[BadgeAward]] = relationship(back_populates="badge")

    __table_args__ = (
        UniqueConstraint("name", name="uq_badge_definitions_name"),
    )

    def __repr__(self) -> str:
        return (
            f"<BadgeDefinition id={self.id} name={self.name!r} "
            f"{self.requirement_counter}>={self.requirement_threshold}>"
        )


# ---------------------------------------------------------------------------
# BadgeAward — earned badges
# ---------------------------------------------------------------------------
class BadgeAward(Base):
    """The composite primary key is the exactly-once guarantee."""
    __tablename__ = "badge_awards"

    account_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("accounts.id"), primary_key=True
    )
    badge_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("badge_definitions.id"), primary_key=True
    )
    earned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    account: Mapped[Account] = relationship(back_populates="badges")
    badge: Mapped[BadgeDefinition] = relationship(back_populates="earned_by")

    def __repr__(self) -> str:
        return f"<BadgeAward account={self.account_id!r} badge={self.badge_id}>"


# ---------------------------------------------------------------------------
# StabilityRecord — persisted calculator results
# ---------------------------------------------------------------------------
class StabilityRecord(Base):
    __tablename__ = "stability_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True
    )
    r: Mapped[float] = mapped_column(Float, nullable=False)
    l: Mapped[float] = mapped_column(Float, nullable=False)  # noqa: E741
    g: Mapped[float] = mapped_column(Float, nullable=False)
    c: Mapped[float] = mapped_column(Float, nullable=False)
    a: Mapped[float] = mapped_column(Float, nullable=False)
    n: Mapped[float] = mapped_column(Float, nullable=False)
    score: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_stability_records_account_time", "account_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<StabilityRecord id={self.id} score={self.score}>"


# ---------------------------------------------------------------------------
# Settings — key-value gameplay tuning
# ---------------------------------------------------------------------------
class Setting(Base):
    """Key-value configuration store.

    Point values per activity kind and the currency conversion rate live
    here.  Values are stored as JSON strings; typed accessors live in
    :class:`~akorfa.engine.cache.ConfigCache`.
    """
    __tablename__ = "settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value_json: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False, default="general")
    description: Mapped[str | None] = mapped_column(Text, default=None)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("ix_settings_category", "category"),
    )

    def __repr__(self) -> str:
        return f"<Setting key={self.key!r}>"
