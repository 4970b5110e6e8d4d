"""
Database Models - SQLAlchemy ORM models with strict typing.

NO DICTIONARIES - All columns use Mapped[] type annotations.
"""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ticker.models.api import CardCategory, SwipeDirection, Tier


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def utc_now() -> datetime:
    """Get current UTC timestamp."""
    return datetime.now(UTC)


def _enum_column(enum_cls: type, name: str) -> SQLEnum:
    return SQLEnum(
        enum_cls,
        name=name,
        native_enum=False,
        length=20,
        values_callable=lambda x: [e.value for e in x],
    )


class UserQuota(Base):
    """
    ORM model for user_quotas table.

    One row per user. Only the quota ledger mutates it.
    """

    __tablename__ = "user_quotas"

    # Primary Key - opaque identifier from the identity layer
    user_id: Mapped[str] = mapped_column(String(255), primary_key=True)

    tier: Mapped[Tier] = mapped_column(
        _enum_column(Tier, "subscription_tier"), nullable=False, default=Tier.FREE
    )
    swipes_remaining: Mapped[int] = mapped_column(Integer, nullable=False)
    # "YYYY-MM-DD" in UTC, NULL means never reset
    last_reset_date_key: Mapped[str | None] = mapped_column(String(10), nullable=True)

    # Audit timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint("swipes_remaining >= 0", name="ck_swipes_remaining_non_negative"),
        Index("idx_user_quotas_updated_at", "updated_at"),
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<UserQuota(user_id={self.user_id}, tier={self.tier}, "
            f"swipes_remaining={self.swipes_remaining}, "
            f"last_reset={self.last_reset_date_key})>"
        )


class SwipeEvent(Base):
    """
    ORM model for swipe_events table.

    Append-only audit trail of tracked swipes, read by external analytics.
    """

    __tablename__ = "swipe_events"

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    content_id: Mapped[str] = mapped_column(String(255), nullable=False)
    direction: Mapped[SwipeDirection] = mapped_column(
        _enum_column(SwipeDirection, "swipe_direction"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )

    __table_args__ = (
        Index("idx_swipe_events_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<SwipeEvent(id={self.id}, user_id={self.user_id}, "
            f"content_id={self.content_id}, direction={self.direction})>"
        )


class SavedCard(Base):
    """
    ORM model for saved_cards table.

    Association between a user and a card they swiped right on.
    """

    __tablename__ = "saved_cards"

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    content_id: Mapped[str] = mapped_column(String(255), nullable=False)
    saved_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )

    __table_args__ = (
        UniqueConstraint("user_id", "content_id", name="uq_saved_card"),
        Index("idx_saved_cards_user_saved_at", "user_id", "saved_at"),
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"<SavedCard(user_id={self.user_id}, content_id={self.content_id})>"


class CardCacheEntry(Base):
    """
    ORM model for card_cache table.

    Last generated batch per (user, category). Overwritten wholesale on
    regeneration; freshness is evaluated at read time.
    """

    __tablename__ = "card_cache"

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[CardCategory] = mapped_column(
        _enum_column(CardCategory, "card_category"), nullable=False
    )
    # Profile used for generation, kept for audit/debug
    profile_snapshot: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)
    items: Mapped[list[dict[str, Any]]] = mapped_column(JSONB, nullable=False, default=list)
    generated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "category", name="uq_card_cache_user_category"),
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<CardCacheEntry(user_id={self.user_id}, category={self.category}, "
            f"generated_at={self.generated_at})>"
        )


class SeenCard(Base):
    """
    ORM model for seen_cards table.

    Append-only log of card identifiers shown to a user, used to exclude
    recent cards from the next generation request.
    """

    __tablename__ = "seen_cards"

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[CardCategory] = mapped_column(
        _enum_column(CardCategory, "card_category"), nullable=False
    )
    # Ticker for stocks, title for ideas
    content_identifier: Mapped[str] = mapped_column(String(255), nullable=False)
    shown_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )

    __table_args__ = (
        Index("idx_seen_cards_user_category_shown", "user_id", "category", "shown_at"),
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<SeenCard(user_id={self.user_id}, category={self.category}, "
            f"identifier={self.content_identifier})>"
        )
