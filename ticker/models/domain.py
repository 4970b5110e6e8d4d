"""
Domain Models - Internal business logic models using dataclasses.

NO DICTIONARIES - All data structures are strongly typed immutable dataclasses.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Generic, TypeVar

from ticker.models.api import CardCategory, ContentRecord, SwipeDirection, Tier, UserProfile

T = TypeVar("T")


@dataclass(frozen=True)
class QuotaState:
    """Persisted per-user quota state."""

    user_id: str
    tier: Tier
    swipes_remaining: int
    last_reset_date_key: str | None

    def __post_init__(self) -> None:
        """Validate quota constraints."""
        if not self.user_id:
            raise ValueError("user_id cannot be empty")
        if self.swipes_remaining < 0:
            raise ValueError(f"swipes_remaining cannot be negative: {self.swipes_remaining}")


@dataclass(frozen=True)
class SwipeRecord:
    """Audit row appended alongside a successful quota decrement."""

    user_id: str
    content_id: str
    direction: SwipeDirection
    timestamp: datetime


@dataclass(frozen=True)
class QuotaTransition(Generic[T]):
    """Outcome of a pure state transition applied inside a transaction."""

    state: QuotaState
    result: T
    swipe: SwipeRecord | None = None


@dataclass(frozen=True)
class QuotaSnapshot:
    """Quota state reported back to callers after a mutation."""

    swipes_remaining: int
    max_swipes: int
    tier: Tier


@dataclass(frozen=True)
class QuotaStatus:
    """Read-only quota view, including whether a reset is pending."""

    swipes_remaining: int
    max_swipes: int
    tier: Tier
    would_reset: bool


@dataclass(frozen=True)
class CachedBatch:
    """Last generated batch of cards for a user and category."""

    user_id: str
    category: CardCategory
    profile_snapshot: UserProfile | None
    generated_at: datetime
    items: tuple[ContentRecord, ...]


@dataclass(frozen=True)
class GenerationRequest:
    """Everything the content generator needs for one batch."""

    profile: UserProfile
    category: CardCategory
    count: int
    exclude: Sequence[str] = field(default_factory=tuple)
    rotation_theme: str = ""

    def __post_init__(self) -> None:
        """Validate generation constraints."""
        if self.count <= 0:
            raise ValueError(f"count must be positive: {self.count}")


@dataclass(frozen=True)
class CardBatch:
    """Cards returned to the client."""

    items: tuple[ContentRecord, ...]
    cached: bool
