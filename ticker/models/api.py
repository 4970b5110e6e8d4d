"""
API Models - Pydantic models for request/response validation.

NO DICTIONARIES - All data structures are strongly typed.

Wire format is camelCase to match the mobile client; Python attributes stay
snake_case. A few card fields keep the legacy wire names the client and the
generator prompt already use (`type`, `change`, `category`, `investment`).
"""

from enum import Enum
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class Tier(str, Enum):
    """Subscription tier enumeration."""

    FREE = "free"
    PRO = "pro"


class CardCategory(str, Enum):
    """Card category enumeration."""

    STOCK = "stock"
    IDEA = "idea"


class SwipeDirection(str, Enum):
    """Swipe direction enumeration."""

    LEFT = "left"
    RIGHT = "right"


class CamelModel(BaseModel):
    """Base model serializing to camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Card Models
# ============================================================================


class CardSource(CamelModel):
    """A reference link backing a card."""

    name: str = ""
    url: str


class CardTool(CamelModel):
    """A platform the user can use to act on a card."""

    name: str = ""
    description: str = ""
    url: str


class BaseCard(CamelModel):
    """Fields common to every card."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    title: str = Field(..., min_length=1)
    tagline: str = Field(..., min_length=1)
    simple_explainer: str = Field(..., min_length=1)
    what_to_expect: str | None = None
    good_reasons: list[str] = Field(..., min_length=1)
    concerns: list[str] = Field(..., min_length=1)
    timeline: str = ""
    risk_level: str = ""
    beginner_tip: str = ""
    sources: list[CardSource] = Field(default_factory=list)
    get_started: list[CardTool] = Field(default_factory=list)


class StockCard(BaseCard):
    """A publicly traded stock recommendation."""

    category: CardCategory = Field(CardCategory.STOCK, alias="type")
    ticker: str = Field(..., pattern=r"^[A-Z]{1,5}$")
    price: str | None = None
    change_percent: str | None = Field(None, alias="change")

    @field_validator("category")
    @classmethod
    def validate_category(cls, v: CardCategory) -> CardCategory:
        """Stock cards must carry the stock category."""
        if v != CardCategory.STOCK:
            raise ValueError(f"Expected stock card, got {v.value}")
        return v

    @property
    def identifier(self) -> str:
        """Identifier used for seen-card deduplication."""
        return self.ticker


class IdeaCard(BaseCard):
    """A business idea recommendation."""

    category: CardCategory = Field(CardCategory.IDEA, alias="type")
    category_label: str | None = Field(None, alias="category")
    investment_range: str | None = Field(None, alias="investment")

    @field_validator("category")
    @classmethod
    def validate_category(cls, v: CardCategory) -> CardCategory:
        """Idea cards must carry the idea category."""
        if v != CardCategory.IDEA:
            raise ValueError(f"Expected idea card, got {v.value}")
        return v

    @property
    def identifier(self) -> str:
        """Identifier used for seen-card deduplication."""
        return self.title


ContentRecord = StockCard | IdeaCard


# ============================================================================
# Profile Models
# ============================================================================


class UserProfile(CamelModel):
    """Onboarding profile used to personalize generation."""

    investment_amount: str = Field(..., min_length=1, max_length=100)
    risk_level: str = Field(..., min_length=1, max_length=50)
    interests: list[str] = Field(default_factory=list, max_length=20)


# ============================================================================
# Card Generation Models
# ============================================================================


class GenerateCardsRequest(CamelModel):
    """POST /v1/cards/generate request body."""

    profile: UserProfile
    category: CardCategory = Field(..., validation_alias=AliasChoices("category", "type"))
    count: int = Field(10, ge=1)


class GenerateCardsResponse(CamelModel):
    """POST /v1/cards/generate response."""

    items: list[StockCard | IdeaCard]
    cached: bool


# ============================================================================
# Swipe Models
# ============================================================================


class SwipeRequest(CamelModel):
    """POST /v1/swipes and /v1/swipes/undo request body."""

    content_id: str = Field(
        ...,
        min_length=1,
        max_length=255,
        validation_alias=AliasChoices("contentId", "content_id", "investmentId"),
    )
    direction: SwipeDirection


class SwipeResponse(CamelModel):
    """Quota state returned after a swipe or undo."""

    swipes_remaining: int
    max_swipes: int
    tier: Tier


class SwipeStatusResponse(SwipeResponse):
    """GET /v1/swipes/status response."""

    needs_reset: bool


class QuotaExceededDetail(CamelModel):
    """Body of a 429 response, used by the client for upgrade messaging."""

    message: str
    tier: Tier
    max_swipes: int


# ============================================================================
# Tier Webhook Models
# ============================================================================


class TierChangeRequest(CamelModel):
    """POST /v1/webhooks/tier request body."""

    user_id: str = Field(..., min_length=1, max_length=255)
    tier: Tier

    @field_validator("user_id")
    @classmethod
    def strip_user_id(cls, v: str) -> str:
        """Reject whitespace-only identifiers."""
        v = v.strip()
        if not v:
            raise ValueError("user_id cannot be blank")
        return v


# ============================================================================
# Health Models
# ============================================================================


class HealthResponse(BaseModel):
    """GET /health response."""

    status: Literal["healthy", "unhealthy"]
    database: Literal["connected", "disconnected"]
    timestamp: str
