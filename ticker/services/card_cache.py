"""
Card Cache - Time-boxed cache of the last generated batch per user/category.

Freshness is decided at read time; stale rows stay until the next put
overwrites them.
"""

from collections.abc import Sequence
from datetime import datetime, timedelta

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from structlog import get_logger

from ticker.config import settings
from ticker.db.models import CardCacheEntry
from ticker.exceptions import TransientStoreError
from ticker.models.api import CardCategory, ContentRecord, IdeaCard, StockCard, UserProfile
from ticker.models.domain import CachedBatch
from ticker.utils.dates import Clock, utc_now

logger = get_logger(__name__)


def _parse_items(category: CardCategory, items: list[dict]) -> tuple[ContentRecord, ...]:
    model = StockCard if category == CardCategory.STOCK else IdeaCard
    return tuple(model.model_validate(item) for item in items)


class ContentCache:
    """Per (user, category) card cache with a fixed TTL."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Clock = utc_now,
        ttl: timedelta | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.clock = clock
        self.ttl = ttl or timedelta(hours=settings.card_cache_ttl_hours)

    def is_fresh(self, generated_at: datetime, now: datetime) -> bool:
        """A batch is fresh while its age is strictly below the TTL."""
        return now - generated_at < self.ttl

    async def get(self, user_id: str, category: CardCategory) -> CachedBatch | None:
        """Return the cached batch if it is still fresh, otherwise None."""
        try:
            async with self.session_factory() as session:
                stmt = select(CardCacheEntry).where(
                    CardCacheEntry.user_id == user_id,
                    CardCacheEntry.category == category,
                )
                result = await session.execute(stmt)
                entry = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.error(
                "card_cache_read_failed",
                user_id=user_id,
                category=category.value,
                error=str(exc),
            )
            raise TransientStoreError(f"cache read failed for {user_id}/{category.value}") from exc

        if entry is None:
            return None

        now = self.clock()
        if not self.is_fresh(entry.generated_at, now):
            logger.info(
                "card_cache_expired",
                user_id=user_id,
                category=category.value,
                age_hours=round((now - entry.generated_at).total_seconds() / 3600, 1),
            )
            return None

        try:
            items = _parse_items(category, entry.items)
            profile = (
                UserProfile.model_validate(entry.profile_snapshot)
                if entry.profile_snapshot
                else None
            )
        except ValidationError as exc:
            # Treat an unreadable row as a miss; the next put replaces it
            logger.warning(
                "card_cache_corrupt",
                user_id=user_id,
                category=category.value,
                error=str(exc),
            )
            return None

        if not items:
            return None

        logger.info(
            "card_cache_hit",
            user_id=user_id,
            category=category.value,
            age_minutes=round((now - entry.generated_at).total_seconds() / 60),
        )
        return CachedBatch(
            user_id=user_id,
            category=category,
            profile_snapshot=profile,
            generated_at=entry.generated_at,
            items=items,
        )

    async def put(
        self,
        user_id: str,
        category: CardCategory,
        items: Sequence[ContentRecord],
        profile_snapshot: UserProfile | None,
    ) -> None:
        """Overwrite the batch for (user, category) in a single upsert."""
        now = self.clock()
        payload = [item.model_dump(mode="json", by_alias=True) for item in items]
        profile = (
            profile_snapshot.model_dump(mode="json", by_alias=True) if profile_snapshot else None
        )

        stmt = insert(CardCacheEntry).values(
            user_id=user_id,
            category=category,
            profile_snapshot=profile,
            items=payload,
            generated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            constraint="uq_card_cache_user_category",
            set_={
                "profile_snapshot": stmt.excluded.profile_snapshot,
                "items": stmt.excluded.items,
                "generated_at": stmt.excluded.generated_at,
            },
        )

        try:
            async with self.session_factory() as session:
                await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as exc:
            logger.error(
                "card_cache_write_failed",
                user_id=user_id,
                category=category.value,
                error=str(exc),
            )
            raise TransientStoreError(f"cache write failed for {user_id}/{category.value}") from exc

        logger.info(
            "card_cache_stored",
            user_id=user_id,
            category=category.value,
            count=len(payload),
        )
