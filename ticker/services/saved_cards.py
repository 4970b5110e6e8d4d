"""
Saved Card Store - Cards a user swiped right on.

Convenience state only: the swipe quota is authoritative, so callers
treat failures here as non-fatal.
"""

from sqlalchemy import delete
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from structlog import get_logger

from ticker.db.models import SavedCard
from ticker.exceptions import TransientStoreError
from ticker.utils.dates import Clock, utc_now

logger = get_logger(__name__)


class SavedCardStore:
    """PostgreSQL-backed saved-card associations."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Clock = utc_now,
    ) -> None:
        self.session_factory = session_factory
        self.clock = clock

    async def save(self, user_id: str, content_id: str) -> None:
        """Associate a card with the user. Saving twice is a no-op."""
        stmt = (
            insert(SavedCard)
            .values(user_id=user_id, content_id=content_id, saved_at=self.clock())
            .on_conflict_do_nothing(constraint="uq_saved_card")
        )
        try:
            async with self.session_factory() as session:
                await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as exc:
            raise TransientStoreError(f"save failed for {user_id}/{content_id}") from exc

        logger.info("card_saved", user_id=user_id, content_id=content_id)

    async def remove(self, user_id: str, content_id: str) -> bool:
        """
        Remove the association if present.

        Returns True when a row was deleted; removing an absent card is not an error.
        """
        stmt = delete(SavedCard).where(
            SavedCard.user_id == user_id,
            SavedCard.content_id == content_id,
        )
        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as exc:
            raise TransientStoreError(f"unsave failed for {user_id}/{content_id}") from exc

        removed = (result.rowcount or 0) > 0
        if removed:
            logger.info("card_unsaved", user_id=user_id, content_id=content_id)
        else:
            logger.info("card_unsave_missing", user_id=user_id, content_id=content_id)
        return removed
