"""
Seen Card Store - Append-only log of card identifiers shown to each user.

Only used to build the exclusion list for the next generation request,
so writes are best-effort and reads are capped at the most recent N.
"""

from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from structlog import get_logger

from ticker.config import settings
from ticker.db.models import SeenCard
from ticker.exceptions import TransientStoreError
from ticker.models.api import CardCategory
from ticker.utils.dates import Clock, utc_now

logger = get_logger(__name__)


class SeenCardStore:
    """Seen-card ledger partitioned by (user, category)."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Clock = utc_now,
    ) -> None:
        self.session_factory = session_factory
        self.clock = clock

    async def record_shown(
        self,
        user_id: str,
        category: CardCategory,
        identifiers: Sequence[str],
    ) -> None:
        """Append one entry per non-empty identifier, all stamped with now."""
        shown_at = self.clock()
        rows = [
            SeenCard(
                user_id=user_id,
                category=category,
                content_identifier=identifier,
                shown_at=shown_at,
            )
            for identifier in identifiers
            if identifier
        ]
        if not rows:
            return

        try:
            async with self.session_factory() as session:
                session.add_all(rows)
                await session.flush()
                await session.commit()
        except SQLAlchemyError as exc:
            logger.error(
                "seen_cards_write_failed",
                user_id=user_id,
                category=category.value,
                error=str(exc),
            )
            raise TransientStoreError(f"seen cards write failed for {user_id}") from exc

        logger.info(
            "seen_cards_recorded",
            user_id=user_id,
            category=category.value,
            count=len(rows),
        )

    async def recent_identifiers(
        self,
        user_id: str,
        category: CardCategory,
        limit: int | None = None,
    ) -> list[str]:
        """Most recently shown identifiers, newest first."""
        if limit is None:
            limit = settings.seen_cards_history
        if limit <= 0:
            return []
        stmt = (
            select(SeenCard.content_identifier)
            .where(SeenCard.user_id == user_id, SeenCard.category == category)
            .order_by(SeenCard.shown_at.desc())
            .limit(limit)
        )

        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                identifiers = list(result.scalars().all())
        except SQLAlchemyError as exc:
            logger.error(
                "seen_cards_read_failed",
                user_id=user_id,
                category=category.value,
                error=str(exc),
            )
            raise TransientStoreError(f"seen cards read failed for {user_id}") from exc

        logger.debug(
            "seen_cards_loaded",
            user_id=user_id,
            category=category.value,
            count=len(identifiers),
        )
        return identifiers
