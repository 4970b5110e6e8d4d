"""
Card Service - Orchestrates card delivery and swipe tracking.

Ordering rules:
- Reading cached cards never consumes quota or calls the generator.
- Only validated, non-empty batches are ever cached.
- The quota commit is authoritative. Saved-card bookkeeping happens after
  it and a failure there is logged, never rolled back into the quota.
"""

import asyncio
import time

from structlog import get_logger

from ticker.config import settings
from ticker.exceptions import (
    GenerationFailedError,
    GeneratorUnavailableError,
    InvalidArgumentError,
    QuotaExceededError,
    TransientStoreError,
)
from ticker.models.api import CardCategory, ContentRecord, SwipeDirection, Tier, UserProfile
from ticker.models.domain import CardBatch, GenerationRequest, QuotaSnapshot, QuotaStatus
from ticker.observability.metrics import metrics
from ticker.observability.tracing import trace_operation
from ticker.services import events
from ticker.services.card_cache import ContentCache
from ticker.services.events import EventEmitter
from ticker.services.generator import ContentGenerator
from ticker.services.quota_ledger import QuotaLedger
from ticker.services.saved_cards import SavedCardStore
from ticker.services.seen_cards import SeenCardStore
from ticker.utils.dates import Clock, utc_now
from ticker.utils.rotation import rotation_theme
from ticker.utils.validation import build_cards

logger = get_logger(__name__)


class CardService:
    """Entry point for card and swipe operations."""

    def __init__(
        self,
        ledger: QuotaLedger,
        cache: ContentCache,
        seen_cards: SeenCardStore,
        saved_cards: SavedCardStore,
        generator: ContentGenerator,
        emitter: EventEmitter | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.ledger = ledger
        self.cache = cache
        self.seen_cards = seen_cards
        self.saved_cards = saved_cards
        self.generator = generator
        self.emitter = emitter or EventEmitter()
        self.clock = clock

    # ========================================================================
    # Cards
    # ========================================================================

    async def get_cards(
        self,
        user_id: str,
        profile: UserProfile,
        category: CardCategory,
        count: int,
    ) -> CardBatch:
        """
        Serve cached cards or generate a fresh batch.

        Raises:
            InvalidArgumentError: count out of range
            UserNotFoundError: No quota record (checked after a cache miss)
            GenerationFailedError: Generator failed twice or every record was invalid
            TransientStoreError: Cache or quota read failed
        """
        if count < 1 or count > settings.max_cards_per_request:
            raise InvalidArgumentError(
                f"count must be between 1 and {settings.max_cards_per_request}, got {count}"
            )

        cached = await self.cache.get(user_id, category)
        if cached is not None:
            self._served(user_id, category, len(cached.items), cached=True)
            return CardBatch(items=cached.items, cached=True)

        # Unprovisioned callers never reach the generator
        await self.ledger.peek_status(user_id)

        exclude = await self._exclusion_list(user_id, category)
        request = GenerationRequest(
            profile=profile,
            category=category,
            count=count,
            exclude=tuple(exclude),
            rotation_theme=rotation_theme(user_id, self.clock()),
        )

        with trace_operation(
            "card_generation",
            user_id=user_id,
            category=category.value,
            count=count,
            excluded=len(exclude),
        ) as span:
            records = await self._generate(request)
            cards, dropped = build_cards(records, category)
            span.set_attribute("valid", len(cards))
            span.set_attribute("dropped", dropped)

        metrics.record_cards_dropped(category.value, dropped)
        if not cards:
            metrics.record_generation_failure(category.value, "no_valid_records")
            raise GenerationFailedError(
                f"no valid cards in batch of {len(records)} for {category.value}"
            )

        await self._remember(user_id, category, cards, profile)
        self._served(user_id, category, len(cards), cached=False)
        return CardBatch(items=tuple(cards), cached=False)

    async def _exclusion_list(self, user_id: str, category: CardCategory) -> list[str]:
        try:
            return await self.seen_cards.recent_identifiers(user_id, category)
        except TransientStoreError as exc:
            logger.warning("exclusion_list_unavailable", user_id=user_id, error=str(exc))
            return []

    async def _generate(self, request: GenerationRequest) -> list[dict]:
        """One bounded generator call, retried once on timeout or transient failure."""
        category = request.category.value
        last_error: Exception | None = None

        for attempt in (1, 2):
            started = time.perf_counter()
            try:
                records = await asyncio.wait_for(
                    self.generator.generate(request),
                    timeout=settings.generator_timeout_seconds,
                )
            except (asyncio.TimeoutError, GeneratorUnavailableError) as exc:
                last_error = exc
                error_type = "timeout" if isinstance(exc, asyncio.TimeoutError) else "unavailable"
                metrics.record_generation_failure(category, error_type)
                logger.warning(
                    "card_generation_attempt_failed",
                    category=category,
                    attempt=attempt,
                    error_type=error_type,
                )
                if attempt == 1:
                    await asyncio.sleep(settings.generator_retry_backoff_seconds)
                continue
            except GenerationFailedError:
                metrics.record_generation_failure(category, "bad_output")
                raise

            metrics.record_generation(category, time.perf_counter() - started)
            return records

        raise GenerationFailedError(
            f"generator failed after retry: {last_error or 'timeout'}"
        ) from last_error

    async def _remember(
        self,
        user_id: str,
        category: CardCategory,
        cards: list[ContentRecord],
        profile: UserProfile,
    ) -> None:
        """Best-effort cache and seen-card writes."""
        try:
            await self.cache.put(user_id, category, cards, profile)
        except TransientStoreError as exc:
            metrics.record_error("TransientStoreError", "card_cache_put")
            logger.warning("card_cache_put_skipped", user_id=user_id, error=str(exc))

        try:
            await self.seen_cards.record_shown(
                user_id, category, [card.identifier for card in cards]
            )
        except TransientStoreError as exc:
            metrics.record_error("TransientStoreError", "seen_cards_record")
            logger.warning("seen_cards_record_skipped", user_id=user_id, error=str(exc))

    def _served(self, user_id: str, category: CardCategory, count: int, cached: bool) -> None:
        logger.info(
            "cards_served",
            user_id=user_id,
            category=category.value,
            count=count,
            cached=cached,
        )
        self.emitter.emit(
            events.CARDS_SERVED,
            user_id,
            category=category.value,
            count=count,
            cached=cached,
        )

    # ========================================================================
    # Swipes
    # ========================================================================

    async def track_swipe(
        self,
        user_id: str,
        content_id: str,
        direction: SwipeDirection,
    ) -> QuotaSnapshot:
        """
        Consume one swipe, then save the card on a right swipe.

        Raises:
            UserNotFoundError: No quota record
            QuotaExceededError: Daily limit reached
            TransientStoreError: Quota transaction failed
        """
        try:
            snapshot = await self.ledger.check_and_consume(user_id, content_id, direction)
        except QuotaExceededError:
            self.emitter.emit(events.QUOTA_EXHAUSTED, user_id, direction=direction.value)
            raise

        if direction == SwipeDirection.RIGHT:
            try:
                await self.saved_cards.save(user_id, content_id)
            except Exception as exc:
                # Quota decrement stands regardless
                metrics.record_error(type(exc).__name__, "save_card")
                logger.error(
                    "save_after_swipe_failed",
                    user_id=user_id,
                    content_id=content_id,
                    error=str(exc),
                )

        logger.info(
            "swipe_tracked",
            user_id=user_id,
            content_id=content_id,
            direction=direction.value,
            swipes_remaining=snapshot.swipes_remaining,
        )
        self.emitter.emit(
            events.SWIPE_TRACKED,
            user_id,
            direction=direction.value,
            swipes_remaining=snapshot.swipes_remaining,
        )
        return snapshot

    async def undo_swipe(
        self,
        user_id: str,
        content_id: str,
        direction: SwipeDirection,
    ) -> QuotaSnapshot:
        """
        Refund the most recent swipe and unsave the card if it was a right swipe.

        The caller is trusted to pass the pair it last swiped.
        """
        was_right = direction == SwipeDirection.RIGHT
        snapshot = await self.ledger.refund(user_id, was_right_swipe=was_right)

        if was_right:
            try:
                await self.saved_cards.remove(user_id, content_id)
            except Exception as exc:
                metrics.record_error(type(exc).__name__, "unsave_card")
                logger.error(
                    "unsave_after_undo_failed",
                    user_id=user_id,
                    content_id=content_id,
                    error=str(exc),
                )

        logger.info(
            "swipe_undone",
            user_id=user_id,
            content_id=content_id,
            direction=direction.value,
            swipes_remaining=snapshot.swipes_remaining,
        )
        self.emitter.emit(events.SWIPE_UNDONE, user_id, direction=direction.value)
        return snapshot

    async def get_status(self, user_id: str) -> QuotaStatus:
        """Read-only quota status."""
        return await self.ledger.peek_status(user_id)

    async def provision_user(self, user_id: str) -> QuotaStatus:
        """Create the quota record on first sign-in; existing records are untouched."""
        status = await self.ledger.get_or_create(user_id)
        logger.info("user_provisioned", user_id=user_id, tier=status.tier.value)
        return status

    async def set_tier(self, user_id: str, tier: Tier) -> QuotaSnapshot:
        """Apply a tier change from the billing webhook."""
        snapshot = await self.ledger.set_tier(user_id, tier)
        self.emitter.emit(events.TIER_CHANGED, user_id, tier=tier.value)
        return snapshot
