"""
Quota Ledger - Daily swipe quota with atomic reset, consume and refund.

NO DICTIONARIES - All operations use strongly typed domain models.

State transitions are pure functions of (state, now). The store applies
them inside a single transaction, so the ledger never observes or leaves
an intermediate state. The daily reset happens only on the consume path;
status reads report what a reset would do without persisting it.
"""

from collections.abc import Callable
from datetime import datetime
from typing import Protocol, TypeVar

from structlog import get_logger

from ticker.config import settings
from ticker.exceptions import QuotaExceededError, UserNotFoundError
from ticker.models.api import SwipeDirection, Tier
from ticker.models.domain import (
    QuotaSnapshot,
    QuotaState,
    QuotaStatus,
    QuotaTransition,
    SwipeRecord,
)
from ticker.utils.dates import Clock, date_key, is_reset, utc_now

logger = get_logger(__name__)

T = TypeVar("T")


class QuotaStore(Protocol):
    """Backing store contract for the ledger."""

    async def read(self, user_id: str) -> QuotaState | None: ...

    async def get_or_create(self, default: QuotaState) -> QuotaState: ...

    async def atomic_update(
        self,
        user_id: str,
        transition: Callable[[QuotaState], QuotaTransition[T]],
    ) -> T: ...


def tier_limit(tier: Tier) -> int:
    """Daily swipe cap for a subscription tier."""
    if tier == Tier.PRO:
        return settings.pro_tier_swipes
    return settings.free_tier_swipes


def _snapshot(state: QuotaState) -> QuotaSnapshot:
    return QuotaSnapshot(
        swipes_remaining=state.swipes_remaining,
        max_swipes=tier_limit(state.tier),
        tier=state.tier,
    )


# ============================================================================
# Pure Transitions
# ============================================================================


def consume_transition(
    state: QuotaState,
    now: datetime,
    content_id: str,
    direction: SwipeDirection,
) -> QuotaTransition[QuotaSnapshot]:
    """
    Reset if a new UTC day started, then take one swipe.

    Raises:
        QuotaExceededError: No swipes left after the reset check
    """
    today = date_key(now)
    max_swipes = tier_limit(state.tier)
    remaining = state.swipes_remaining
    last_reset = state.last_reset_date_key

    if is_reset(last_reset, today):
        remaining = max_swipes
        last_reset = today

    if remaining <= 0:
        raise QuotaExceededError(state.tier, max_swipes)

    new_state = QuotaState(
        user_id=state.user_id,
        tier=state.tier,
        swipes_remaining=remaining - 1,
        last_reset_date_key=last_reset,
    )
    return QuotaTransition(
        state=new_state,
        result=_snapshot(new_state),
        swipe=SwipeRecord(
            user_id=state.user_id,
            content_id=content_id,
            direction=direction,
            timestamp=now,
        ),
    )


def refund_transition(state: QuotaState) -> QuotaTransition[QuotaSnapshot]:
    """Give one swipe back, never exceeding the tier cap."""
    new_state = QuotaState(
        user_id=state.user_id,
        tier=state.tier,
        swipes_remaining=min(state.swipes_remaining + 1, tier_limit(state.tier)),
        last_reset_date_key=state.last_reset_date_key,
    )
    return QuotaTransition(state=new_state, result=_snapshot(new_state))


def set_tier_transition(state: QuotaState, new_tier: Tier) -> QuotaTransition[QuotaSnapshot]:
    """Switch tier and grant a full allotment for the new tier."""
    new_state = QuotaState(
        user_id=state.user_id,
        tier=new_tier,
        swipes_remaining=tier_limit(new_tier),
        last_reset_date_key=state.last_reset_date_key,
    )
    return QuotaTransition(state=new_state, result=_snapshot(new_state))


def peek(state: QuotaState, now: datetime) -> QuotaStatus:
    """What the quota would look like if a reset were applied now."""
    max_swipes = tier_limit(state.tier)
    would_reset = is_reset(state.last_reset_date_key, date_key(now))
    return QuotaStatus(
        swipes_remaining=max_swipes if would_reset else state.swipes_remaining,
        max_swipes=max_swipes,
        tier=state.tier,
        would_reset=would_reset,
    )


# ============================================================================
# Ledger
# ============================================================================


class QuotaLedger:
    """
    Owns every mutation of per-user quota records.

    All mutating operations go through QuotaStore.atomic_update.
    """

    def __init__(self, store: QuotaStore, clock: Clock = utc_now) -> None:
        """Initialize ledger with a backing store and clock."""
        self.store = store
        self.clock = clock

    async def get_or_create(self, user_id: str) -> QuotaStatus:
        """
        Provision a quota record with the default state if absent.

        Only the identity-provisioning path calls this; the other
        operations fail with UserNotFoundError instead.
        """
        now = self.clock()
        default = QuotaState(
            user_id=user_id,
            tier=Tier.FREE,
            swipes_remaining=tier_limit(Tier.FREE),
            last_reset_date_key=date_key(now),
        )
        state = await self.store.get_or_create(default)
        return peek(state, now)

    async def check_and_consume(
        self,
        user_id: str,
        content_id: str,
        direction: SwipeDirection,
    ) -> QuotaSnapshot:
        """
        Take one swipe, resetting first if a new UTC day started.

        Raises:
            UserNotFoundError: No quota record for user
            QuotaExceededError: Daily limit reached (nothing persisted)
            TransientStoreError: Storage failure (nothing persisted)
        """
        now = self.clock()
        try:
            snapshot = await self.store.atomic_update(
                user_id,
                lambda state: consume_transition(state, now, content_id, direction),
            )
        except QuotaExceededError as exc:
            logger.info(
                "quota_exhausted",
                user_id=user_id,
                tier=exc.tier.value,
                max_swipes=exc.max_swipes,
            )
            raise

        logger.info(
            "swipe_consumed",
            user_id=user_id,
            direction=direction.value,
            swipes_remaining=snapshot.swipes_remaining,
            max_swipes=snapshot.max_swipes,
        )
        return snapshot

    async def refund(self, user_id: str, was_right_swipe: bool) -> QuotaSnapshot:
        """
        Give back one swipe (undo), capped at the tier limit.

        Saved-card cleanup for right swipes is the caller's job.
        Does not touch the reset date.
        """
        snapshot = await self.store.atomic_update(user_id, refund_transition)
        logger.info(
            "swipe_refunded",
            user_id=user_id,
            was_right_swipe=was_right_swipe,
            swipes_remaining=snapshot.swipes_remaining,
        )
        return snapshot

    async def peek_status(self, user_id: str) -> QuotaStatus:
        """Read-only status. Never persists a reset."""
        state = await self.store.read(user_id)
        if state is None:
            raise UserNotFoundError(user_id)
        return peek(state, self.clock())

    async def set_tier(self, user_id: str, new_tier: Tier) -> QuotaSnapshot:
        """
        Apply a subscription change from the billing collaborator.

        Any tier change grants a full refreshed allotment.
        """
        snapshot = await self.store.atomic_update(
            user_id, lambda state: set_tier_transition(state, new_tier)
        )
        logger.info(
            "tier_changed",
            user_id=user_id,
            tier=new_tier.value,
            swipes_remaining=snapshot.swipes_remaining,
        )
        return snapshot
