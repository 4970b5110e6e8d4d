"""
Quota Store - PostgreSQL-backed atomic updates for user quota rows.

Every mutation runs inside one transaction that holds a row lock
(SELECT ... FOR UPDATE) for the duration of the read-modify-write, so
concurrent consumes and refunds on the same user are serialized.
"""

import asyncio
from collections.abc import Callable
from typing import TypeVar

from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from structlog import get_logger

from ticker.config import settings
from ticker.db.models import SwipeEvent, UserQuota
from ticker.exceptions import TransientStoreError, UserNotFoundError
from ticker.models.domain import QuotaState, QuotaTransition

logger = get_logger(__name__)

T = TypeVar("T")

# serialization_failure, deadlock_detected
_RETRYABLE_SQLSTATES = frozenset({"40001", "40P01"})


def _is_retryable(exc: DBAPIError) -> bool:
    """Lock conflicts and dropped connections are safe to retry."""
    if exc.connection_invalidated:
        return True
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    return code in _RETRYABLE_SQLSTATES


def _to_state(row: UserQuota) -> QuotaState:
    return QuotaState(
        user_id=row.user_id,
        tier=row.tier,
        swipes_remaining=row.swipes_remaining,
        last_reset_date_key=row.last_reset_date_key,
    )


class SqlQuotaStore:
    """Quota persistence with transactional read-modify-write."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        max_attempts: int | None = None,
        retry_backoff_seconds: float | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.max_attempts = max_attempts or settings.quota_max_attempts
        self.retry_backoff_seconds = (
            settings.quota_retry_backoff_seconds
            if retry_backoff_seconds is None
            else retry_backoff_seconds
        )

    async def read(self, user_id: str) -> QuotaState | None:
        """Read the current state without locking or mutating it."""
        try:
            async with self.session_factory() as session:
                row = await session.get(UserQuota, user_id)
                return _to_state(row) if row is not None else None
        except SQLAlchemyError as exc:
            logger.error("quota_read_failed", user_id=user_id, error=str(exc))
            raise TransientStoreError(f"quota read failed for {user_id}") from exc

    async def get_or_create(self, default: QuotaState) -> QuotaState:
        """
        Return the stored state, inserting `default` if the user has none.

        A concurrent insert for the same user is resolved by re-reading.
        """
        try:
            async with self.session_factory() as session:
                row = await session.get(UserQuota, default.user_id)
                if row is not None:
                    return _to_state(row)

                row = UserQuota(
                    user_id=default.user_id,
                    tier=default.tier,
                    swipes_remaining=default.swipes_remaining,
                    last_reset_date_key=default.last_reset_date_key,
                )
                session.add(row)

                try:
                    await session.flush()
                    await session.commit()
                except IntegrityError as e:
                    # Race condition - record created by another request
                    logger.warning(
                        "quota_creation_integrity_error",
                        user_id=default.user_id,
                        error=str(e),
                    )
                    await session.rollback()
                    row = await session.get(UserQuota, default.user_id)
                    if row is None:
                        raise TransientStoreError(
                            f"quota creation failed for {default.user_id}"
                        ) from e
                else:
                    logger.info("quota_record_created", user_id=default.user_id)

                return _to_state(row)
        except TransientStoreError:
            raise
        except SQLAlchemyError as exc:
            logger.error("quota_create_failed", user_id=default.user_id, error=str(exc))
            raise TransientStoreError(f"quota creation failed for {default.user_id}") from exc

    async def atomic_update(
        self,
        user_id: str,
        transition: Callable[[QuotaState], QuotaTransition[T]],
    ) -> T:
        """
        Apply a pure state transition under a row lock.

        The transition may raise a domain error to abort; nothing is
        persisted in that case. Retryable database failures are retried
        with linear backoff, then surfaced as TransientStoreError.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                return await self._apply(user_id, transition)
            except DBAPIError as exc:
                if attempt < self.max_attempts and _is_retryable(exc):
                    logger.warning(
                        "quota_transaction_retry",
                        user_id=user_id,
                        attempt=attempt,
                        error=str(exc),
                    )
                    await asyncio.sleep(self.retry_backoff_seconds * attempt)
                    continue
                logger.error(
                    "quota_transaction_failed",
                    user_id=user_id,
                    attempts=attempt,
                    error=str(exc),
                )
                raise TransientStoreError(f"quota update failed for {user_id}") from exc
            except SQLAlchemyError as exc:
                logger.error("quota_transaction_failed", user_id=user_id, error=str(exc))
                raise TransientStoreError(f"quota update failed for {user_id}") from exc

    async def _apply(
        self,
        user_id: str,
        transition: Callable[[QuotaState], QuotaTransition[T]],
    ) -> T:
        async with self.session_factory() as session:
            try:
                row = await self._lock_for_update(session, user_id)
                if row is None:
                    raise UserNotFoundError(user_id)

                outcome = transition(_to_state(row))

                row.tier = outcome.state.tier
                row.swipes_remaining = outcome.state.swipes_remaining
                row.last_reset_date_key = outcome.state.last_reset_date_key

                if outcome.swipe is not None:
                    session.add(
                        SwipeEvent(
                            user_id=outcome.swipe.user_id,
                            content_id=outcome.swipe.content_id,
                            direction=outcome.swipe.direction,
                            created_at=outcome.swipe.timestamp,
                        )
                    )

                await session.flush()
                await session.commit()
            except Exception:
                await session.rollback()
                raise

        return outcome.result

    async def _lock_for_update(self, session: AsyncSession, user_id: str) -> UserQuota | None:
        """Lock quota row for update (SELECT FOR UPDATE)."""
        stmt = select(UserQuota).where(UserQuota.user_id == user_id).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()
