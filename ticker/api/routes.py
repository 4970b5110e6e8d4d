"""
API Routes - FastAPI endpoints for cards and swipes.

NO DICTIONARIES - All requests/responses use Pydantic models.
"""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from ticker.api.dependencies import get_card_service, get_user_id, require_webhook_key
from ticker.db.session import get_read_db
from ticker.exceptions import (
    GenerationFailedError,
    InvalidArgumentError,
    QuotaExceededError,
    TransientStoreError,
    UserNotFoundError,
)
from ticker.models.api import (
    GenerateCardsRequest,
    GenerateCardsResponse,
    HealthResponse,
    QuotaExceededDetail,
    SwipeRequest,
    SwipeResponse,
    SwipeStatusResponse,
    TierChangeRequest,
)
from ticker.models.domain import QuotaSnapshot, QuotaStatus
from ticker.services.card_service import CardService

logger = get_logger(__name__)

router = APIRouter()

RETRY_AFTER_SECONDS = "1"


def _swipe_response(snapshot: QuotaSnapshot) -> SwipeResponse:
    return SwipeResponse(
        swipes_remaining=snapshot.swipes_remaining,
        max_swipes=snapshot.max_swipes,
        tier=snapshot.tier,
    )


def _status_response(quota: QuotaStatus) -> SwipeStatusResponse:
    return SwipeStatusResponse(
        swipes_remaining=quota.swipes_remaining,
        max_swipes=quota.max_swipes,
        tier=quota.tier,
        needs_reset=quota.would_reset,
    )


def _user_not_found(exc: UserNotFoundError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="User not found",
    )


def _store_unavailable(exc: TransientStoreError) -> HTTPException:
    logger.warning("store_unavailable", error=exc.message)
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Storage temporarily unavailable",
        headers={"Retry-After": RETRY_AFTER_SECONDS},
    )


@router.post("/v1/users/me", response_model=SwipeStatusResponse)
async def provision_user(
    user_id: str = Depends(get_user_id),
    service: CardService = Depends(get_card_service),
) -> SwipeStatusResponse:
    """
    Provision the caller's quota record on first sign-in.

    Idempotent: an existing record is returned unchanged.
    """
    try:
        quota = await service.provision_user(user_id)
        return _status_response(quota)

    except TransientStoreError as exc:
        raise _store_unavailable(exc) from exc


@router.post("/v1/cards/generate", response_model=GenerateCardsResponse)
async def generate_cards(
    request: GenerateCardsRequest,
    user_id: str = Depends(get_user_id),
    service: CardService = Depends(get_card_service),
) -> GenerateCardsResponse:
    """
    Return cards for the caller.

    Serves the cached batch when fresh; otherwise generates, validates and
    caches a new one. Reading cards never consumes swipes.
    """
    try:
        batch = await service.get_cards(user_id, request.profile, request.category, request.count)
        return GenerateCardsResponse(items=list(batch.items), cached=batch.cached)

    except InvalidArgumentError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=exc.message,
        ) from exc

    except GenerationFailedError as exc:
        logger.error("card_generation_failed", user_id=user_id, error=exc.message)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Could not generate cards, please try again",
        ) from exc

    except UserNotFoundError as exc:
        raise _user_not_found(exc) from exc

    except TransientStoreError as exc:
        raise _store_unavailable(exc) from exc


@router.post("/v1/swipes", response_model=SwipeResponse)
async def track_swipe(
    request: SwipeRequest,
    user_id: str = Depends(get_user_id),
    service: CardService = Depends(get_card_service),
) -> SwipeResponse:
    """
    Count one swipe against the daily quota.

    A right swipe also saves the card.
    """
    try:
        snapshot = await service.track_swipe(user_id, request.content_id, request.direction)
        return _swipe_response(snapshot)

    except QuotaExceededError as exc:
        detail = QuotaExceededDetail(
            message="Daily swipe limit reached",
            tier=exc.tier,
            max_swipes=exc.max_swipes,
        )
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=detail.model_dump(mode="json", by_alias=True),
        ) from exc

    except UserNotFoundError as exc:
        raise _user_not_found(exc) from exc

    except TransientStoreError as exc:
        raise _store_unavailable(exc) from exc


@router.post("/v1/swipes/undo", response_model=SwipeResponse)
async def undo_swipe(
    request: SwipeRequest,
    user_id: str = Depends(get_user_id),
    service: CardService = Depends(get_card_service),
) -> SwipeResponse:
    """
    Undo the caller's most recent swipe.

    Refunds one swipe (capped at the tier limit) and unsaves the card if
    it was a right swipe.
    """
    try:
        snapshot = await service.undo_swipe(user_id, request.content_id, request.direction)
        return _swipe_response(snapshot)

    except UserNotFoundError as exc:
        raise _user_not_found(exc) from exc

    except TransientStoreError as exc:
        raise _store_unavailable(exc) from exc


@router.get("/v1/swipes/status", response_model=SwipeStatusResponse)
async def swipe_status(
    user_id: str = Depends(get_user_id),
    service: CardService = Depends(get_card_service),
) -> SwipeStatusResponse:
    """Current quota. Reports a pending daily reset without applying it."""
    try:
        quota = await service.get_status(user_id)
        return _status_response(quota)

    except UserNotFoundError as exc:
        raise _user_not_found(exc) from exc

    except TransientStoreError as exc:
        raise _store_unavailable(exc) from exc


@router.post(
    "/v1/webhooks/tier",
    response_model=SwipeResponse,
    dependencies=[Depends(require_webhook_key)],
)
async def change_tier(
    request: TierChangeRequest,
    service: CardService = Depends(get_card_service),
) -> SwipeResponse:
    """
    Apply a subscription change from the entitlement system.

    Any tier change grants the full allotment of the new tier.
    """
    try:
        snapshot = await service.set_tier(request.user_id, request.tier)
        return _swipe_response(snapshot)

    except UserNotFoundError as exc:
        raise _user_not_found(exc) from exc

    except TransientStoreError as exc:
        raise _store_unavailable(exc) from exc


@router.get("/health", response_model=HealthResponse)
async def health_check(db: AsyncSession = Depends(get_read_db)) -> HealthResponse:
    """
    Health check for load balancer.

    Verifies database connectivity.
    """
    try:
        await db.execute(text("SELECT 1"))

        return HealthResponse(
            status="healthy",
            database="connected",
            timestamp=datetime.now(UTC).isoformat(),
        )

    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "status": "unhealthy",
                "database": "disconnected",
                "error": str(exc),
                "timestamp": datetime.now(UTC).isoformat(),
            },
        ) from exc
