"""
FastAPI Dependencies - Caller identity and service lookup.

The identity gateway in front of this service authenticates the user and
forwards a trusted user id header; this module only reads it.
"""

import hmac

from fastapi import Header, HTTPException, Request, status
from structlog import get_logger

from ticker.config import settings
from ticker.exceptions import UnauthenticatedError
from ticker.services.card_service import CardService

logger = get_logger(__name__)


def resolve_user_id(request: Request) -> str:
    """
    Read the trusted user id header.

    Raises:
        UnauthenticatedError: Header missing or blank
    """
    user_id = (request.headers.get(settings.user_id_header) or "").strip()
    if not user_id:
        raise UnauthenticatedError()
    return user_id


async def get_user_id(request: Request) -> str:
    """
    FastAPI dependency returning the caller's user id.

    Usage:
        @router.get("/v1/swipes/status")
        async def status(user_id: str = Depends(get_user_id)):
            ...
    """
    try:
        return resolve_user_id(request)
    except UnauthenticatedError as exc:
        logger.warning("unauthenticated_request", path=request.url.path)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=exc.message,
        ) from exc


async def require_webhook_key(
    request: Request,
    x_api_key: str | None = Header(None, description="Webhook shared secret"),
) -> None:
    """
    FastAPI dependency guarding the tier-change webhook.

    503 when no secret is configured, 401 on a missing or wrong key.
    """
    if not settings.webhook_api_key:
        logger.error("webhook_key_not_configured", path=request.url.path)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Webhook not configured",
        )

    if not x_api_key or not hmac.compare_digest(x_api_key, settings.webhook_api_key):
        logger.warning("webhook_key_rejected", path=request.url.path)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
        )


def get_card_service(request: Request) -> CardService:
    """The process-wide CardService built in the application lifespan."""
    return request.app.state.card_service  # type: ignore[no-any-return]
