"""
Exception Classes - Strongly typed exception hierarchy.

NO DICTIONARIES - All exceptions have typed attributes.
"""

from ticker.models.api import Tier


class TickerError(Exception):
    """Base exception for all card service errors."""

    pass


class UnauthenticatedError(TickerError):
    """Raised when no trusted caller identity is present."""

    def __init__(self, message: str = "Caller identity required") -> None:
        self.message = message
        super().__init__(f"Unauthenticated: {message}")


class UserNotFoundError(TickerError):
    """Raised when the quota record for a user doesn't exist."""

    def __init__(self, user_id: str) -> None:
        self.user_id = user_id
        super().__init__(f"User not found: {user_id}")


class QuotaExceededError(TickerError):
    """Raised when the daily swipe quota is used up."""

    def __init__(self, tier: Tier, max_swipes: int) -> None:
        self.tier = tier
        self.max_swipes = max_swipes
        super().__init__(f"Daily swipe limit reached (tier: {tier.value}, max: {max_swipes})")


class GenerationFailedError(TickerError):
    """Raised when the content generator produced no usable cards."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Card generation failed: {message}")


class GeneratorUnavailableError(TickerError):
    """Raised when the content generator could not be reached (retryable)."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Content generator unavailable: {message}")


class TransientStoreError(TickerError):
    """Raised when a storage operation fails in a way that is safe to retry."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Transient storage error: {message}")


class InvalidArgumentError(TickerError):
    """Raised when a request argument is malformed."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Invalid argument: {message}")
