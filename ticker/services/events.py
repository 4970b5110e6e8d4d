"""
Domain Events - Fan-out of swipe and card events to observers.

Observers run synchronously after the state change is committed.
An observer that raises is logged and skipped; it never affects the
operation that emitted the event.
"""

from dataclasses import dataclass, field
from typing import Any, Protocol

from structlog import get_logger

from ticker.observability.metrics import TickerMetrics, metrics

logger = get_logger(__name__)

SWIPE_TRACKED = "swipe_tracked"
SWIPE_UNDONE = "swipe_undone"
QUOTA_EXHAUSTED = "quota_exhausted"
CARDS_SERVED = "cards_served"
TIER_CHANGED = "tier_changed"


@dataclass(frozen=True)
class DomainEvent:
    """A named event with its keyword payload."""

    name: str
    user_id: str
    attributes: dict[str, Any] = field(default_factory=dict)


class EventObserver(Protocol):
    def handle(self, event: DomainEvent) -> None: ...


class MetricsObserver:
    """Translates domain events into Prometheus metrics."""

    def __init__(self, registry: TickerMetrics = metrics) -> None:
        self.metrics = registry

    def handle(self, event: DomainEvent) -> None:
        attrs = event.attributes
        if event.name == SWIPE_TRACKED:
            self.metrics.record_swipe(attrs["direction"], "consumed")
        elif event.name == QUOTA_EXHAUSTED:
            self.metrics.record_swipe(attrs["direction"], "quota_exhausted")
        elif event.name == SWIPE_UNDONE:
            self.metrics.record_undo(attrs["direction"])
        elif event.name == CARDS_SERVED:
            self.metrics.record_cards_served(attrs["category"], attrs["count"], attrs["cached"])
        elif event.name == TIER_CHANGED:
            self.metrics.record_tier_change(attrs["tier"])


class EventEmitter:
    """Synchronous observer fan-out."""

    def __init__(self, observers: list[EventObserver] | None = None) -> None:
        self.observers: list[EventObserver] = list(observers or [])

    def subscribe(self, observer: EventObserver) -> None:
        self.observers.append(observer)

    def emit(self, name: str, user_id: str, **attributes: Any) -> None:
        event = DomainEvent(name=name, user_id=user_id, attributes=attributes)
        for observer in self.observers:
            try:
                observer.handle(event)
            except Exception as exc:
                logger.warning(
                    "event_observer_failed",
                    event_name=name,
                    observer=type(observer).__name__,
                    error=str(exc),
                )
