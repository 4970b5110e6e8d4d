"""
Metrics Collection with Prometheus.

Exposes swipe, card and HTTP metrics for monitoring.
"""

from prometheus_client import Counter, Gauge, Histogram, Info

from ticker.config import settings


class TickerMetrics:
    """
    Centralized metrics for the Ticker card API.

    Covers:
    - HTTP requests (rate, duration, in progress)
    - Swipes (consumed, rejected by quota, undone)
    - Cards (served from cache or generated, dropped by validation)
    - Generation latency and failures
    """

    def __init__(self) -> None:
        """Initialize all Prometheus metrics."""

        # ====================================================================
        # Service Info
        # ====================================================================
        self.service_info = Info(
            "ticker_service",
            "Service information",
        )
        self.service_info.info(
            {
                "version": settings.api_version,
                "service_name": settings.service_name,
            }
        )

        # ====================================================================
        # HTTP Metrics
        # ====================================================================
        self.http_requests_total = Counter(
            "ticker_http_requests_total",
            "Total HTTP requests",
            ["endpoint", "method", "status_code"],
        )

        self.http_request_duration_seconds = Histogram(
            "ticker_http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["endpoint", "method"],
            buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
        )

        self.http_requests_in_progress = Gauge(
            "ticker_http_requests_in_progress",
            "Number of HTTP requests currently being processed",
            ["endpoint", "method"],
        )

        # ====================================================================
        # Swipe Metrics
        # ====================================================================
        self.swipes_total = Counter(
            "ticker_swipes_total",
            "Swipe attempts by direction and outcome",
            ["direction", "outcome"],
        )

        self.swipe_undos_total = Counter(
            "ticker_swipe_undos_total",
            "Swipes undone",
            ["direction"],
        )

        self.tier_changes_total = Counter(
            "ticker_tier_changes_total",
            "Subscription tier changes applied",
            ["tier"],
        )

        # ====================================================================
        # Card Metrics
        # ====================================================================
        self.cards_served_total = Counter(
            "ticker_cards_served_total",
            "Cards returned to clients",
            ["category", "cached"],
        )

        self.cards_dropped_total = Counter(
            "ticker_cards_dropped_total",
            "Generated records dropped by validation",
            ["category"],
        )

        self.card_generation_duration_seconds = Histogram(
            "ticker_card_generation_duration_seconds",
            "Content generator call duration in seconds",
            ["category"],
            buckets=(0.5, 1.0, 2.5, 5.0, 10.0, 15.0, 20.0, 30.0, 60.0),
        )

        self.card_generation_failures_total = Counter(
            "ticker_card_generation_failures_total",
            "Generation attempts that failed",
            ["category", "error_type"],
        )

        # ====================================================================
        # Error Metrics
        # ====================================================================
        self.errors_total = Counter(
            "ticker_errors_total",
            "Total errors by type",
            ["error_type", "operation"],
        )

    # ========================================================================
    # Helper Methods
    # ========================================================================

    def record_http_request(
        self, endpoint: str, method: str, status_code: int, duration: float
    ) -> None:
        """Record HTTP request metrics."""
        self.http_requests_total.labels(
            endpoint=endpoint, method=method, status_code=status_code
        ).inc()
        self.http_request_duration_seconds.labels(endpoint=endpoint, method=method).observe(
            duration
        )

    def record_swipe(self, direction: str, outcome: str) -> None:
        """Record a swipe attempt ("consumed" or "quota_exhausted")."""
        self.swipes_total.labels(direction=direction, outcome=outcome).inc()

    def record_undo(self, direction: str) -> None:
        self.swipe_undos_total.labels(direction=direction).inc()

    def record_tier_change(self, tier: str) -> None:
        self.tier_changes_total.labels(tier=tier).inc()

    def record_cards_served(self, category: str, count: int, cached: bool) -> None:
        """Record cards handed to a client."""
        self.cards_served_total.labels(category=category, cached=str(cached)).inc(count)

    def record_cards_dropped(self, category: str, count: int) -> None:
        if count:
            self.cards_dropped_total.labels(category=category).inc(count)

    def record_generation(self, category: str, duration: float) -> None:
        self.card_generation_duration_seconds.labels(category=category).observe(duration)

    def record_generation_failure(self, category: str, error_type: str) -> None:
        self.card_generation_failures_total.labels(
            category=category, error_type=error_type
        ).inc()

    def record_error(self, error_type: str, operation: str) -> None:
        """Record error occurrence."""
        self.errors_total.labels(error_type=error_type, operation=operation).inc()


# Global metrics instance
metrics = TickerMetrics()
