"""
Observability module - Logging, Metrics, and Tracing.
"""

from ticker.observability.logging import get_logger, log_context, setup_logging
from ticker.observability.metrics import metrics
from ticker.observability.tracing import setup_tracing, trace_operation

__all__ = [
    "get_logger",
    "log_context",
    "setup_logging",
    "metrics",
    "setup_tracing",
    "trace_operation",
]
