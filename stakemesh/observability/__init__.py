"""
Observability module: Metrics and structured logging.
"""

from stakemesh.observability.metrics import (
    MetricsCollector,
    Counter,
    Gauge,
    Histogram,
    SessionMetrics,
    LeaderboardMetrics,
)
from stakemesh.observability.logging import (
    StructuredLogger,
    JsonFormatter,
    LogContext,
    LogLevel,
    mask_token,
    setup_logging,
)

__all__ = [
    "MetricsCollector",
    "Counter",
    "Gauge",
    "Histogram",
    "SessionMetrics",
    "LeaderboardMetrics",
    "StructuredLogger",
    "JsonFormatter",
    "LogContext",
    "LogLevel",
    "mask_token",
    "setup_logging",
]
