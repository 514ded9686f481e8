"""
Observability components.

Provides structured logging, metrics collection and health checks.
"""

from .health import (
    HealthChecker,
    HealthCheckResult,
    HealthStatus,
    check_store,
    ping_mongodb,
)
from .logging import (
    ContextualLoggerAdapter,
    clear_correlation_id,
    clear_operation_context,
    configure_logging,
    get_correlation_id,
    get_logger,
    get_logging_context,
    set_correlation_id,
    set_operation_context,
)
from .metrics import (
    MetricsCollector,
    OperationStats,
    get_metrics_collector,
    record_operation,
    timed_operation,
)

__all__ = [
    # Metrics
    "MetricsCollector",
    "OperationStats",
    "get_metrics_collector",
    "record_operation",
    "timed_operation",
    # Logging
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    "set_operation_context",
    "clear_operation_context",
    "get_logging_context",
    "ContextualLoggerAdapter",
    "configure_logging",
    "get_logger",
    # Health
    "HealthStatus",
    "HealthCheckResult",
    "HealthChecker",
    "check_store",
    "ping_mongodb",
]
