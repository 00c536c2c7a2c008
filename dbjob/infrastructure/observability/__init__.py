"""Observability infrastructure module.

Provides structured logging, Prometheus metrics, and OpenTelemetry tracing.
"""

from dbjob.infrastructure.observability.logging import (
    TaskLog,
    configure_logging,
    get_logger,
)
from dbjob.infrastructure.observability.metrics import (
    get_metrics_content,
    record_task_invocation,
    record_task_started,
    record_task_stopped,
)
from dbjob.infrastructure.observability.tracing import get_tracer, setup_tracing

__all__ = [
    # Logging
    "configure_logging",
    "get_logger",
    "TaskLog",
    # Tracing
    "setup_tracing",
    "get_tracer",
    # Metrics
    "get_metrics_content",
    "record_task_invocation",
    "record_task_started",
    "record_task_stopped",
]
