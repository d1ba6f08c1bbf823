"""Public observability primitives: structured logging and the pipeline event bus."""

from report_intelligence.observability.events import DispatchError, EventBus, Subscriber
from report_intelligence.observability.logging import (
    CORRELATION_KEYS,
    LoggingConfig,
    LoggingHandle,
    configure_logging,
    correlation_scope,
    get_active_logging_handle,
    get_correlation_context,
    shutdown_logging,
)

__all__ = [
    "CORRELATION_KEYS",
    "DispatchError",
    "EventBus",
    "LoggingConfig",
    "LoggingHandle",
    "Subscriber",
    "configure_logging",
    "correlation_scope",
    "get_active_logging_handle",
    "get_correlation_context",
    "shutdown_logging",
]
