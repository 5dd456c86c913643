"""
GLSP Generator - Observability Package

Structured logging and distributed tracing for the generator.

Components:
- logging: structlog integration with trace context propagation
- tracing: OpenTelemetry spans around container build, validation and health checks

Usage:
    from observability import setup_observability, get_logger

    setup_observability(LoggingConfig(level="DEBUG"), TracingConfig(enabled=True))
    logger = get_logger(__name__)
"""
from typing import Optional

from observability.logging import (
    LogContext,
    LoggingConfig,
    bind_context,
    clear_context,
    get_logger,
    set_log_level,
    setup_logging,
    shutdown_logging,
    unbind_context,
)
from observability.tracing import (
    TracingConfig,
    create_span,
    get_tracer,
    setup_tracing,
    shutdown_tracing,
)


def setup_observability(
    logging_config: Optional[LoggingConfig] = None,
    tracing_config: Optional[TracingConfig] = None,
) -> None:
    """Initialize logging, then tracing."""
    setup_logging(logging_config)
    setup_tracing(tracing_config)


def shutdown_observability() -> None:
    """Flush spans and close log handlers."""
    shutdown_tracing()
    shutdown_logging()


__all__ = [
    # Setup
    "setup_observability",
    "shutdown_observability",
    # Logging
    "LoggingConfig",
    "LogContext",
    "setup_logging",
    "shutdown_logging",
    "set_log_level",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    # Tracing
    "TracingConfig",
    "setup_tracing",
    "shutdown_tracing",
    "get_tracer",
    "create_span",
]
