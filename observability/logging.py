"""
GLSP Generator - Structured Logging

structlog setup for the container and the generator services. Events carry
the ids of the active OpenTelemetry span, so registrations, state
transitions and disposal failures line up with the build and validation
spans.

The container presets drive the level through ``set_log_level``; the
renderer is chosen by ``LOG_FORMAT`` (``console`` or ``json``).

Usage:
    from observability.logging import get_logger

    logger = get_logger(__name__)
    logger.info("Container built", modules=4, services=31)
"""
from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

import structlog
from opentelemetry import trace
from structlog.types import EventDict, Processor, WrappedLogger

_configured: bool = False


@dataclass
class LoggingConfig:
    """Logging settings; fields default from the environment."""

    service_name: str = "glsp-generator"
    level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    json_format: bool = field(
        default_factory=lambda: os.getenv("LOG_FORMAT", "console").lower() == "json"
    )
    enable_trace_context: bool = True
    environment: str = field(
        default_factory=lambda: os.getenv("ENVIRONMENT", "development")
    )


def current_trace_ids() -> Dict[str, str]:
    """trace_id/span_id of the recording span, or an empty dict."""
    span = trace.get_current_span()
    if span is None or not span.is_recording():
        return {}
    ctx = span.get_span_context()
    if not ctx.is_valid:
        return {}
    return {"trace_id": format(ctx.trace_id, "032x"), "span_id": format(ctx.span_id, "016x")}


def add_trace_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Copy the active span ids into the event."""
    event_dict.update(current_trace_ids())
    return event_dict


def add_service_context(service_name: str, environment: str) -> Processor:
    """Processor stamping every event with the service name and environment."""

    def processor(
        logger: WrappedLogger,
        method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        event_dict["service"] = service_name
        event_dict["environment"] = environment
        return event_dict

    return processor


def render_values(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """
    Make container values printable.

    Exceptions become ``{"type", "message"}`` and enums (lifetimes,
    lifecycle states, health status) their value. Strings and other
    values pass through.
    """
    for key, value in list(event_dict.items()):
        if isinstance(value, BaseException):
            event_dict[key] = {"type": type(value).__name__, "message": str(value)}
        elif isinstance(value, Enum):
            event_dict[key] = value.value
    return event_dict


def _to_level(level: str) -> int:
    return getattr(logging, level.upper(), logging.INFO)


def build_processors(config: LoggingConfig) -> List[Processor]:
    """Processor chain for ``config``, renderer last."""
    processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_service_context(config.service_name, config.environment),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if config.enable_trace_context:
        processors.append(add_trace_context)
    processors.extend([
        render_values,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ])
    if config.json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))
    return processors


def setup_logging(config: Optional[LoggingConfig] = None) -> None:
    """Configure structlog over stdlib logging. Later calls are no-ops."""
    global _configured

    if _configured:
        return

    config = config or LoggingConfig()

    structlog.configure(
        processors=build_processors(config),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))

    root_logger = logging.getLogger()
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(_to_level(config.level))

    logging.getLogger("opentelemetry").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    _configured = True


def set_log_level(level: str) -> None:
    """Apply a preset's level, configuring logging first if needed."""
    if not _configured:
        setup_logging(LoggingConfig(level=level))
        return
    logging.getLogger().setLevel(_to_level(level))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def shutdown_logging() -> None:
    """Flush handlers; the next setup_logging call reconfigures."""
    global _configured

    for handler in logging.getLogger().handlers:
        handler.flush()

    _configured = False


class LogContext:
    """
    Bind key/values to every event logged inside the block.

    Example:
        >>> with LogContext(container="root", phase="build"):
        ...     logger.info("Applying modules")
    """

    def __init__(self, **kwargs: Any):
        self.context = kwargs

    def __enter__(self) -> "LogContext":
        structlog.contextvars.bind_contextvars(**self.context)
        return self

    def __exit__(self, *args: Any) -> None:
        structlog.contextvars.unbind_contextvars(*self.context.keys())

    async def __aenter__(self) -> "LogContext":
        return self.__enter__()

    async def __aexit__(self, *args: Any) -> None:
        self.__exit__(*args)


def bind_context(**kwargs: Any) -> None:
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
