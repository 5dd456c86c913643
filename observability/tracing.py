"""
GLSP Generator - Tracing

OpenTelemetry spans around the container's build, validation and health
check passes. Without ``setup_tracing`` the API's proxy provider is used
and spans cost next to nothing.

Usage:
    setup_tracing(TracingConfig(enabled=True, console_export=True))

    with create_span("container.build", attributes={"di.modules": 4}):
        ...
"""
from __future__ import annotations

import os
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, Mapping, Optional

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
)
from opentelemetry.sdk.trace.sampling import (
    ALWAYS_OFF,
    ALWAYS_ON,
    ParentBased,
    Sampler,
    TraceIdRatioBased,
)
from opentelemetry.trace import SpanKind, Status, StatusCode

from observability.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TRACER = "glsp.di"

_tracer_provider: Optional[TracerProvider] = None
_initialized: bool = False


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class TracingConfig:
    """Tracing settings; disabled unless OTEL_TRACING_ENABLED is true."""

    service_name: str = "glsp-generator"
    service_version: str = "1.0.0"
    enabled: bool = field(default_factory=lambda: _env_flag("OTEL_TRACING_ENABLED"))
    sample_rate: float = field(
        default_factory=lambda: float(os.getenv("OTEL_SAMPLE_RATE", "1.0"))
    )
    otlp_export: bool = field(default_factory=lambda: _env_flag("OTEL_OTLP_EXPORT"))
    otlp_endpoint: str = field(
        default_factory=lambda: os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4317")
    )
    console_export: bool = field(default_factory=lambda: _env_flag("OTEL_CONSOLE_EXPORT"))
    environment: str = field(
        default_factory=lambda: os.getenv("ENVIRONMENT", "development")
    )


def sampler_for(rate: float) -> Sampler:
    """Always-on at 1.0 and above, always-off at 0 and below, else ratio-based."""
    if rate <= 0.0:
        return ALWAYS_OFF
    if rate >= 1.0:
        return ALWAYS_ON
    return ParentBased(root=TraceIdRatioBased(rate))


def _attach_exporters(provider: TracerProvider, config: TracingConfig) -> None:
    if config.otlp_export:
        try:
            exporter = OTLPSpanExporter(endpoint=config.otlp_endpoint, insecure=True)
        except Exception as e:
            logger.warning(
                "OTLP exporter unavailable", endpoint=config.otlp_endpoint, error=e
            )
        else:
            provider.add_span_processor(BatchSpanProcessor(exporter))

    if config.console_export:
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))


def setup_tracing(config: Optional[TracingConfig] = None) -> trace.TracerProvider:
    """
    Install a tracer provider for the process.

    Returns a no-op provider when tracing is disabled. Repeated calls
    return the provider installed by the first enabled call.
    """
    global _tracer_provider, _initialized

    if _initialized and _tracer_provider is not None:
        return _tracer_provider

    config = config or TracingConfig()

    if not config.enabled:
        _initialized = True
        return trace.NoOpTracerProvider()

    resource = Resource.create({
        SERVICE_NAME: config.service_name,
        SERVICE_VERSION: config.service_version,
        "deployment.environment": config.environment,
    })
    _tracer_provider = TracerProvider(resource=resource, sampler=sampler_for(config.sample_rate))
    _attach_exporters(_tracer_provider, config)

    trace.set_tracer_provider(_tracer_provider)
    _initialized = True
    logger.debug("Tracing enabled", sample_rate=config.sample_rate)

    return _tracer_provider


def get_tracer(name: str = DEFAULT_TRACER, version: str = "1.0.0") -> trace.Tracer:
    return trace.get_tracer(name, version)


def shutdown_tracing() -> None:
    """Flush pending spans and forget the provider."""
    global _tracer_provider, _initialized
    if _tracer_provider is not None:
        _tracer_provider.shutdown()
    _initialized = False
    _tracer_provider = None


def to_attribute(value: Any) -> Any:
    """
    Coerce a value to something a span attribute accepts.

    Primitives pass through, enums become their value and anything else
    (identifiers, containers, paths) its ``str``. ``None`` stays ``None``.
    """
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [str(to_attribute(item)) for item in value]
    return str(value)


def set_span_attributes(span: trace.Span, attributes: Mapping[str, Any]) -> None:
    """Set attributes on ``span``, skipping ``None`` values."""
    for key, value in attributes.items():
        value = to_attribute(value)
        if value is not None:
            span.set_attribute(key, value)


@contextmanager
def create_span(
    name: str,
    kind: SpanKind = SpanKind.INTERNAL,
    attributes: Optional[Dict[str, Any]] = None,
    tracer_name: str = DEFAULT_TRACER,
) -> Iterator[trace.Span]:
    """
    Open a span, recording any exception that escapes the block.

    The exception is re-raised after the span is marked as failed.
    """
    tracer = get_tracer(tracer_name)
    with tracer.start_as_current_span(
        name, kind=kind, record_exception=False, set_status_on_exception=False
    ) as span:
        if attributes:
            set_span_attributes(span, attributes)
        try:
            yield span
        except Exception as e:
            span.set_status(Status(StatusCode.ERROR, str(e)))
            span.record_exception(e)
            raise
