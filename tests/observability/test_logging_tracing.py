"""
Tests for observability/logging.py and observability/tracing.py.

Covers:
- create_span attributes and error recording
- Spans around container build, validation and health checks
- structlog processors and context binding
- Tracing setup when disabled
"""
import logging
from unittest.mock import MagicMock, Mock, patch

import pytest
import structlog
from opentelemetry import trace
from opentelemetry.sdk.trace.sampling import ALWAYS_OFF, ALWAYS_ON, ParentBased

from config import test_container_config as make_test_config
from di.builder import ContainerBuilder
from di.health import HealthCheckRegistry, validate_container
from di.identifiers import ServiceIdentifier
from di.lifecycle import LifecycleState
from di.registry import ServiceLifetime
from observability.logging import (
    LogContext,
    LoggingConfig,
    add_service_context,
    add_trace_context,
    bind_context,
    build_processors,
    clear_context,
    current_trace_ids,
    render_values,
    set_log_level,
    unbind_context,
)
from observability.tracing import (
    TracingConfig,
    create_span,
    sampler_for,
    set_span_attributes,
    setup_tracing,
    to_attribute,
)


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def mock_tracer():
    """Create a mock tracer."""
    tracer = Mock()
    mock_span = MagicMock()
    mock_span.__enter__ = Mock(return_value=mock_span)
    mock_span.__exit__ = Mock(return_value=False)
    tracer.start_as_current_span = Mock(return_value=mock_span)
    return tracer, mock_span


@pytest.fixture(autouse=True)
def clean_log_context():
    clear_context()
    yield
    clear_context()


class TestCreateSpan:
    """Tests for create_span."""

    def test_sets_attributes(self, mock_tracer):
        tracer, mock_span = mock_tracer

        with patch("observability.tracing.get_tracer", return_value=tracer):
            with create_span("container.build", attributes={"di.modules": 4}) as span:
                assert span is mock_span

        tracer.start_as_current_span.assert_called_once()
        assert tracer.start_as_current_span.call_args.args[0] == "container.build"
        mock_span.set_attribute.assert_any_call("di.modules", 4)

    def test_records_exception(self, mock_tracer):
        tracer, mock_span = mock_tracer
        error = ValueError("boom")

        with patch("observability.tracing.get_tracer", return_value=tracer):
            with pytest.raises(ValueError):
                with create_span("container.validate"):
                    raise error

        mock_span.record_exception.assert_called_once_with(error)
        mock_span.set_status.assert_called_once()

    def test_works_without_provider(self):
        with create_span("noop") as span:
            span.set_attribute("key", "value")


class TestInstrumentedOperations:
    """Spans emitted by the container."""

    def test_build_is_traced(self):
        with patch("di.builder.create_span", MagicMock()) as mock_create_span:
            container = ContainerBuilder(make_test_config()).build()
        container.dispose()

        assert mock_create_span.call_args.args[0] == "container.build"
        assert mock_create_span.call_args.kwargs["attributes"]["di.modules"] == 0

    @pytest.mark.asyncio
    async def test_validation_is_traced(self, container):
        with patch("di.health.create_span", MagicMock()) as mock_create_span:
            await validate_container(container)

        span_names = [call.args[0] for call in mock_create_span.call_args_list]
        assert span_names == ["container.validate"]

    @pytest.mark.asyncio
    async def test_health_checks_are_traced(self):
        registry = HealthCheckRegistry()
        registry.register_check("ok", lambda: True)

        with patch("di.health.create_span", MagicMock()) as mock_create_span:
            await registry.run_checks()

        assert mock_create_span.call_args.args[0] == "health.run_checks"
        span = mock_create_span.return_value.__enter__.return_value
        span.set_attribute.assert_called_with("health.failed", 0)


class TestLoggingProcessors:
    """Tests for the structlog processors."""

    def test_service_context(self):
        processor = add_service_context("glsp-generator", "testing")
        event = processor(None, "info", {"event": "built"})

        assert event["service"] == "glsp-generator"
        assert event["environment"] == "testing"

    def test_trace_context_absent_without_span(self):
        event = add_trace_context(None, "info", {"event": "built"})
        assert "trace_id" not in event
        assert current_trace_ids() == {}

    def test_render_values_exceptions_and_enums(self):
        event = render_values(None, "error", {
            "event": "failed",
            "error": KeyError("x"),
            "lifetime": ServiceLifetime.SINGLETON,
            "state": LifecycleState.DISPOSED,
        })

        assert event["error"] == {"type": "KeyError", "message": "'x'"}
        assert event["lifetime"] == ServiceLifetime.SINGLETON.value
        assert event["state"] == LifecycleState.DISPOSED.value

    def test_render_values_leaves_plain_values(self):
        event = render_values(None, "error", {"event": "failed", "error": "plain", "count": 3})
        assert event == {"event": "failed", "error": "plain", "count": 3}

    @pytest.mark.parametrize("json_format,renderer", [
        (True, structlog.processors.JSONRenderer),
        (False, structlog.dev.ConsoleRenderer),
    ])
    def test_renderer_is_last(self, json_format, renderer):
        processors = build_processors(LoggingConfig(json_format=json_format))
        assert isinstance(processors[-1], renderer)

    def test_trace_context_optional(self):
        processors = build_processors(LoggingConfig(enable_trace_context=False))
        assert add_trace_context not in processors


class TestLogLevel:
    """Tests for set_log_level."""

    def test_adjusts_root_level_when_configured(self):
        root = logging.getLogger()
        previous = root.level
        try:
            with patch("observability.logging._configured", True):
                set_log_level("error")
            assert root.level == logging.ERROR
        finally:
            root.setLevel(previous)

    def test_configures_logging_first(self):
        with patch("observability.logging._configured", False), \
                patch("observability.logging.setup_logging") as mock_setup:
            set_log_level("debug")

        assert mock_setup.call_args.args[0].level == "debug"


class TestSpanAttributes:
    """Tests for attribute coercion."""

    def test_to_attribute(self):
        identifier = ServiceIdentifier("Parser")

        assert to_attribute(3) == 3
        assert to_attribute(None) is None
        assert to_attribute(ServiceLifetime.SCOPED) == ServiceLifetime.SCOPED.value
        assert to_attribute(identifier) == str(identifier)
        assert to_attribute([identifier, "x"]) == [str(identifier), "x"]

    def test_set_span_attributes_skips_none(self):
        span = MagicMock()
        set_span_attributes(span, {"di.container": "root", "di.scope": None})

        span.set_attribute.assert_called_once_with("di.container", "root")

    def test_sampler_for(self):
        assert sampler_for(0.0) is ALWAYS_OFF
        assert sampler_for(1.0) is ALWAYS_ON
        assert isinstance(sampler_for(0.5), ParentBased)


class TestLogContext:
    """Tests for context binding."""

    def test_log_context_binds_and_unbinds(self):
        with LogContext(container="root", phase="build"):
            bound = structlog.contextvars.get_contextvars()
            assert bound["container"] == "root"
            assert bound["phase"] == "build"

        assert "container" not in structlog.contextvars.get_contextvars()

    def test_bind_and_unbind(self):
        bind_context(request_id="abc")
        assert structlog.contextvars.get_contextvars()["request_id"] == "abc"

        unbind_context("request_id")
        assert "request_id" not in structlog.contextvars.get_contextvars()


class TestTracingSetup:
    """Tests for setup_tracing."""

    def test_disabled_returns_noop_provider(self):
        with patch("observability.tracing._initialized", False), \
                patch("observability.tracing._tracer_provider", None):
            provider = setup_tracing(TracingConfig(enabled=False))

        assert isinstance(provider, trace.NoOpTracerProvider)
