"""
GLSP Generator - Unified Error Handling

Base error type shared by the container and the services it composes.
Every error carries a structured context, a severity and the chain of
underlying causes, and marks the active OpenTelemetry span as failed.

Example:
    try:
        parser = container.resolve(GRAMMAR_PARSER)
    except GeneratorError as e:
        logger.error("Startup failed", **e.to_dict())
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from observability.logging import current_trace_ids


class ErrorSeverity(Enum):
    """How urgently an error needs attention."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"    # Degraded, e.g. a failed teardown
    ERROR = "error"        # The requested operation failed
    CRITICAL = "critical"  # The composition root is unusable

    @property
    def is_failure(self) -> bool:
        return self in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL)


@dataclass
class ErrorContext:
    """Where an error happened: component, operation and the service involved."""

    operation: str
    component: str
    service_name: Optional[str] = None
    trace_id: Optional[str] = None
    span_id: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def capture(cls, operation: str, component: str, **kwargs: Any) -> "ErrorContext":
        """Build a context stamped with the ids of the active span, if any."""
        return cls(operation=operation, component=component, **current_trace_ids(), **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "operation": self.operation,
            "component": self.component,
            "timestamp": self.timestamp.isoformat(),
        }
        for key in ("service_name", "trace_id", "span_id"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        if self.metadata:
            data["metadata"] = dict(self.metadata)
        return data


class GeneratorError(Exception):
    """
    Base exception for all generator errors.

    Attributes:
        message: Human readable description
        context: Where the error happened
        severity: Defaults to the class' ``default_severity``
        cause: The exception this one wraps, if any
        recoverable: Whether the caller may retry or continue
        suggestions: Hints for fixing the problem
    """

    default_severity: ErrorSeverity = ErrorSeverity.ERROR
    error_code: str = "GENERATOR_ERROR"

    def __init__(
        self,
        message: str,
        context: Optional[ErrorContext] = None,
        severity: Optional[ErrorSeverity] = None,
        cause: Optional[BaseException] = None,
        recoverable: bool = False,
        suggestions: Optional[List[str]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.context = context
        self.severity = severity or self.default_severity
        self.cause = cause
        self.recoverable = recoverable
        self.suggestions = list(suggestions or [])

        self._record_to_span()

    def causes(self) -> List[BaseException]:
        """The wrapped exceptions, outermost first."""
        chain: List[BaseException] = []
        current: Optional[BaseException] = self.cause
        while current is not None and current not in chain:
            chain.append(current)
            if isinstance(current, GeneratorError):
                current = current.cause
            else:
                current = current.__cause__
        return chain

    @property
    def root_cause(self) -> BaseException:
        """Innermost wrapped exception, or this error when nothing is wrapped."""
        chain = self.causes()
        return chain[-1] if chain else self

    def _record_to_span(self) -> None:
        span = trace.get_current_span()
        if span is None or not span.is_recording():
            return
        if self.severity.is_failure:
            span.set_status(Status(StatusCode.ERROR, self.message))
        span.record_exception(self)
        span.set_attribute("error.code", self.error_code)
        span.set_attribute("error.severity", self.severity.value)
        if self.context is not None:
            span.set_attribute("error.component", self.context.component)
            span.set_attribute("error.operation", self.context.operation)

    def to_dict(self) -> Dict[str, Any]:
        """Structured form used in logs and validation reports."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "severity": self.severity.value,
            "recoverable": self.recoverable,
            "suggestions": list(self.suggestions),
            "context": self.context.to_dict() if self.context else None,
            "causes": [f"{type(e).__name__}: {e}" for e in self.causes()],
        }

    def with_context(self, **metadata: Any) -> "GeneratorError":
        """Attach extra metadata and return self, for use in ``raise ... from``."""
        if self.context is None:
            self.context = ErrorContext(operation="unknown", component="unknown")
        self.context.metadata.update(metadata)
        return self

    def __str__(self) -> str:
        text = f"[{self.error_code}] {self.message}"
        if self.context is not None:
            text += f" ({self.context.component}.{self.context.operation})"
        return text
