"""
GLSP Generator - Health Checks and Container Validation

Named predicates assessing whether bound services are usable at runtime,
and the structured readiness report produced by ``validate_container``.

Health check failures are recorded, never raised, so a partially degraded
container still produces a complete report.
"""

from __future__ import annotations

import asyncio
import inspect
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Union

from di.errors import DIError
from di.identifiers import ServiceIdentifier
from di.tokens import (
    HEALTH_CHECK_REGISTRY,
    OPTIONAL_FACTORIES,
    REQUIRED_BUSINESS_SERVICES,
    REQUIRED_CORE_SERVICES,
)
from observability.logging import get_logger
from observability.tracing import create_span, set_span_attributes

logger = get_logger(__name__)

Predicate = Callable[[], Union[bool, Awaitable[bool]]]


class HealthStatus(Enum):
    """Aggregate health of the registered checks."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass(frozen=True)
class HealthCheck:
    """A named availability predicate, contributed as a multi-binding."""

    name: str
    predicate: Predicate


class HealthCheckRegistry:
    """
    Registry of named health predicates.

    Usage:
        registry = HealthCheckRegistry()
        registry.register_check("template", check_template)
        results = await registry.run_checks()   # {"template": True}
    """

    def __init__(self) -> None:
        self._checks: Dict[str, Predicate] = {}
        self._lock = threading.Lock()

    def register_check(self, name: str, predicate: Predicate) -> None:
        with self._lock:
            if name in self._checks:
                logger.warning("Replacing health check", check=name)
            self._checks[name] = predicate

    def unregister_check(self, name: str) -> bool:
        with self._lock:
            return self._checks.pop(name, None) is not None

    @property
    def check_names(self) -> List[str]:
        with self._lock:
            return list(self._checks)

    async def run_checks(self) -> Dict[str, bool]:
        """Run every check concurrently; a raising check counts as failed."""
        with self._lock:
            checks = list(self._checks.items())

        with create_span("health.run_checks", attributes={"health.checks": len(checks)}) as span:
            outcomes = await asyncio.gather(
                *(self._run_one(name, predicate) for name, predicate in checks)
            )
            results = {name: ok for (name, _), ok in zip(checks, outcomes)}
            span.set_attribute("health.failed", sum(1 for ok in outcomes if not ok))
        return results

    async def _run_one(self, name: str, predicate: Predicate) -> bool:
        try:
            result = predicate()
            if inspect.isawaitable(result):
                result = await result
            return bool(result)
        except Exception as e:
            logger.warning(
                "Health check raised",
                check=name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

    async def get_status(self) -> HealthStatus:
        results = await self.run_checks()
        if not results or all(results.values()):
            return HealthStatus.HEALTHY
        if not any(results.values()):
            return HealthStatus.UNHEALTHY
        return HealthStatus.DEGRADED


@dataclass
class ValidationReport:
    """Outcome of validate_container(); valid when there are no errors."""

    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    health: Dict[str, bool] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "health": dict(self.health),
        }


async def _probe(
    container: Any,
    identifiers: List[ServiceIdentifier[Any]],
    kind: str,
    sink: List[str],
) -> None:
    for identifier in identifiers:
        try:
            await container.resolve_async(identifier)
        except DIError as e:
            sink.append(f"Failed to resolve {kind} '{identifier.name}': {e.message}")


async def validate_container(container: Any) -> ValidationReport:
    """
    Check that a container can produce the generator's services.

    Core and business services that fail to resolve are errors; factory
    wrappers and health checks only produce warnings. Never raises for
    resolution problems.
    """
    report = ValidationReport()
    with create_span("container.validate", attributes={"di.container": container.name}) as span:
        await _probe(container, list(REQUIRED_CORE_SERVICES), "core service", report.errors)
        await _probe(container, list(REQUIRED_BUSINESS_SERVICES), "business service", report.errors)
        await _probe(container, list(OPTIONAL_FACTORIES), "factory", report.warnings)

        try:
            registry = await container.resolve_async(HEALTH_CHECK_REGISTRY)
        except DIError as e:
            report.warnings.append(f"Health check registry unavailable: {e.message}")
        else:
            report.health = await registry.run_checks()
            for name, ok in report.health.items():
                if not ok:
                    report.warnings.append(f"Health check '{name}' failed")

        set_span_attributes(span, {
            "di.validation.errors": len(report.errors),
            "di.validation.warnings": len(report.warnings),
        })

    for warning in report.warnings:
        logger.warning("Container validation warning", container=container.name, warning=warning)
    if report.errors:
        logger.error("Container validation failed", container=container.name, errors=report.errors)
    return report
