"""
GLSP Generator - Container Builder

Fluent composition of modules and configuration into an ACTIVE container,
plus the named container factories used by entry points and tests.

Usage:
    container = (
        ContainerBuilder(development_container_config())
        .with_default_modules()
        .with_module(CallableModule(register_overrides))
        .build()
    )
"""

from __future__ import annotations

import time
from typing import Callable, List, Optional

from config import (
    ContainerConfig,
    default_container_config,
    development_container_config,
    production_container_config,
    test_container_config,
)
from core.errors import GeneratorError
from di.container import Container
from di.errors import DIError, ModuleConfigurationError
from di.lifecycle import LifecycleState
from di.modules import CallableModule, Module, default_modules
from observability.logging import LogContext, get_logger, set_log_level
from observability.tracing import create_span

logger = get_logger(__name__)


class ContainerBuilder:
    """
    Builds a container from modules applied strictly in insertion order.

    A module that raises aborts ``build()`` with ModuleConfigurationError
    and the half-built container is disposed.
    """

    def __init__(self, config: Optional[ContainerConfig] = None) -> None:
        self._config = config or default_container_config()
        self._modules: List[Module] = []
        self._name = "root"

    @property
    def modules(self) -> List[Module]:
        return list(self._modules)

    @property
    def config(self) -> ContainerConfig:
        return self._config

    def with_config(self, config: ContainerConfig) -> "ContainerBuilder":
        self._config = config
        return self

    def with_name(self, name: str) -> "ContainerBuilder":
        self._name = name
        return self

    def with_module(self, module: Module | Callable[[Container], None]) -> "ContainerBuilder":
        if not isinstance(module, Module):
            module = CallableModule(module)
        self._modules.append(module)
        return self

    def with_modules(self, *modules: Module) -> "ContainerBuilder":
        for module in modules:
            self.with_module(module)
        return self

    def with_default_modules(self) -> "ContainerBuilder":
        """Core -> Business -> Factory -> HealthCheck."""
        return self.with_modules(*default_modules())

    def build(self) -> Container:
        started = time.perf_counter()
        container = Container(self._config, name=self._name, initial_state=LifecycleState.BUILDING)

        with create_span(
            "container.build",
            attributes={"di.container": self._name, "di.modules": len(self._modules)},
        ), LogContext(container=self._name):
            for module in self._modules:
                try:
                    module.configure(container)
                except Exception as e:
                    self._abort(container)
                    logger.error("Module configuration failed", module=module.name, error=str(e))
                    raise ModuleConfigurationError(module.name, e) from e

            container.transition_to(LifecycleState.CONFIGURED)
            container.transition_to(LifecycleState.ACTIVE)

            if not self._config.enable_lazy_loading:
                self._warm_up(container)

        logger.info(
            "Container built",
            container=self._name,
            modules=[module.name for module in self._modules],
            services=container.stats().registered_services,
            duration_ms=round((time.perf_counter() - started) * 1000.0, 3),
        )
        return container

    def _warm_up(self, container: Container) -> None:
        """Create every synchronous singleton now, in registration order."""
        for registration in container.eager_singletons():
            try:
                container.resolve(registration.identifier)
            except DIError:
                self._abort(container)
                raise

    @staticmethod
    def _abort(container: Container) -> None:
        try:
            container.dispose()
        except GeneratorError as e:
            logger.warning("Disposal of partially built container failed", error=str(e))


# =============================================================================
# NAMED CONTAINER FACTORIES
# =============================================================================


def _create(config: ContainerConfig) -> Container:
    set_log_level(config.log_level.value)
    return ContainerBuilder(config).with_default_modules().build()


def create_default_container() -> Container:
    """Validation and cycle detection on, depth 50, info logging."""
    return _create(default_container_config())


def create_development_container() -> Container:
    """Validation and cycle detection on, depth 100, debug logging, eager singletons."""
    return _create(development_container_config())


def create_production_container() -> Container:
    """Validation and cycle detection off, depth 30, warning logging."""
    return _create(production_container_config())


def create_test_container() -> Container:
    """Validation and cycle detection on, depth 50, error logging, eager singletons."""
    return _create(test_container_config())
