"""
GLSP Generator - Container Modules

A module groups related registrations. ``configure`` only registers: it
runs while the container is BUILDING, where any ``resolve`` call fails,
so factories must defer every lookup to resolution time.

Default composition order: Core -> Business -> Factory -> HealthCheck.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, List, Optional

from di.container import Container
from di.health import HealthCheck, HealthCheckRegistry
from di.identifiers import ServiceIdentifier
from di.tokens import (
    CACHE,
    CICD_GENERATOR,
    COMMAND_EXECUTOR,
    CONFIGURATION,
    DOCUMENTATION_GENERATOR,
    EVENT_BUS,
    FILE_SYSTEM,
    GRAMMAR_PARSER,
    GRAMMAR_PARSER_FACTORY,
    HEALTH_CHECK_REGISTRY,
    HEALTH_CHECKS,
    LINTER,
    LINTER_CONFIG,
    LINTER_FACTORY,
    LOGGER,
    METRICS,
    PACKAGE_MANAGER,
    PACKAGE_MANAGER_FACTORY,
    PROGRESS,
    TEMPLATE,
    TEST_GENERATOR,
    TEST_GENERATOR_FACTORY,
    TYPE_SAFETY_GENERATOR,
    TYPE_SAFETY_GENERATOR_FACTORY,
    VALIDATION,
)
from di.wrappers import factory_for
from services.core import (
    CacheService,
    CommandExecutor,
    ConfigurationService,
    EventBus,
    FileSystemService,
    LoggerService,
    MetricsService,
    ProgressService,
    TemplateService,
    ValidationService,
)
from services.generators import (
    CICDGenerator,
    DocumentationGenerator,
    PackageManager,
    TestGenerator,
    TypeSafetyGenerator,
)
from services.grammar import Grammar, GrammarParser
from services.linter import LinterConfig, LinterService


class Module(ABC):
    """Base class for container modules."""

    def __init__(self, name: Optional[str] = None) -> None:
        self._name = name or type(self).__name__

    @property
    def name(self) -> str:
        return self._name

    @abstractmethod
    def configure(self, container: Container) -> None:
        """Register bindings. Must not resolve anything."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"


class CallableModule(Module):
    """Wraps a plain ``configure(container)`` function as a module."""

    def __init__(self, configure: Callable[[Container], None], name: Optional[str] = None) -> None:
        super().__init__(name or getattr(configure, "__name__", "module"))
        self._configure = configure

    def configure(self, container: Container) -> None:
        self._configure(container)


def _logger_for(resolver: Container, component: str) -> LoggerService:
    return resolver.resolve(LOGGER).child(component)


def _build_health_registry(resolver: Container) -> HealthCheckRegistry:
    registry = HealthCheckRegistry()
    if resolver.is_registered(HEALTH_CHECKS):
        for check in resolver.resolve_all(HEALTH_CHECKS):
            registry.register_check(check.name, check.predicate)
    return registry


class CoreModule(Module):
    """Infrastructure services shared by everything else."""

    def configure(self, container: Container) -> None:
        container.register(LOGGER, lambda r: LoggerService("glsp-generator"))
        container.register(FILE_SYSTEM, lambda r: FileSystemService())
        container.register(CONFIGURATION, lambda r: ConfigurationService())
        container.register(CACHE, lambda r: CacheService.from_configuration(r.resolve(CONFIGURATION)))
        container.register(EVENT_BUS, lambda r: EventBus(_logger_for(r, "events")))
        container.register(METRICS, lambda r: MetricsService())
        container.register(PROGRESS, lambda r: ProgressService(_logger_for(r, "progress")))
        container.register(COMMAND_EXECUTOR, lambda r: CommandExecutor(_logger_for(r, "commands")))
        container.register(TEMPLATE, lambda r: TemplateService())
        container.register(VALIDATION, lambda r: ValidationService())
        container.register(HEALTH_CHECK_REGISTRY, _build_health_registry)


class BusinessModule(Module):
    """Parser, linter and the artefact generators."""

    def configure(self, container: Container) -> None:
        container.register_instance(LINTER_CONFIG, LinterConfig())
        container.register(
            GRAMMAR_PARSER,
            lambda r: GrammarParser(r.resolve(FILE_SYSTEM), _logger_for(r, "parser")),
        )
        container.register(
            LINTER,
            lambda r: LinterService(r.resolve(LINTER_CONFIG), _logger_for(r, "linter")),
        )
        container.register(TYPE_SAFETY_GENERATOR, lambda r: TypeSafetyGenerator(r.resolve(TEMPLATE)))
        container.register(TEST_GENERATOR, lambda r: TestGenerator(r.resolve(TEMPLATE)))
        container.register(DOCUMENTATION_GENERATOR, lambda r: DocumentationGenerator(r.resolve(TEMPLATE)))
        container.register(CICD_GENERATOR, lambda r: CICDGenerator(r.resolve(TEMPLATE)))
        container.register(
            PACKAGE_MANAGER,
            lambda r: PackageManager(r.resolve(COMMAND_EXECUTOR), r.resolve(FILE_SYSTEM)),
        )


def _build_parser(resolver: Container, file_system: Optional[FileSystemService] = None) -> GrammarParser:
    return GrammarParser(file_system or resolver.resolve(FILE_SYSTEM), _logger_for(resolver, "parser"))


def _build_linter(resolver: Container, config: Optional[LinterConfig] = None) -> LinterService:
    return LinterService(config or resolver.resolve(LINTER_CONFIG), _logger_for(resolver, "linter"))


def _build_package_manager(
    resolver: Container,
    executor: Optional[CommandExecutor] = None,
    file_system: Optional[FileSystemService] = None,
) -> PackageManager:
    return PackageManager(
        executor or resolver.resolve(COMMAND_EXECUTOR),
        file_system or resolver.resolve(FILE_SYSTEM),
    )


class FactoryModule(Module):
    """Factory wrappers; arguments to create() build fresh, unregistered instances."""

    def configure(self, container: Container) -> None:
        container.register(GRAMMAR_PARSER_FACTORY, factory_for(GRAMMAR_PARSER, _build_parser))
        container.register(LINTER_FACTORY, factory_for(LINTER, _build_linter))
        container.register(
            TYPE_SAFETY_GENERATOR_FACTORY,
            factory_for(TYPE_SAFETY_GENERATOR, lambda r, templates: TypeSafetyGenerator(templates)),
        )
        container.register(
            TEST_GENERATOR_FACTORY,
            factory_for(TEST_GENERATOR, lambda r, templates: TestGenerator(templates)),
        )
        container.register(PACKAGE_MANAGER_FACTORY, factory_for(PACKAGE_MANAGER, _build_package_manager))


_PROBE_GRAMMAR = "grammar HealthProbe\ninterface Probe { name: string }\n"


def _service_check(
    resolver: Container,
    identifier: ServiceIdentifier[Any],
    probe: Callable[[Any], bool],
) -> Callable[[], Awaitable[bool]]:
    async def check() -> bool:
        return probe(await resolver.resolve_async(identifier))

    return check


class HealthCheckModule(Module):
    """Availability checks for the services the generator cannot run without."""

    def configure(self, container: Container) -> None:
        self._add(container, "file-system", FILE_SYSTEM, lambda fs: fs.is_accessible())
        self._add(
            container,
            "grammar-parser",
            GRAMMAR_PARSER,
            lambda parser: parser.parse(_PROBE_GRAMMAR).project_name == "HealthProbe",
        )
        self._add(
            container,
            "linter",
            LINTER,
            lambda linter: isinstance(linter.lint(Grammar(project_name="HealthProbe")), list),
        )
        self._add(
            container,
            "template",
            TEMPLATE,
            lambda template: template.render("{{status}}", {"status": "ok"}) == "ok",
        )

    @staticmethod
    def _add(
        container: Container,
        name: str,
        identifier: ServiceIdentifier[Any],
        probe: Callable[[Any], bool],
    ) -> None:
        container.add_binding(
            HEALTH_CHECKS,
            lambda r: HealthCheck(name, _service_check(r, identifier, probe)),
        )


def default_modules() -> List[Module]:
    """Core, Business, Factory and HealthCheck modules, in dependency order."""
    return [CoreModule(), BusinessModule(), FactoryModule(), HealthCheckModule()]
