"""
GLSP Generator - Service Tokens

Stable identifiers for every service the default modules register.
Consumers resolve by token, never by implementation class.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Tuple

from di.identifiers import ServiceIdentifier

if TYPE_CHECKING:
    from di.health import HealthCheck, HealthCheckRegistry
    from di.wrappers import ServiceFactory
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
    from services.grammar import GrammarParser
    from services.linter import LinterConfig, LinterService


# =============================================================================
# CORE
# =============================================================================

LOGGER: ServiceIdentifier["LoggerService"] = ServiceIdentifier("Logger")
FILE_SYSTEM: ServiceIdentifier["FileSystemService"] = ServiceIdentifier("FileSystem")
CONFIGURATION: ServiceIdentifier["ConfigurationService"] = ServiceIdentifier("Configuration")
CACHE: ServiceIdentifier["CacheService"] = ServiceIdentifier("Cache")
EVENT_BUS: ServiceIdentifier["EventBus"] = ServiceIdentifier("EventBus")
METRICS: ServiceIdentifier["MetricsService"] = ServiceIdentifier("Metrics")
PROGRESS: ServiceIdentifier["ProgressService"] = ServiceIdentifier("Progress")
COMMAND_EXECUTOR: ServiceIdentifier["CommandExecutor"] = ServiceIdentifier("CommandExecutor")
TEMPLATE: ServiceIdentifier["TemplateService"] = ServiceIdentifier("Template")
VALIDATION: ServiceIdentifier["ValidationService"] = ServiceIdentifier("Validation")
HEALTH_CHECK_REGISTRY: ServiceIdentifier["HealthCheckRegistry"] = ServiceIdentifier(
    "HealthCheckRegistry", "Aggregates the HEALTH_CHECKS multi-binding"
)

# =============================================================================
# BUSINESS
# =============================================================================

GRAMMAR_PARSER: ServiceIdentifier["GrammarParser"] = ServiceIdentifier("GrammarParser")
LINTER: ServiceIdentifier["LinterService"] = ServiceIdentifier("Linter")
LINTER_CONFIG: ServiceIdentifier["LinterConfig"] = ServiceIdentifier("LinterConfig")
TYPE_SAFETY_GENERATOR: ServiceIdentifier["TypeSafetyGenerator"] = ServiceIdentifier("TypeSafetyGenerator")
TEST_GENERATOR: ServiceIdentifier["TestGenerator"] = ServiceIdentifier("TestGenerator")
PACKAGE_MANAGER: ServiceIdentifier["PackageManager"] = ServiceIdentifier("PackageManager")
DOCUMENTATION_GENERATOR: ServiceIdentifier["DocumentationGenerator"] = ServiceIdentifier(
    "DocumentationGenerator"
)
CICD_GENERATOR: ServiceIdentifier["CICDGenerator"] = ServiceIdentifier("CICDGenerator")

# =============================================================================
# FACTORIES
# =============================================================================

GRAMMAR_PARSER_FACTORY: ServiceIdentifier["ServiceFactory[GrammarParser]"] = ServiceIdentifier(
    "GrammarParserFactory"
)
LINTER_FACTORY: ServiceIdentifier["ServiceFactory[LinterService]"] = ServiceIdentifier(
    "LinterFactory", "create() or create(config: LinterConfig)"
)
TYPE_SAFETY_GENERATOR_FACTORY: ServiceIdentifier["ServiceFactory[TypeSafetyGenerator]"] = ServiceIdentifier(
    "TypeSafetyGeneratorFactory"
)
TEST_GENERATOR_FACTORY: ServiceIdentifier["ServiceFactory[TestGenerator]"] = ServiceIdentifier(
    "TestGeneratorFactory"
)
PACKAGE_MANAGER_FACTORY: ServiceIdentifier["ServiceFactory[PackageManager]"] = ServiceIdentifier(
    "PackageManagerFactory"
)

# =============================================================================
# HEALTH
# =============================================================================

HEALTH_CHECKS: ServiceIdentifier["HealthCheck"] = ServiceIdentifier(
    "HealthChecks", "Multi-binding; resolve with resolve_all()"
)

# =============================================================================
# GROUPS
# =============================================================================

REQUIRED_CORE_SERVICES: Tuple[ServiceIdentifier, ...] = (
    FILE_SYSTEM,
    LOGGER,
    CONFIGURATION,
    EVENT_BUS,
    METRICS,
)

REQUIRED_BUSINESS_SERVICES: Tuple[ServiceIdentifier, ...] = (
    GRAMMAR_PARSER,
    LINTER,
    TYPE_SAFETY_GENERATOR,
    TEST_GENERATOR,
    PACKAGE_MANAGER,
)

OPTIONAL_FACTORIES: Tuple[ServiceIdentifier, ...] = (
    GRAMMAR_PARSER_FACTORY,
    LINTER_FACTORY,
    TYPE_SAFETY_GENERATOR_FACTORY,
    TEST_GENERATOR_FACTORY,
    PACKAGE_MANAGER_FACTORY,
)


def by_name(name: str) -> Optional[ServiceIdentifier]:
    """Look up a token by its name, for entry points that take names as input."""
    for value in globals().values():
        if isinstance(value, ServiceIdentifier) and value.name == name:
            return value
    return None
