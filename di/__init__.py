"""
GLSP Generator - Dependency Injection Module

The composition root of the generator. Every parser, linter and generator
is registered here under a stable token and resolved through the container,
never constructed directly by its consumers.

Provides:
- Opaque, typed service identifiers
- Singleton, Scoped and Transient lifetimes
- Cycle detection and a resolution depth limit
- Child scopes with overrides
- Module-based composition through ContainerBuilder
- Health checks and a structured validation report
- Reverse-order disposal

Design Principles:
    1. Composition Root: all wiring happens at startup, in modules
    2. Explicit Dependencies: factories list what they resolve
    3. No Reflection: tokens, not type hints, drive resolution
    4. Fail Loudly: no silent None for missing services

Usage:
    from di import create_default_container, tokens

    container = create_default_container()
    parser = container.resolve(tokens.GRAMMAR_PARSER)
    grammar = parser.parse(text)

    with container.create_scope() as scope:
        scope.register_instance(tokens.LINTER_CONFIG, strict_config)
        issues = scope.resolve(tokens.LINTER_FACTORY).create(strict_config).lint(grammar)

    container.dispose()
"""

from di import tokens
from di.builder import (
    ContainerBuilder,
    create_default_container,
    create_development_container,
    create_production_container,
    create_test_container,
)
from di.container import Container, ContainerStats, current_resolution_path
from di.errors import (
    AggregateDisposalError,
    CircularDependencyError,
    ContainerValidationError,
    DIError,
    DisposedContainerError,
    DuplicateRegistrationError,
    FactoryError,
    GlobalContainerNotInitializedError,
    InvalidContainerStateError,
    InvalidRegistrationError,
    MaxResolutionDepthExceededError,
    ModuleConfigurationError,
    UnregisteredServiceError,
)
from di.global_container import (
    dispose_global_container,
    get_global_container,
    has_global_container,
    initialize_global_container,
)
from di.health import (
    HealthCheck,
    HealthCheckRegistry,
    HealthStatus,
    ValidationReport,
    validate_container,
)
from di.identifiers import ServiceIdentifier
from di.lifecycle import DisposalManager, LifecycleState, is_disposable
from di.modules import (
    BusinessModule,
    CallableModule,
    CoreModule,
    FactoryModule,
    HealthCheckModule,
    Module,
    default_modules,
)
from di.registry import (
    DuplicateRegistrationPolicy,
    Registration,
    Registry,
    ServiceLifetime,
)
from di.scope import Scope
from di.wrappers import Lazy, ServiceFactory, factory_for, lazy

__all__ = [
    # ========================================================================
    # CORE COMPONENTS
    # ========================================================================

    "ServiceIdentifier",    # Opaque typed token
    "ServiceLifetime",      # Singleton, Scoped, Transient
    "Registration",         # Identifier + factory + lifetime
    "Registry",             # Registrations of one container
    "DuplicateRegistrationPolicy",
    "Container",            # Resolver
    "ContainerStats",
    "Scope",                # Child resolution context
    "LifecycleState",
    "DisposalManager",
    "is_disposable",
    "current_resolution_path",

    # ========================================================================
    # COMPOSITION
    # ========================================================================

    "Module",
    "CallableModule",
    "CoreModule",
    "BusinessModule",
    "FactoryModule",
    "HealthCheckModule",
    "default_modules",
    "ContainerBuilder",
    "create_default_container",
    "create_development_container",
    "create_production_container",
    "create_test_container",
    "tokens",

    # ========================================================================
    # WRAPPERS
    # ========================================================================

    "ServiceFactory",       # Parameterized creation
    "Lazy",                 # Deferred resolution
    "factory_for",
    "lazy",

    # ========================================================================
    # HEALTH AND VALIDATION
    # ========================================================================

    "HealthCheck",
    "HealthCheckRegistry",
    "HealthStatus",
    "ValidationReport",
    "validate_container",

    # ========================================================================
    # GLOBAL ACCESS
    # ========================================================================

    "initialize_global_container",
    "get_global_container",
    "has_global_container",
    "dispose_global_container",

    # ========================================================================
    # ERRORS
    # ========================================================================

    "DIError",
    "UnregisteredServiceError",
    "CircularDependencyError",
    "MaxResolutionDepthExceededError",
    "FactoryError",
    "DisposedContainerError",
    "AggregateDisposalError",
    "DuplicateRegistrationError",
    "InvalidRegistrationError",
    "InvalidContainerStateError",
    "ModuleConfigurationError",
    "GlobalContainerNotInitializedError",
    "ContainerValidationError",
]
