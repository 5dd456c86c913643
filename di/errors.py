"""
GLSP Generator - Container Error Taxonomy

Every failure raised by the container derives from ``DIError`` so callers
can separate composition problems from failures of the services themselves
(which reach them wrapped in ``FactoryError``).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

from core.errors import ErrorContext, ErrorSeverity, GeneratorError
from di.identifiers import ServiceIdentifier

if TYPE_CHECKING:
    from di.health import ValidationReport


def _name(identifier: Optional[ServiceIdentifier[Any]]) -> Optional[str]:
    return identifier.name if identifier is not None else None


class DIError(GeneratorError):
    """Base class for dependency injection errors."""

    error_code = "DI_ERROR"

    def __init__(
        self,
        message: str,
        identifier: Optional[ServiceIdentifier[Any]] = None,
        operation: str = "resolve",
        **kwargs: Any,
    ):
        self.identifier = identifier
        kwargs.setdefault(
            "context",
            ErrorContext.capture(
                operation=operation,
                component="di.container",
                service_name=_name(identifier),
            ),
        )
        super().__init__(message, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["identifier"] = _name(self.identifier)
        return data


class UnregisteredServiceError(DIError):
    """No registration exists for the identifier in the container or its parents."""

    error_code = "DI_UNREGISTERED"

    def __init__(self, identifier: ServiceIdentifier[Any]):
        super().__init__(
            f"Service '{identifier.name}' is not registered",
            identifier,
            suggestions=[f"Register '{identifier.name}' in a module before resolving it"],
        )


class CircularDependencyError(DIError):
    """
    Raised when an identifier is requested while it is already being built.

    ``path`` starts and ends with the repeated identifier, e.g. ``[B, C, B]``.
    """

    error_code = "DI_CIRCULAR_DEPENDENCY"

    def __init__(self, path: Sequence[ServiceIdentifier[Any]]):
        self.path: List[ServiceIdentifier[Any]] = list(path)
        chain = " -> ".join(identifier.name for identifier in self.path)
        super().__init__(
            f"Circular dependency detected: {chain}",
            self.path[-1] if self.path else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["path"] = [identifier.name for identifier in self.path]
        return data


class MaxResolutionDepthExceededError(DIError):
    """Resolution chain grew beyond ``max_resolution_depth``."""

    error_code = "DI_MAX_DEPTH"

    def __init__(
        self,
        identifier: ServiceIdentifier[Any],
        depth: int,
        max_depth: int,
        path: Sequence[ServiceIdentifier[Any]] = (),
    ):
        self.depth = depth
        self.max_depth = max_depth
        self.path: List[ServiceIdentifier[Any]] = list(path)
        super().__init__(
            f"Resolution depth {depth} exceeds maximum of {max_depth} "
            f"while resolving '{identifier.name}'",
            identifier,
        )


class FactoryError(DIError):
    """A service factory raised; the original exception is kept as ``cause``."""

    error_code = "DI_FACTORY_FAILED"

    def __init__(self, identifier: ServiceIdentifier[Any], cause: BaseException):
        super().__init__(
            f"Factory for '{identifier.name}' failed: {cause}",
            identifier,
            cause=cause,
        )


class DisposedContainerError(DIError):
    """The container (or scope) is disposing or has been disposed."""

    error_code = "DI_DISPOSED"

    def __init__(
        self,
        identifier: Optional[ServiceIdentifier[Any]] = None,
        operation: str = "resolve",
    ):
        target = f" '{identifier.name}'" if identifier is not None else ""
        super().__init__(
            f"Cannot {operation}{target}: container has been disposed",
            identifier,
            operation=operation,
        )


class AggregateDisposalError(DIError):
    """One or more teardowns failed; ``errors`` holds every failure in disposal order."""

    error_code = "DI_DISPOSAL_FAILED"
    default_severity = ErrorSeverity.WARNING

    def __init__(self, errors: Sequence[BaseException]):
        self.errors: List[BaseException] = list(errors)
        super().__init__(
            f"{len(self.errors)} disposal(s) failed: "
            + "; ".join(f"{type(e).__name__}: {e}" for e in self.errors),
            operation="dispose",
            recoverable=True,
        )


class DuplicateRegistrationError(DIError):
    """Identifier already bound while the duplicate policy is ERROR."""

    error_code = "DI_DUPLICATE_REGISTRATION"

    def __init__(self, identifier: ServiceIdentifier[Any]):
        super().__init__(
            f"Service '{identifier.name}' is already registered",
            identifier,
            operation="register",
        )


class InvalidRegistrationError(DIError):
    """Registration rejected by registration-time validation."""

    error_code = "DI_INVALID_REGISTRATION"

    def __init__(self, message: str, identifier: Optional[ServiceIdentifier[Any]] = None):
        super().__init__(message, identifier, operation="register")


class InvalidContainerStateError(DIError):
    """Operation not allowed in the container's current lifecycle state."""

    error_code = "DI_INVALID_STATE"

    def __init__(
        self,
        message: str,
        identifier: Optional[ServiceIdentifier[Any]] = None,
        operation: str = "transition",
    ):
        super().__init__(message, identifier, operation=operation)


class ModuleConfigurationError(DIError):
    """A module failed while configuring the container; ``build()`` aborts."""

    error_code = "DI_MODULE_CONFIGURATION"
    default_severity = ErrorSeverity.CRITICAL

    def __init__(self, module_name: str, cause: BaseException):
        self.module_name = module_name
        super().__init__(
            f"Module '{module_name}' failed to configure: {cause}",
            identifier=getattr(cause, "identifier", None),
            operation="build",
            cause=cause,
        )


class GlobalContainerNotInitializedError(DIError):
    """``get_global_container()`` called before ``initialize_global_container()``."""

    error_code = "DI_GLOBAL_NOT_INITIALIZED"

    def __init__(self) -> None:
        super().__init__(
            "Global container is not initialized",
            operation="get_global_container",
            suggestions=["Call initialize_global_container() during startup"],
        )


class ContainerValidationError(DIError):
    """Container failed validation; the full report is attached."""

    error_code = "DI_VALIDATION_FAILED"
    default_severity = ErrorSeverity.CRITICAL

    def __init__(self, report: "ValidationReport"):
        self.report = report
        super().__init__(
            "Container validation failed: " + "; ".join(report.errors),
            operation="validate",
        )
