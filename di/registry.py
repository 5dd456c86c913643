"""
GLSP Generator - Service Registry

Maps service identifiers to registration records. The registry is
read-mostly once the container is built; writes are serialized so that
test overrides on a live container never observe a half-applied change.
"""

from __future__ import annotations

import inspect
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

from di.errors import DuplicateRegistrationError
from di.identifiers import ServiceIdentifier
from observability.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

_NO_INSTANCE = object()


class ServiceLifetime(Enum):
    """Service lifetime options."""

    SINGLETON = "singleton"  # One instance per owning container
    SCOPED = "scoped"        # One instance per scope
    TRANSIENT = "transient"  # New instance every time


class DuplicateRegistrationPolicy(Enum):
    """What happens when an identifier is registered twice."""

    WARN = "warn"        # Replace and log a warning
    REPLACE = "replace"  # Replace silently
    ERROR = "error"      # Raise DuplicateRegistrationError


@dataclass(frozen=True, eq=False)
class Registration(Generic[T]):
    """
    Immutable binding of an identifier to a factory and a lifetime.

    Registrations hash by identity, so the container can key its caches
    and creation locks by the record itself: replacing a binding never
    hands out an instance built by the old factory.
    """

    identifier: ServiceIdentifier[T]
    factory: Callable[[Any], Any]
    lifetime: ServiceLifetime = ServiceLifetime.SINGLETON
    instance: Any = field(default=_NO_INSTANCE, repr=False)

    @property
    def is_async(self) -> bool:
        return inspect.iscoroutinefunction(self.factory)

    @property
    def has_instance(self) -> bool:
        """True for pre-built values bound with ``register_instance``."""
        return self.instance is not _NO_INSTANCE

    @classmethod
    def for_instance(cls, identifier: ServiceIdentifier[T], value: T) -> "Registration[T]":
        return cls(
            identifier=identifier,
            factory=lambda _resolver: value,
            lifetime=ServiceLifetime.SINGLETON,
            instance=value,
        )


class Registry:
    """Single and multi-binding registrations of one container."""

    def __init__(
        self,
        policy: DuplicateRegistrationPolicy = DuplicateRegistrationPolicy.WARN,
    ) -> None:
        self.policy = policy
        self._registrations: Dict[ServiceIdentifier[Any], Registration[Any]] = {}
        self._bindings: Dict[ServiceIdentifier[Any], List[Registration[Any]]] = {}
        self._lock = threading.Lock()

    def add(self, registration: Registration[Any]) -> Optional[Registration[Any]]:
        """
        Store a registration, applying the duplicate policy.

        Returns:
            The replaced registration, if any.
        """
        identifier = registration.identifier
        with self._lock:
            previous = self._registrations.get(identifier)
            if previous is not None:
                if self.policy is DuplicateRegistrationPolicy.ERROR:
                    raise DuplicateRegistrationError(identifier)
                if self.policy is DuplicateRegistrationPolicy.WARN:
                    logger.warning(
                        "Replacing existing registration",
                        service=identifier.name,
                        previous_lifetime=previous.lifetime.value,
                        lifetime=registration.lifetime.value,
                    )
            self._registrations[identifier] = registration
        return previous

    def append(self, registration: Registration[Any]) -> None:
        """Add one element to the multi-binding list of the identifier."""
        with self._lock:
            self._bindings.setdefault(registration.identifier, []).append(registration)

    def get(self, identifier: ServiceIdentifier[T]) -> Optional[Registration[T]]:
        return self._registrations.get(identifier)

    def get_bindings(self, identifier: ServiceIdentifier[T]) -> List[Registration[T]]:
        with self._lock:
            return list(self._bindings.get(identifier, ()))

    def has_bindings(self, identifier: ServiceIdentifier[Any]) -> bool:
        return bool(self._bindings.get(identifier))

    def registrations(self) -> List[Registration[Any]]:
        """Single registrations in first-registration order."""
        with self._lock:
            return list(self._registrations.values())

    @property
    def binding_count(self) -> int:
        with self._lock:
            return sum(len(items) for items in self._bindings.values())

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._registrations or identifier in self._bindings

    def __len__(self) -> int:
        return len(self._registrations)
