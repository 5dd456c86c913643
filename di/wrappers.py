"""
GLSP Generator - Factory Wrappers

Thin indirections handed to services that need to create other services
on demand. The wrapped callable captures what it needs; the container
itself is never exposed to the consumer.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Generic, Optional, TypeVar

from di.identifiers import ServiceIdentifier

T = TypeVar("T")

_UNSET = object()


class ServiceFactory(Generic[T]):
    """
    Parameterized creation of a service.

    Example:
        >>> linter_factory = container.resolve(LINTER_FACTORY)
        >>> strict = linter_factory.create(LinterConfig(strict=True))
    """

    def __init__(self, identifier: ServiceIdentifier[T], create: Callable[..., T]) -> None:
        self.identifier = identifier
        self._create = create

    def create(self, *args: Any, **kwargs: Any) -> T:
        return self._create(*args, **kwargs)

    __call__ = create

    def __repr__(self) -> str:
        return f"ServiceFactory({self.identifier.name!r})"


class Lazy(Generic[T]):
    """Resolves its target on first access and then keeps it."""

    def __init__(self, load: Callable[[], T]) -> None:
        self._load: Optional[Callable[[], T]] = load
        self._value: Any = _UNSET
        self._lock = threading.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._value is not _UNSET

    @property
    def value(self) -> T:
        if self._value is _UNSET:
            with self._lock:
                if self._value is _UNSET:
                    assert self._load is not None
                    self._value = self._load()
                    self._load = None
        return self._value


def factory_for(
    identifier: ServiceIdentifier[T],
    build: Optional[Callable[..., T]] = None,
) -> Callable[[Any], ServiceFactory[T]]:
    """
    Registration factory producing a ServiceFactory for ``identifier``.

    ``create()`` with no arguments resolves the registered service.
    ``create(*args, **kwargs)`` calls ``build(resolver, *args, **kwargs)``
    and returns a fresh instance the container does not cache or dispose.
    Without ``build`` only the no-argument form is accepted.

    Usage:
        container.register(LINTER_FACTORY, factory_for(LINTER, build_linter))
    """

    def make(resolver: Any) -> ServiceFactory[T]:
        def create(*args: Any, **kwargs: Any) -> T:
            if not args and not kwargs:
                return resolver.resolve(identifier)
            if build is None:
                raise TypeError(
                    f"Factory for '{identifier.name}' takes no arguments; "
                    "register it with a build function to pass any"
                )
            return build(resolver, *args, **kwargs)

        return ServiceFactory(identifier, create)

    return make


def lazy(resolver: Any, identifier: ServiceIdentifier[T]) -> Lazy[T]:
    """Deferred resolution of ``identifier`` through ``resolver``."""
    return Lazy(lambda: resolver.resolve(identifier))
