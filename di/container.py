"""
GLSP Generator - Dependency Injection Container

Provides the IoC container that composes and resolves the generator's
services.

Features:
- Singleton, Scoped and Transient lifetimes
- Sync and async resolution with per-identifier creation locks
- Circular dependency detection and a resolution depth limit
- Multi-bindings resolved with resolve_all()
- Child scopes with their own caches and overrides
- Reverse-creation-order disposal with aggregated failures

Usage:
    container = Container()
    container.register(CONFIG, lambda r: load_config())
    container.register(PARSER, lambda r: GrammarParser(r.resolve(CONFIG)))

    parser = container.resolve(PARSER)
    container.dispose()
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import contextlib
import inspect
import itertools
import threading
import time
from contextvars import ContextVar
from dataclasses import asdict, dataclass
from typing import (
    TYPE_CHECKING,
    Any,
    Awaitable,
    Callable,
    Dict,
    List,
    Optional,
    Tuple,
    TypeVar,
    Union,
)

from config import ContainerConfig
from di.errors import (
    AggregateDisposalError,
    CircularDependencyError,
    DIError,
    DisposedContainerError,
    FactoryError,
    InvalidContainerStateError,
    InvalidRegistrationError,
    MaxResolutionDepthExceededError,
    UnregisteredServiceError,
)
from di.identifiers import ServiceIdentifier
from di.lifecycle import DisposalManager, Lifecycle, LifecycleState
from di.registry import (
    DuplicateRegistrationPolicy,
    Registration,
    Registry,
    ServiceLifetime,
)
from observability.logging import get_logger

if TYPE_CHECKING:
    from di.scope import Scope

logger = get_logger(__name__)

T = TypeVar("T")

Factory = Callable[["Container"], Union[T, Awaitable[T]]]

_MISSING = object()

# Identifiers under construction in the current logical call tree. Threads
# start with an empty stack; asyncio tasks inherit a copy.
_resolution_stack: ContextVar[Tuple[ServiceIdentifier[Any], ...]] = ContextVar(
    "di_resolution_stack", default=()
)
_cancellation: ContextVar[Optional[asyncio.Event]] = ContextVar(
    "di_cancellation", default=None
)

_scope_ids = itertools.count(1)


def current_resolution_path() -> List[ServiceIdentifier[Any]]:
    """Identifiers being resolved in the current call tree, outermost first."""
    return list(_resolution_stack.get())


@dataclass(frozen=True)
class ContainerStats:
    """Point-in-time statistics of a container."""

    registered_services: int
    multi_bindings: int
    cached_instances: int
    tracked_disposables: int
    active_scopes: int
    total_resolutions: int
    failed_resolutions: int
    average_resolution_ms: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ResolutionMetrics:
    """Counts top-level and nested resolutions and their timings."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.total = 0
        self.failed = 0
        self._elapsed = 0.0

    def record(self, elapsed: float, failed: bool) -> None:
        with self._lock:
            self.total += 1
            self._elapsed += elapsed
            if failed:
                self.failed += 1

    @property
    def average_ms(self) -> float:
        with self._lock:
            return (self._elapsed / self.total) * 1000.0 if self.total else 0.0


async def _await_cancellable(awaitable: Awaitable[T], token: Optional[asyncio.Event]) -> T:
    """Await ``awaitable``, cancelling it when ``token`` is set first."""
    if token is None:
        return await awaitable
    task = asyncio.ensure_future(awaitable)
    if token.is_set():
        task.cancel()
        raise asyncio.CancelledError("resolution cancelled")
    waiter = asyncio.ensure_future(token.wait())
    try:
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        waiter.cancel()
        raise
    if task.done():
        waiter.cancel()
        return task.result()
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task
    raise asyncio.CancelledError("resolution cancelled")


class Container:
    """
    Dependency Injection Container.

    Manages service registration, resolution, and lifecycle. Factories
    receive the container that owns the instance being built:
    the registering container for singletons, the nearest scope for
    scoped services and the asking container for transients.

    Usage:
        container = Container()

        container.register(DATABASE, lambda r: DatabaseClient())
        container.register_scoped(REQUEST, lambda r: Request(r.resolve(DATABASE)))
        container.register_instance(SETTINGS, settings)

        with container.create_scope() as scope:
            request = scope.resolve(REQUEST)
    """

    def __init__(
        self,
        config: Optional[ContainerConfig] = None,
        *,
        parent: Optional["Container"] = None,
        name: Optional[str] = None,
        initial_state: LifecycleState = LifecycleState.ACTIVE,
    ) -> None:
        self._config = config or (parent.config if parent is not None else ContainerConfig())
        self._parent = parent
        self._root: Container = parent._root if parent is not None else self
        self.name = name or "root"

        self._registry = Registry(DuplicateRegistrationPolicy(self._config.duplicate_policy))
        self._cache: Dict[Registration[Any], Any] = {}
        self._sync_locks: Dict[Registration[Any], threading.Lock] = {}
        self._pending: Dict[Registration[Any], concurrent.futures.Future] = {}
        self._locks_guard = threading.Lock()

        self._children: Dict["Container", None] = {}
        self._children_lock = threading.Lock()

        self._lifecycle = Lifecycle(self.name, initial_state)
        self._disposables = DisposalManager(self.name)
        self._metrics = ResolutionMetrics()

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def config(self) -> ContainerConfig:
        return self._config

    @property
    def parent(self) -> Optional["Container"]:
        return self._parent

    @property
    def root(self) -> "Container":
        return self._root

    @property
    def state(self) -> LifecycleState:
        return self._lifecycle.state

    @property
    def is_disposed(self) -> bool:
        return self._lifecycle.is_disposed

    def transition_to(self, state: LifecycleState) -> None:
        """Advance the lifecycle; used by ContainerBuilder."""
        self._lifecycle.transition(state)

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def register(
        self,
        identifier: ServiceIdentifier[T],
        factory: Factory[T],
        lifetime: ServiceLifetime = ServiceLifetime.SINGLETON,
    ) -> "Container":
        """Register a factory receiving the resolving container."""
        self._validate_registration(identifier, factory, lifetime)
        self._store(Registration(identifier=identifier, factory=factory, lifetime=lifetime))
        return self

    def register_singleton(self, identifier: ServiceIdentifier[T], factory: Factory[T]) -> "Container":
        """Register a singleton service."""
        return self.register(identifier, factory, ServiceLifetime.SINGLETON)

    def register_scoped(self, identifier: ServiceIdentifier[T], factory: Factory[T]) -> "Container":
        """Register a scoped service."""
        return self.register(identifier, factory, ServiceLifetime.SCOPED)

    def register_transient(self, identifier: ServiceIdentifier[T], factory: Factory[T]) -> "Container":
        """Register a transient service."""
        return self.register(identifier, factory, ServiceLifetime.TRANSIENT)

    def register_factory(
        self,
        identifier: ServiceIdentifier[T],
        factory: Callable[[], Union[T, Awaitable[T]]],
        lifetime: ServiceLifetime = ServiceLifetime.SINGLETON,
    ) -> "Container":
        """Register a zero-argument factory function for creating instances."""
        self._validate_registration(identifier, factory, lifetime)
        if inspect.iscoroutinefunction(factory):
            async def adapter(_resolver: "Container") -> T:
                return await factory()
        else:
            def adapter(_resolver: "Container") -> T:
                return factory()
        self._store(Registration(identifier=identifier, factory=adapter, lifetime=lifetime))
        return self

    def register_instance(self, identifier: ServiceIdentifier[T], instance: T) -> "Container":
        """
        Register an existing instance as singleton.

        On a scope the binding shadows the parent's for that scope only.
        The container never disposes instances it did not create.
        """
        self._validate_registration(identifier, None, ServiceLifetime.SINGLETON)
        self._store(Registration.for_instance(identifier, instance))
        return self

    def add_binding(
        self,
        identifier: ServiceIdentifier[T],
        factory: Factory[T],
        lifetime: ServiceLifetime = ServiceLifetime.SINGLETON,
    ) -> "Container":
        """Append an element to the multi-binding list read by resolve_all()."""
        self._validate_registration(identifier, factory, lifetime)
        self._ensure_can_register(identifier)
        self._registry.append(Registration(identifier=identifier, factory=factory, lifetime=lifetime))
        return self

    def _store(self, registration: Registration[Any]) -> None:
        self._ensure_can_register(registration.identifier)
        replaced = self._registry.add(registration)
        if replaced is not None:
            with self._locks_guard:
                self._cache.pop(replaced, None)
                self._sync_locks.pop(replaced, None)
                self._pending.pop(replaced, None)

    def _ensure_can_register(self, identifier: ServiceIdentifier[Any]) -> None:
        if self._lifecycle.is_disposed:
            raise DisposedContainerError(identifier, operation="register")

    def _validate_registration(
        self,
        identifier: Any,
        factory: Any,
        lifetime: Any,
    ) -> None:
        if not self._config.enable_validation:
            return
        if not isinstance(identifier, ServiceIdentifier):
            raise InvalidRegistrationError(
                f"Expected a ServiceIdentifier, got {type(identifier).__name__}"
            )
        if factory is not None and not callable(factory):
            raise InvalidRegistrationError(
                f"Factory for '{identifier.name}' is not callable", identifier
            )
        if not isinstance(lifetime, ServiceLifetime):
            raise InvalidRegistrationError(
                f"Invalid lifetime {lifetime!r} for '{identifier.name}'", identifier
            )

    # =========================================================================
    # LOOKUP
    # =========================================================================

    def _find(
        self, identifier: ServiceIdentifier[T]
    ) -> Optional[Tuple[Registration[T], "Container"]]:
        container: Optional[Container] = self
        while container is not None:
            registration = container._registry.get(identifier)
            if registration is not None:
                return registration, container
            container = container._parent
        return None

    def _find_bindings(
        self, identifier: ServiceIdentifier[T]
    ) -> Tuple[List[Registration[T]], Optional["Container"]]:
        container: Optional[Container] = self
        while container is not None:
            bindings = container._registry.get_bindings(identifier)
            if bindings:
                return bindings, container
            container = container._parent
        return [], None

    def get_registration(self, identifier: ServiceIdentifier[T]) -> Optional[Registration[T]]:
        """Registration for the identifier, local first, then the parent chain."""
        found = self._find(identifier)
        return found[0] if found is not None else None

    def is_registered(self, identifier: ServiceIdentifier[Any]) -> bool:
        """True when the identifier has a single or multi-binding here or in a parent."""
        container: Optional[Container] = self
        while container is not None:
            if identifier in container._registry:
                return True
            container = container._parent
        return False

    # =========================================================================
    # RESOLUTION
    # =========================================================================

    def resolve(self, identifier: ServiceIdentifier[T], *, track_disposal: bool = False) -> T:
        """
        Resolve a service instance.

        Args:
            identifier: Token of the service to resolve
            track_disposal: Record a transient instance for disposal

        Raises:
            UnregisteredServiceError: nothing is bound to the identifier
            CircularDependencyError: the identifier is already being built
            MaxResolutionDepthExceededError: the chain is too deep
            FactoryError: the factory raised
            DisposedContainerError: the container is disposed
        """
        stack = self._enter(identifier)
        token = _resolution_stack.set(stack + (identifier,))
        started = time.perf_counter()
        failed = True
        try:
            found = self._find(identifier)
            if found is None:
                raise UnregisteredServiceError(identifier)
            registration, holder = found
            instance = self._instantiate(registration, holder, identifier in stack, track_disposal)
            failed = False
            return instance
        finally:
            _resolution_stack.reset(token)
            self._metrics.record(time.perf_counter() - started, failed)

    async def resolve_async(
        self,
        identifier: ServiceIdentifier[T],
        cancellation_token: Optional[asyncio.Event] = None,
        *,
        track_disposal: bool = False,
    ) -> T:
        """
        Resolve a service instance, awaiting asynchronous factories.

        Setting ``cancellation_token`` while a factory is pending cancels it
        and raises ``asyncio.CancelledError``. Nested resolve_async calls made
        by factories inherit the token.
        """
        token_var = None
        if cancellation_token is not None:
            token_var = _cancellation.set(cancellation_token)
        try:
            cancel = _cancellation.get()
            if cancel is not None and cancel.is_set():
                raise asyncio.CancelledError("resolution cancelled")
            stack = self._enter(identifier)
            token = _resolution_stack.set(stack + (identifier,))
            started = time.perf_counter()
            failed = True
            try:
                found = self._find(identifier)
                if found is None:
                    raise UnregisteredServiceError(identifier)
                registration, holder = found
                instance = await self._instantiate_async(
                    registration, holder, identifier in stack, track_disposal
                )
                failed = False
                return instance
            finally:
                _resolution_stack.reset(token)
                self._metrics.record(time.perf_counter() - started, failed)
        finally:
            if token_var is not None:
                _cancellation.reset(token_var)

    def try_resolve(self, identifier: ServiceIdentifier[T]) -> Optional[T]:
        """Resolve, returning None only when the identifier is not registered."""
        try:
            return self.resolve(identifier)
        except UnregisteredServiceError as e:
            if e.identifier is identifier:
                return None
            raise

    def resolve_all(self, identifier: ServiceIdentifier[T]) -> List[T]:
        """Resolve every multi-binding of the identifier, in registration order."""
        stack = self._enter(identifier)
        token = _resolution_stack.set(stack + (identifier,))
        try:
            return [
                self._instantiate(registration, holder, identifier in stack, False)
                for registration, holder in self._all_registrations(identifier)
            ]
        finally:
            _resolution_stack.reset(token)

    async def resolve_all_async(self, identifier: ServiceIdentifier[T]) -> List[T]:
        """Async variant of resolve_all()."""
        stack = self._enter(identifier)
        token = _resolution_stack.set(stack + (identifier,))
        try:
            instances = []
            for registration, holder in self._all_registrations(identifier):
                instances.append(
                    await self._instantiate_async(registration, holder, identifier in stack, False)
                )
            return instances
        finally:
            _resolution_stack.reset(token)

    def _all_registrations(
        self, identifier: ServiceIdentifier[T]
    ) -> List[Tuple[Registration[T], "Container"]]:
        bindings, holder = self._find_bindings(identifier)
        if bindings:
            return [(registration, holder) for registration in bindings]
        found = self._find(identifier)
        if found is None:
            raise UnregisteredServiceError(identifier)
        return [found]

    def _enter(self, identifier: ServiceIdentifier[Any]) -> Tuple[ServiceIdentifier[Any], ...]:
        """Check state, cycles and depth; return the current stack."""
        state = self._lifecycle.state
        if state in (LifecycleState.DISPOSING, LifecycleState.DISPOSED):
            raise DisposedContainerError(identifier)
        if state is not LifecycleState.ACTIVE:
            raise InvalidContainerStateError(
                f"Cannot resolve '{identifier.name}' while container '{self.name}' "
                f"is {state.value}; modules must only register during configure",
                identifier,
                operation="resolve",
            )

        stack = _resolution_stack.get()
        if self._config.enable_circular_dependency_detection and identifier in stack:
            path = list(stack[stack.index(identifier):]) + [identifier]
            raise CircularDependencyError(path)
        if len(stack) + 1 > self._config.max_resolution_depth:
            raise MaxResolutionDepthExceededError(
                identifier,
                depth=len(stack) + 1,
                max_depth=self._config.max_resolution_depth,
                path=list(stack) + [identifier],
            )
        return stack

    def _owner_for(self, registration: Registration[Any], holder: "Container") -> "Container":
        if registration.lifetime is ServiceLifetime.SINGLETON:
            return holder
        return self

    def _instantiate(
        self,
        registration: Registration[T],
        holder: "Container",
        reentrant: bool,
        track_disposal: bool,
    ) -> T:
        if registration.has_instance:
            return registration.instance
        if registration.lifetime is ServiceLifetime.TRANSIENT:
            instance = self._invoke(registration)
            if track_disposal:
                self._disposables.track(instance, registration.identifier.name)
            return instance
        return self._owner_for(registration, holder)._get_or_create(registration, reentrant)

    async def _instantiate_async(
        self,
        registration: Registration[T],
        holder: "Container",
        reentrant: bool,
        track_disposal: bool,
    ) -> T:
        if registration.has_instance:
            return registration.instance
        if registration.lifetime is ServiceLifetime.TRANSIENT:
            if registration.is_async:
                instance = await self._invoke_async(registration)
            else:
                instance = self._invoke(registration)
            if track_disposal:
                self._disposables.track(instance, registration.identifier.name)
            return instance
        owner = self._owner_for(registration, holder)
        if not registration.is_async:
            return owner._get_or_create(registration, reentrant)
        return await owner._get_or_create_async(registration, reentrant)

    def _get_or_create(self, registration: Registration[T], reentrant: bool) -> T:
        instance = self._cache.get(registration, _MISSING)
        if instance is not _MISSING:
            return instance
        if reentrant:
            # Cycle detection is off; the depth limit stops the recursion.
            return self._create(registration, self._invoke(registration))
        with self._lock_for(registration, self._sync_locks, threading.Lock):
            instance = self._cache.get(registration, _MISSING)
            if instance is not _MISSING:
                return instance
            return self._create(registration, self._invoke(registration))

    async def _get_or_create_async(self, registration: Registration[T], reentrant: bool) -> T:
        instance = self._cache.get(registration, _MISSING)
        if instance is not _MISSING:
            return instance
        if reentrant:
            return self._create(registration, await self._invoke_async(registration))
        while True:
            with self._locks_guard:
                instance = self._cache.get(registration, _MISSING)
                if instance is not _MISSING:
                    return instance
                pending = self._pending.get(registration)
                creator = pending is None
                if creator:
                    pending = self._pending[registration] = concurrent.futures.Future()
            if not creator:
                # Another task or thread is creating it; re-check the cache when it is done.
                await asyncio.shield(asyncio.wrap_future(pending))
                continue
            try:
                return self._create(registration, await self._invoke_async(registration))
            finally:
                with self._locks_guard:
                    if self._pending.get(registration) is pending:
                        del self._pending[registration]
                pending.set_result(None)

    def _lock_for(self, registration: Registration[Any], locks: Dict[Any, Any], kind: Callable[[], Any]) -> Any:
        with self._locks_guard:
            lock = locks.get(registration)
            if lock is None:
                lock = locks[registration] = kind()
            return lock

    def _create(self, registration: Registration[T], instance: T) -> T:
        self._cache[registration] = instance
        self._disposables.track(instance, registration.identifier.name)
        return instance

    def _invoke(self, registration: Registration[T]) -> T:
        identifier = registration.identifier
        if registration.is_async:
            raise FactoryError(
                identifier,
                TypeError(f"'{identifier.name}' has an async factory; use resolve_async()"),
            )
        try:
            instance = registration.factory(self)
        except DIError:
            raise
        except Exception as e:
            logger.error(
                "Service factory failed",
                container=self.name,
                service=identifier.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise FactoryError(identifier, e) from e
        if inspect.isawaitable(instance):
            if inspect.iscoroutine(instance):
                instance.close()
            raise FactoryError(
                identifier,
                TypeError(f"Factory for '{identifier.name}' returned an awaitable; "
                          "register an async def factory and use resolve_async()"),
            )
        return instance

    async def _invoke_async(self, registration: Registration[T]) -> T:
        identifier = registration.identifier
        try:
            return await _await_cancellable(registration.factory(self), _cancellation.get())
        except DIError:
            raise
        except Exception as e:
            logger.error(
                "Service factory failed",
                container=self.name,
                service=identifier.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise FactoryError(identifier, e) from e

    # =========================================================================
    # SCOPES
    # =========================================================================

    def create_scope(self, name: Optional[str] = None) -> "Scope":
        """
        Create a child scope.

        Usage:
            with container.create_scope() as scope:
                service = scope.resolve(REQUEST_HANDLER)
        """
        from di.scope import Scope

        if self._lifecycle.is_disposed:
            raise DisposedContainerError(operation="create_scope")
        scope = Scope(self, name=name or f"{self.name}/scope-{next(_scope_ids)}")
        with self._children_lock:
            self._children[scope] = None
        return scope

    def _detach_child(self, child: "Container") -> None:
        with self._children_lock:
            self._children.pop(child, None)

    def _active_children(self) -> List["Container"]:
        with self._children_lock:
            children = list(self._children)
        children.reverse()
        return children

    # =========================================================================
    # DISPOSAL
    # =========================================================================

    def dispose(self) -> None:
        """
        Dispose child scopes, then every created instance in reverse order.

        Idempotent. Raises AggregateDisposalError after all teardowns ran
        if any of them failed.
        """
        if not self._lifecycle.begin_disposal():
            return
        errors: List[BaseException] = []
        for child in self._active_children():
            try:
                child.dispose()
            except AggregateDisposalError as e:
                errors.extend(e.errors)
        errors.extend(self._disposables.dispose_all())
        self._finish_disposal(errors)

    async def dispose_async(self) -> None:
        """Like dispose(), awaiting asynchronous teardowns."""
        if not self._lifecycle.begin_disposal():
            return
        errors: List[BaseException] = []
        for child in self._active_children():
            try:
                await child.dispose_async()
            except AggregateDisposalError as e:
                errors.extend(e.errors)
        errors.extend(await self._disposables.dispose_all_async())
        self._finish_disposal(errors)

    def _finish_disposal(self, errors: List[BaseException]) -> None:
        with self._locks_guard:
            self._cache.clear()
            self._sync_locks.clear()
            self._pending.clear()
        self._lifecycle.transition(LifecycleState.DISPOSED)
        if self._parent is not None:
            self._parent._detach_child(self)
        if errors:
            raise AggregateDisposalError(errors)

    def __enter__(self) -> "Container":
        return self

    def __exit__(self, *args: Any) -> None:
        self.dispose()

    async def __aenter__(self) -> "Container":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.dispose_async()

    # =========================================================================
    # INTROSPECTION
    # =========================================================================

    def stats(self) -> ContainerStats:
        """Statistics for this container (not including its scopes)."""
        with self._children_lock:
            active_scopes = len(self._children)
        return ContainerStats(
            registered_services=len(self._registry),
            multi_bindings=self._registry.binding_count,
            cached_instances=len(self._cache),
            tracked_disposables=len(self._disposables),
            active_scopes=active_scopes,
            total_resolutions=self._metrics.total,
            failed_resolutions=self._metrics.failed,
            average_resolution_ms=self._metrics.average_ms,
        )

    def eager_singletons(self) -> List[Registration[Any]]:
        """Synchronous singleton registrations, in registration order."""
        return [
            registration
            for registration in self._registry.registrations()
            if registration.lifetime is ServiceLifetime.SINGLETON
            and not registration.has_instance
            and not registration.is_async
        ]

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r} state={self.state.value}>"
