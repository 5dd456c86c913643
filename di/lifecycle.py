"""
GLSP Generator - Container Lifecycle and Disposal

State machine shared by containers and scopes, plus the disposal manager
that tears created instances down in reverse creation order.

    BUILDING -> CONFIGURED -> ACTIVE -> DISPOSING -> DISPOSED

Teardown contract, in order of preference:
    sync path:  dispose()
    async path: dispose_async(), aclose(), async close(), async dispose(), dispose()
"""

from __future__ import annotations

import inspect
import threading
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from di.errors import InvalidContainerStateError
from observability.logging import get_logger

logger = get_logger(__name__)


class LifecycleState(Enum):
    """Lifecycle states of a container or scope."""

    BUILDING = "building"
    CONFIGURED = "configured"
    ACTIVE = "active"
    DISPOSING = "disposing"
    DISPOSED = "disposed"


_TRANSITIONS: Dict[LifecycleState, FrozenSet[LifecycleState]] = {
    LifecycleState.BUILDING: frozenset({LifecycleState.CONFIGURED, LifecycleState.DISPOSING}),
    LifecycleState.CONFIGURED: frozenset({LifecycleState.ACTIVE, LifecycleState.DISPOSING}),
    LifecycleState.ACTIVE: frozenset({LifecycleState.DISPOSING}),
    LifecycleState.DISPOSING: frozenset({LifecycleState.DISPOSED}),
    LifecycleState.DISPOSED: frozenset(),
}


class Lifecycle:
    """Thread-safe lifecycle state holder."""

    def __init__(self, owner: str, initial: LifecycleState = LifecycleState.ACTIVE) -> None:
        self._owner = owner
        self._state = initial
        self._lock = threading.Lock()

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state is LifecycleState.ACTIVE

    @property
    def is_disposed(self) -> bool:
        """True once disposal has started."""
        return self._state in (LifecycleState.DISPOSING, LifecycleState.DISPOSED)

    def transition(self, target: LifecycleState) -> None:
        with self._lock:
            self._transition_locked(target)

    def begin_disposal(self) -> bool:
        """
        Move to DISPOSING.

        Returns:
            False when disposal already started, so callers can no-op.
        """
        with self._lock:
            if self._state in (LifecycleState.DISPOSING, LifecycleState.DISPOSED):
                return False
            self._transition_locked(LifecycleState.DISPOSING)
            return True

    def _transition_locked(self, target: LifecycleState) -> None:
        if target not in _TRANSITIONS[self._state]:
            raise InvalidContainerStateError(
                f"Invalid lifecycle transition {self._state.value} -> {target.value} "
                f"for container '{self._owner}'"
            )
        logger.debug(
            "Container state changed",
            container=self._owner,
            previous=self._state.value,
            state=target.value,
        )
        self._state = target


def _async_teardown(instance: Any) -> Optional[Any]:
    for name in ("dispose_async", "aclose", "close", "dispose"):
        method = getattr(instance, name, None)
        if method is not None and inspect.iscoroutinefunction(method):
            return method
    return None


def _sync_teardown(instance: Any) -> Optional[Any]:
    method = getattr(instance, "dispose", None)
    if callable(method) and not inspect.iscoroutinefunction(method):
        return method
    return None


def is_disposable(instance: Any) -> bool:
    """True when the instance exposes a teardown the container can call."""
    return _sync_teardown(instance) is not None or _async_teardown(instance) is not None


class DisposalManager:
    """
    Records created instances and tears them down in reverse creation order.

    A failing teardown never stops the remaining ones; failures are
    returned to the caller for aggregation.
    """

    def __init__(self, owner: str) -> None:
        self._owner = owner
        self._entries: List[Tuple[str, Any]] = []
        self._lock = threading.Lock()

    def track(self, instance: Any, label: str) -> bool:
        if not is_disposable(instance):
            return False
        with self._lock:
            self._entries.append((label, instance))
        return True

    def __len__(self) -> int:
        return len(self._entries)

    def _drain(self) -> List[Tuple[str, Any]]:
        with self._lock:
            entries, self._entries = self._entries, []
        entries.reverse()
        return entries

    def dispose_all(self) -> List[BaseException]:
        """Run synchronous teardowns; async-only ones are reported as failures."""
        errors: List[BaseException] = []
        for label, instance in self._drain():
            teardown = _sync_teardown(instance)
            if teardown is None:
                errors.append(self._failed(label, RuntimeError(
                    f"'{label}' only supports asynchronous teardown; use dispose_async()"
                )))
                continue
            try:
                teardown()
            except Exception as e:
                errors.append(self._failed(label, e))
        return errors

    async def dispose_all_async(self) -> List[BaseException]:
        """Run teardowns, awaiting asynchronous ones."""
        errors: List[BaseException] = []
        for label, instance in self._drain():
            try:
                teardown = _async_teardown(instance)
                if teardown is not None:
                    await teardown()
                else:
                    _sync_teardown(instance)()
            except Exception as e:
                errors.append(self._failed(label, e))
        return errors

    def _failed(self, label: str, error: BaseException) -> BaseException:
        logger.warning(
            "Service disposal failed",
            container=self._owner,
            service=label,
            error=str(error),
            error_type=type(error).__name__,
        )
        return error
