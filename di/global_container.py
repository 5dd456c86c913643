"""
GLSP Generator - Process-wide Container

One owning handle for entry points that cannot thread a container through
their call graph. Prefer passing the container explicitly everywhere else.

Usage:
    container = await initialize_global_container(create_production_container)
    ...
    await dispose_global_container()
"""

from __future__ import annotations

import threading
from typing import Callable, Optional

from di.builder import create_default_container
from di.container import Container
from di.errors import ContainerValidationError, GlobalContainerNotInitializedError
from di.health import validate_container
from observability.logging import get_logger

logger = get_logger(__name__)

_global_container: Optional[Container] = None
_global_lock = threading.Lock()


def _swap(container: Optional[Container]) -> Optional[Container]:
    global _global_container
    with _global_lock:
        previous, _global_container = _global_container, container
    return previous


async def initialize_global_container(
    factory: Callable[[], Container] = create_default_container,
) -> Container:
    """
    Replace the global container with a freshly built and validated one.

    Any previous global container is disposed first.

    Raises:
        ContainerValidationError: the new container failed validation; it
            is disposed and the global slot stays empty.
    """
    previous = _swap(None)
    if previous is not None:
        logger.info("Disposing previous global container", container=previous.name)
        await previous.dispose_async()

    container = factory()
    report = await validate_container(container)
    if not report.is_valid:
        await container.dispose_async()
        raise ContainerValidationError(report)

    stale = _swap(container)
    if stale is not None:
        # Another initializer won the race; keep the newest and release the other.
        await stale.dispose_async()

    logger.info(
        "Global container initialized",
        container=container.name,
        warnings=len(report.warnings),
    )
    return container


def get_global_container() -> Container:
    """Return the global container or fail loudly before initialization."""
    container = _global_container
    if container is None:
        raise GlobalContainerNotInitializedError()
    return container


def has_global_container() -> bool:
    return _global_container is not None


async def dispose_global_container() -> None:
    """Dispose and clear the global container; no-op when none is set."""
    container = _swap(None)
    if container is None:
        return
    await container.dispose_async()
    logger.info("Global container disposed", container=container.name)
