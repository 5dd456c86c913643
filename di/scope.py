"""
GLSP Generator - Resolution Scopes

A scope is a child container: it owns its own scoped-instance cache,
disposal list and registration overrides, and falls back to its parent
for every identifier it does not bind itself.

Usage:
    async with container.create_scope() as scope:
        scope.register_instance(LINTER_CONFIG, strict_config)
        linter = scope.resolve(LINTER_FACTORY).create()
"""

from __future__ import annotations

from typing import Optional

from di.container import Container


class Scope(Container):
    """
    Nested resolution context.

    - Scoped services are cached here, once per scope.
    - Singletons stay with the container that registered them, so
      disposing a scope never touches its parent's singletons.
    - ``register_instance`` here shadows the parent binding for this
      scope (and its own children) only.
    - Disposing a scope detaches it from its parent but never disposes
      the parent.
    """

    def __init__(self, parent: Container, name: Optional[str] = None) -> None:
        super().__init__(parent.config, parent=parent, name=name)

    @property
    def parent(self) -> Container:
        assert self._parent is not None
        return self._parent

    @property
    def depth(self) -> int:
        """Number of containers between this scope and the root."""
        depth = 0
        container: Optional[Container] = self
        while container is not None and container.parent is not None:
            depth += 1
            container = container.parent
        return depth
