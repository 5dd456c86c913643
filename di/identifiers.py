"""
GLSP Generator - Service Identifiers

Opaque tokens naming a service contract. A token carries the type of the
service it names so that ``container.resolve(TOKEN)`` is typed without any
runtime reflection.

Usage:
    from di.identifiers import ServiceIdentifier

    GRAMMAR_PARSER: ServiceIdentifier[GrammarParser] = ServiceIdentifier(
        "GrammarParser", "Parses Langium grammar files"
    )
"""

from __future__ import annotations

from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ServiceIdentifier(Generic[T]):
    """
    Opaque, process-unique token for a contract.

    Equality and hashing are by identity: two identifiers that happen to
    share a name are still different contracts.
    """

    def __init__(self, name: str, description: Optional[str] = None) -> None:
        if not name:
            raise ValueError("ServiceIdentifier requires a non-empty name")
        self.name = name
        self.description = description

    def __repr__(self) -> str:
        return f"ServiceIdentifier({self.name!r})"

    def __str__(self) -> str:
        return self.name
