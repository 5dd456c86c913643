"""
GLSP Generator - Grammar Model and Parser

Extracts the grammar name, interfaces (with their properties) and type
unions from Langium grammar text. Rule bodies are not interpreted.

Example:
    grammar StateMachine

    interface State {
        name: string
        transitions?: Transition[]
    }

    type Event = 'start' | 'stop';
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from services.core import FileSystemService, LoggerService


@dataclass(frozen=True)
class GrammarProperty:
    name: str
    type: str
    optional: bool = False
    array: bool = False


@dataclass
class GrammarInterface:
    name: str
    properties: List[GrammarProperty] = field(default_factory=list)
    super_types: List[str] = field(default_factory=list)


@dataclass
class GrammarType:
    name: str
    definition: str

    @property
    def members(self) -> List[str]:
        return [member.strip().strip("'\"") for member in self.definition.split("|")]


@dataclass
class Grammar:
    project_name: str
    interfaces: List[GrammarInterface] = field(default_factory=list)
    types: List[GrammarType] = field(default_factory=list)

    def interface(self, name: str) -> Optional[GrammarInterface]:
        return next((item for item in self.interfaces if item.name == name), None)


class GrammarParseError(ValueError):
    """Grammar text is not a Langium grammar the parser understands."""


_GRAMMAR = re.compile(r"^\s*grammar\s+(\w+)", re.MULTILINE)
_INTERFACE = re.compile(
    r"interface\s+(\w+)(?:\s+extends\s+([\w\s,]+?))?\s*\{([^}]*)\}", re.DOTALL
)
_PROPERTY = re.compile(r"(\w+)\s*(\??)\s*:\s*([\w']+)\s*(\[\])?")
_TYPE = re.compile(r"^\s*type\s+(\w+)\s*=\s*([^;]+);", re.MULTILINE)
_COMMENT = re.compile(r"//[^\n]*|/\*.*?\*/", re.DOTALL)


class GrammarParser:
    """Parser for Langium grammar files."""

    def __init__(
        self,
        file_system: Optional[FileSystemService] = None,
        logger: Optional[LoggerService] = None,
    ) -> None:
        self._fs = file_system or FileSystemService()
        self._logger = logger or LoggerService("glsp-generator.parser")

    def parse(self, text: str, project_name: Optional[str] = None) -> Grammar:
        source = _COMMENT.sub("", text)
        header = _GRAMMAR.search(source)
        if header is None and project_name is None:
            raise GrammarParseError("Missing 'grammar <Name>' declaration")
        grammar = Grammar(project_name=project_name or header.group(1))

        for name, extends, body in _INTERFACE.findall(source):
            grammar.interfaces.append(GrammarInterface(
                name=name,
                super_types=[s.strip() for s in extends.split(",") if s.strip()],
                properties=[
                    GrammarProperty(
                        name=prop_name,
                        type=prop_type,
                        optional=bool(optional),
                        array=bool(array),
                    )
                    for prop_name, optional, prop_type, array in _PROPERTY.findall(body)
                ],
            ))

        for name, definition in _TYPE.findall(source):
            grammar.types.append(GrammarType(name=name, definition=" ".join(definition.split())))

        self._logger.debug(
            "Grammar parsed",
            grammar=grammar.project_name,
            interfaces=len(grammar.interfaces),
            types=len(grammar.types),
        )
        return grammar

    def parse_file(self, path: Path | str) -> Grammar:
        return self.parse(self._fs.read_text(path))
