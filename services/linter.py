"""
GLSP Generator - Grammar Linter

Style and consistency checks on a parsed grammar.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional

from services.core import LoggerService
from services.grammar import Grammar

_PASCAL_CASE = re.compile(r"^[A-Z][A-Za-z0-9]*$")
_CAMEL_CASE = re.compile(r"^[a-z][A-Za-z0-9]*$")

ALL_RULES = frozenset({
    "interface-naming",
    "property-naming",
    "duplicate-interface",
    "empty-interface",
})


@dataclass(frozen=True)
class LinterConfig:
    """Which rules run and whether warnings fail the lint."""

    rules: FrozenSet[str] = field(default_factory=lambda: ALL_RULES)
    strict: bool = False


@dataclass(frozen=True)
class LintIssue:
    rule: str
    message: str
    element: str
    severity: str = "warning"


class LinterService:
    """Lints grammars against the configured rule set."""

    def __init__(
        self,
        config: Optional[LinterConfig] = None,
        logger: Optional[LoggerService] = None,
    ) -> None:
        self.config = config or LinterConfig()
        self._logger = logger or LoggerService("glsp-generator.linter")

    def lint(self, grammar: Grammar) -> List[LintIssue]:
        rules = self.config.rules
        severity = "error" if self.config.strict else "warning"
        issues: List[LintIssue] = []

        if "duplicate-interface" in rules:
            counts = Counter(item.name for item in grammar.interfaces)
            for name, count in counts.items():
                if count > 1:
                    issues.append(LintIssue(
                        "duplicate-interface", f"Interface '{name}' is declared {count} times", name, "error"
                    ))

        for interface in grammar.interfaces:
            if "interface-naming" in rules and not _PASCAL_CASE.match(interface.name):
                issues.append(LintIssue(
                    "interface-naming", f"Interface '{interface.name}' should be PascalCase",
                    interface.name, severity,
                ))
            if "empty-interface" in rules and not interface.properties and not interface.super_types:
                issues.append(LintIssue(
                    "empty-interface", f"Interface '{interface.name}' has no properties",
                    interface.name, severity,
                ))
            if "property-naming" in rules:
                for prop in interface.properties:
                    if not _CAMEL_CASE.match(prop.name):
                        issues.append(LintIssue(
                            "property-naming",
                            f"Property '{interface.name}.{prop.name}' should be camelCase",
                            f"{interface.name}.{prop.name}", severity,
                        ))

        self._logger.debug("Grammar linted", grammar=grammar.project_name, issues=len(issues))
        return issues

    def passes(self, grammar: Grammar) -> bool:
        return not any(issue.severity == "error" for issue in self.lint(grammar))
