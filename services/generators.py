"""
GLSP Generator - Artefact Generators

Render text artefacts (TypeScript types, test skeletons, documentation,
CI workflows) from a parsed grammar, and drive the extension's package
manager.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from services.core import CommandExecutor, CommandResult, FileSystemService, TemplateService
from services.grammar import Grammar, GrammarInterface, GrammarProperty

_TS_TYPES = {"string": "string", "number": "number", "int": "number", "boolean": "boolean", "bool": "boolean"}


def _ts_type(prop: GrammarProperty) -> str:
    base = _TS_TYPES.get(prop.type, prop.type)
    return f"{base}[]" if prop.array else base


class TypeSafetyGenerator:
    """TypeScript interfaces and type guards for every grammar interface."""

    INTERFACE_TEMPLATE = "export interface {{name}}{{extends}} {\n{{body}}\n}\n"
    GUARD_TEMPLATE = (
        "export function is{{name}}(value: unknown): value is {{name}} {\n"
        "    return typeof value === 'object' && value !== null && {{checks}};\n"
        "}\n"
    )

    def __init__(self, templates: Optional[TemplateService] = None) -> None:
        self._templates = templates or TemplateService()

    def generate(self, grammar: Grammar) -> str:
        parts: List[str] = [f"// Generated types for {grammar.project_name}\n"]
        for grammar_type in grammar.types:
            members = " | ".join(f"'{member}'" for member in grammar_type.members)
            parts.append(f"export type {grammar_type.name} = {members};\n")
        for interface in grammar.interfaces:
            parts.append(self._interface(interface))
            parts.append(self._guard(interface))
        return "\n".join(parts)

    def _interface(self, interface: GrammarInterface) -> str:
        body = "\n".join(
            f"    {prop.name}{'?' if prop.optional else ''}: {_ts_type(prop)};"
            for prop in interface.properties
        )
        extends = f" extends {', '.join(interface.super_types)}" if interface.super_types else ""
        return self._templates.render(
            self.INTERFACE_TEMPLATE,
            {"name": interface.name, "extends": extends, "body": body},
        )

    def _guard(self, interface: GrammarInterface) -> str:
        required = [prop.name for prop in interface.properties if not prop.optional]
        checks = " && ".join(f"'{name}' in value" for name in required) or "true"
        return self._templates.render(self.GUARD_TEMPLATE, {"name": interface.name, "checks": checks})


class TestGenerator:
    """Test skeletons exercising the generated type guards."""

    __test__ = False  # not a pytest test class

    def __init__(self, templates: Optional[TemplateService] = None) -> None:
        self._templates = templates or TemplateService()

    def generate(self, grammar: Grammar) -> str:
        cases = "\n".join(
            self._templates.render(
                "    it('recognises {{name}}', () => {\n"
                "        expect(is{{name}}({{sample}})).toBe(true);\n"
                "    });",
                {"name": interface.name, "sample": self._sample(interface)},
            )
            for interface in grammar.interfaces
        )
        return (
            f"describe('{grammar.project_name} type guards', () => {{\n"
            f"{cases}\n"
            "});\n"
        )

    @staticmethod
    def _sample(interface: GrammarInterface) -> str:
        fields = ", ".join(
            f"{prop.name}: {'[]' if prop.array else '{}'}"
            for prop in interface.properties
            if not prop.optional
        )
        return "{ " + fields + " }" if fields else "{}"


class DocumentationGenerator:
    """Markdown reference for a grammar."""

    def __init__(self, templates: Optional[TemplateService] = None) -> None:
        self._templates = templates or TemplateService()

    def generate(self, grammar: Grammar) -> str:
        lines = [f"# {grammar.project_name}", "", "## Interfaces", ""]
        for interface in grammar.interfaces:
            lines.append(f"### {interface.name}")
            if interface.super_types:
                lines.append(f"Extends: {', '.join(interface.super_types)}")
            lines.append("")
            lines.append("| Property | Type | Optional |")
            lines.append("|---|---|---|")
            for prop in interface.properties:
                lines.append(f"| {prop.name} | {_ts_type(prop)} | {'yes' if prop.optional else 'no'} |")
            lines.append("")
        if grammar.types:
            lines.extend(["## Types", ""])
            for grammar_type in grammar.types:
                lines.append(f"- **{grammar_type.name}**: {grammar_type.definition}")
        return "\n".join(lines).rstrip() + "\n"


class CICDGenerator:
    """GitHub Actions workflow for the generated extension."""

    WORKFLOW_TEMPLATE = (
        "name: {{name}} CI\n"
        "on: [push, pull_request]\n"
        "jobs:\n"
        "  build:\n"
        "    runs-on: ubuntu-latest\n"
        "    steps:\n"
        "      - uses: actions/checkout@v4\n"
        "      - uses: actions/setup-node@v4\n"
        "        with:\n"
        "          node-version: '{{node_version}}'\n"
        "      - run: {{package_manager}} install\n"
        "      - run: {{package_manager}} run build\n"
        "      - run: {{package_manager}} test\n"
    )

    def __init__(self, templates: Optional[TemplateService] = None) -> None:
        self._templates = templates or TemplateService()

    def generate(self, project_name: str, package_manager: str = "yarn", node_version: str = "20") -> str:
        return self._templates.render(
            self.WORKFLOW_TEMPLATE,
            {"name": project_name, "package_manager": package_manager, "node_version": node_version},
        )


class PackageManager:
    """Detects and runs the extension's Node package manager."""

    LOCKFILES = (("pnpm-lock.yaml", "pnpm"), ("yarn.lock", "yarn"), ("package-lock.json", "npm"))

    def __init__(
        self,
        executor: Optional[CommandExecutor] = None,
        file_system: Optional[FileSystemService] = None,
        default: str = "yarn",
    ) -> None:
        self._executor = executor or CommandExecutor()
        self._fs = file_system or FileSystemService()
        self.default = default

    def detect(self, project_dir: Path | str = ".") -> str:
        for lockfile, manager in self.LOCKFILES:
            if self._fs.exists(Path(project_dir) / lockfile):
                return manager
        return self.default

    def install(self, project_dir: Path | str = ".") -> CommandResult:
        return self._executor.run([self.detect(project_dir), "install"], cwd=self._fs.resolve_path(project_dir))

    def run_script(self, script: str, project_dir: Path | str = ".") -> CommandResult:
        return self._executor.run([self.detect(project_dir), "run", script], cwd=self._fs.resolve_path(project_dir))
