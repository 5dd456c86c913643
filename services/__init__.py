"""
GLSP Generator - Services

Infrastructure and business services composed by the container modules.
"""

from services.core import (
    CacheService,
    CommandExecutor,
    CommandResult,
    ConfigurationService,
    EventBus,
    FileSystemService,
    LoggerService,
    MetricsService,
    ProgressService,
    TemplateService,
    ValidationService,
)
from services.generators import (
    CICDGenerator,
    DocumentationGenerator,
    PackageManager,
    TestGenerator,
    TypeSafetyGenerator,
)
from services.grammar import Grammar, GrammarInterface, GrammarParser, GrammarProperty, GrammarType
from services.linter import LinterConfig, LinterService, LintIssue

__all__ = [
    # Infrastructure
    "CacheService",
    "CommandExecutor",
    "CommandResult",
    "ConfigurationService",
    "EventBus",
    "FileSystemService",
    "LoggerService",
    "MetricsService",
    "ProgressService",
    "TemplateService",
    "ValidationService",
    # Grammar
    "Grammar",
    "GrammarInterface",
    "GrammarParser",
    "GrammarProperty",
    "GrammarType",
    # Business
    "CICDGenerator",
    "DocumentationGenerator",
    "LinterConfig",
    "LinterService",
    "LintIssue",
    "PackageManager",
    "TestGenerator",
    "TypeSafetyGenerator",
]
