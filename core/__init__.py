"""
GLSP Generator - Core Module

Cross-cutting building blocks shared by every subsystem.

Components:
- errors: the GeneratorError hierarchy root with structured context,
  severity and span recording
"""

from core.errors import ErrorContext, ErrorSeverity, GeneratorError

__all__ = [
    "ErrorContext",
    "ErrorSeverity",
    "GeneratorError",
]
