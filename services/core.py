"""
GLSP Generator - Infrastructure Services

In-process implementations of the infrastructure contracts registered by
the core module: logging, file access, configuration, caching, events,
metrics, progress reporting, command execution, templating and grammar
validation.
"""

from __future__ import annotations

import copy
import os
import re
import subprocess
import threading
import time
from collections import OrderedDict, defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from observability.logging import get_logger


# =============================================================================
# LOGGING
# =============================================================================


class LoggerService:
    """Component logger handed to services through the container."""

    def __init__(self, name: str = "glsp-generator", **context: Any) -> None:
        self.name = name
        self._logger = get_logger(name).bind(**context) if context else get_logger(name)

    def child(self, component: str) -> "LoggerService":
        return LoggerService(f"{self.name}.{component}", component=component)

    def debug(self, message: str, **kwargs: Any) -> None:
        self._logger.debug(message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self._logger.info(message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._logger.warning(message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self._logger.error(message, **kwargs)


# =============================================================================
# FILE SYSTEM
# =============================================================================


class FileSystemService:
    """File access rooted at a base directory."""

    def __init__(self, root: Optional[Path] = None) -> None:
        self.root = Path(root) if root is not None else Path.cwd()

    def resolve_path(self, path: os.PathLike | str) -> Path:
        candidate = Path(path)
        return candidate if candidate.is_absolute() else self.root / candidate

    def exists(self, path: os.PathLike | str) -> bool:
        return self.resolve_path(path).exists()

    def read_text(self, path: os.PathLike | str, encoding: str = "utf-8") -> str:
        return self.resolve_path(path).read_text(encoding=encoding)

    def write_text(self, path: os.PathLike | str, content: str, encoding: str = "utf-8") -> Path:
        target = self.resolve_path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding=encoding)
        return target

    def ensure_dir(self, path: os.PathLike | str) -> Path:
        target = self.resolve_path(path)
        target.mkdir(parents=True, exist_ok=True)
        return target

    def list_files(self, path: os.PathLike | str = ".", pattern: str = "*") -> List[Path]:
        return sorted(p for p in self.resolve_path(path).glob(pattern) if p.is_file())

    def is_accessible(self) -> bool:
        return self.root.is_dir() and os.access(self.root, os.R_OK)


# =============================================================================
# CONFIGURATION
# =============================================================================


DEFAULT_SETTINGS: Dict[str, Any] = {
    "logging": {"level": "info", "format": "console"},
    "cache": {"enabled": True, "max_size": 100, "ttl_seconds": 3600},
    "performance": {"parallel": True, "max_workers": 4},
    "generation": {"output_dir": "output", "generate_tests": True, "generate_docs": True},
}


class ConfigurationService:
    """
    Nested settings with dotted-key access.

    Example:
        >>> settings = ConfigurationService()
        >>> settings.get("cache.max_size")
        100
        >>> settings.set("cache.max_size", 500)
    """

    def __init__(self, overrides: Optional[Mapping[str, Any]] = None) -> None:
        self._settings: Dict[str, Any] = copy.deepcopy(DEFAULT_SETTINGS)
        self._lock = threading.Lock()
        if overrides:
            self.merge(overrides)

    def get(self, key: str, default: Any = None) -> Any:
        node: Any = self._settings
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key: str, value: Any) -> None:
        parts = key.split(".")
        with self._lock:
            node = self._settings
            for part in parts[:-1]:
                node = node.setdefault(part, {})
            node[parts[-1]] = value

    def merge(self, overrides: Mapping[str, Any]) -> None:
        with self._lock:
            _deep_merge(self._settings, overrides)

    def as_dict(self) -> Dict[str, Any]:
        with self._lock:
            return copy.deepcopy(self._settings)


def _deep_merge(target: Dict[str, Any], source: Mapping[str, Any]) -> None:
    for key, value in source.items():
        if isinstance(value, Mapping) and isinstance(target.get(key), dict):
            _deep_merge(target[key], value)
        else:
            target[key] = value


# =============================================================================
# CACHE
# =============================================================================


class CacheService:
    """LRU cache with per-entry expiry."""

    def __init__(self, max_size: int = 100, ttl_seconds: float = 3600.0) -> None:
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._entries: "OrderedDict[str, tuple[float, Any]]" = OrderedDict()
        self._lock = threading.Lock()

    @classmethod
    def from_configuration(cls, settings: ConfigurationService) -> "CacheService":
        return cls(
            max_size=int(settings.get("cache.max_size", 100)),
            ttl_seconds=float(settings.get("cache.ttl_seconds", 3600)),
        )

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            expires, value = entry
            if expires < time.monotonic():
                del self._entries[key]
                return default
            self._entries.move_to_end(key)
            return value

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        with self._lock:
            self._entries[key] = (time.monotonic() + ttl, value)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_size:
                self._entries.popitem(last=False)

    def has(self, key: str) -> bool:
        return self.get(key, _ABSENT) is not _ABSENT

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def dispose(self) -> None:
        self.clear()


_ABSENT = object()


# =============================================================================
# EVENTS
# =============================================================================


Handler = Callable[[Any], None]


class EventBus:
    """Synchronous publish/subscribe bus; handler failures are logged, not raised."""

    def __init__(self, logger: Optional[LoggerService] = None) -> None:
        self._handlers: Dict[str, List[Handler]] = defaultdict(list)
        self._lock = threading.Lock()
        self._logger = logger or LoggerService("glsp-generator.events")

    def subscribe(self, event: str, handler: Handler) -> Callable[[], None]:
        with self._lock:
            self._handlers[event].append(handler)

        def unsubscribe() -> None:
            with self._lock:
                if handler in self._handlers.get(event, []):
                    self._handlers[event].remove(handler)

        return unsubscribe

    def publish(self, event: str, payload: Any = None) -> int:
        """Deliver to every subscriber; returns how many handlers succeeded."""
        with self._lock:
            handlers = list(self._handlers.get(event, ()))
        delivered = 0
        for handler in handlers:
            try:
                handler(payload)
                delivered += 1
            except Exception as e:
                self._logger.warning("Event handler failed", event_name=event, error=str(e))
        return delivered

    def subscriber_count(self, event: str) -> int:
        with self._lock:
            return len(self._handlers.get(event, ()))

    def dispose(self) -> None:
        with self._lock:
            self._handlers.clear()


# =============================================================================
# METRICS
# =============================================================================


class MetricsService:
    """Counters and timings collected during a generation run."""

    def __init__(self) -> None:
        self._counters: Dict[str, int] = defaultdict(int)
        self._timings: Dict[str, List[float]] = defaultdict(list)
        self._lock = threading.Lock()

    def increment(self, name: str, value: int = 1) -> None:
        with self._lock:
            self._counters[name] += value

    def record_timing(self, name: str, seconds: float) -> None:
        with self._lock:
            self._timings[name].append(seconds)

    def counter(self, name: str) -> int:
        with self._lock:
            return self._counters.get(name, 0)

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "counters": dict(self._counters),
                "timings": {
                    name: {
                        "count": len(values),
                        "avg_ms": (sum(values) / len(values)) * 1000.0,
                    }
                    for name, values in self._timings.items()
                    if values
                },
            }

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._timings.clear()


# =============================================================================
# PROGRESS
# =============================================================================


@dataclass
class ProgressTask:
    name: str
    total: int
    completed: int = 0
    done: bool = False

    @property
    def fraction(self) -> float:
        return min(self.completed / self.total, 1.0) if self.total else 1.0


class ProgressService:
    """Tracks named long-running tasks and logs their progress."""

    def __init__(self, logger: Optional[LoggerService] = None) -> None:
        self._tasks: Dict[str, ProgressTask] = {}
        self._logger = logger or LoggerService("glsp-generator.progress")

    def start(self, name: str, total: int) -> ProgressTask:
        task = self._tasks[name] = ProgressTask(name=name, total=total)
        self._logger.debug("Task started", task=name, total=total)
        return task

    def advance(self, name: str, steps: int = 1) -> ProgressTask:
        task = self._tasks[name]
        task.completed += steps
        return task

    def complete(self, name: str) -> ProgressTask:
        task = self._tasks[name]
        task.completed = task.total
        task.done = True
        self._logger.debug("Task completed", task=name)
        return task

    def get(self, name: str) -> Optional[ProgressTask]:
        return self._tasks.get(name)


# =============================================================================
# COMMAND EXECUTION
# =============================================================================


@dataclass(frozen=True)
class CommandResult:
    command: Sequence[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandExecutor:
    """Runs external commands (package managers, build tools)."""

    def __init__(self, logger: Optional[LoggerService] = None, timeout: float = 300.0) -> None:
        self._logger = logger or LoggerService("glsp-generator.commands")
        self.timeout = timeout

    def run(
        self,
        command: Sequence[str],
        cwd: Optional[Path] = None,
        timeout: Optional[float] = None,
    ) -> CommandResult:
        self._logger.info("Running command", command=" ".join(command), cwd=str(cwd or "."))
        completed = subprocess.run(
            list(command),
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=timeout or self.timeout,
            check=False,
        )
        result = CommandResult(
            command=tuple(command),
            returncode=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
        )
        if not result.ok:
            self._logger.warning("Command failed", command=" ".join(command), returncode=result.returncode)
        return result


# =============================================================================
# TEMPLATES
# =============================================================================


_PLACEHOLDER = re.compile(r"\{\{\s*([\w.]+)\s*\}\}")


class TemplateService:
    """
    Minimal ``{{name}}`` substitution; dotted names walk nested mappings
    and attributes. Unknown placeholders render empty.
    """

    def __init__(self) -> None:
        self._templates: Dict[str, str] = {}

    def register_template(self, name: str, text: str) -> None:
        self._templates[name] = text

    def has_template(self, name: str) -> bool:
        return name in self._templates

    def render(self, template: str, context: Mapping[str, Any]) -> str:
        def substitute(match: "re.Match[str]") -> str:
            value = _lookup(context, match.group(1))
            return "" if value is None else str(value)

        return _PLACEHOLDER.sub(substitute, template)

    def render_named(self, name: str, context: Mapping[str, Any]) -> str:
        return self.render(self._templates[name], context)


def _lookup(context: Mapping[str, Any], dotted: str) -> Any:
    node: Any = context
    for part in dotted.split("."):
        if isinstance(node, Mapping):
            node = node.get(part)
        else:
            node = getattr(node, part, None)
        if node is None:
            return None
    return node


# =============================================================================
# VALIDATION
# =============================================================================


@dataclass(frozen=True)
class ValidationIssue:
    code: str
    message: str
    severity: str = "error"


@dataclass
class ValidationResult:
    issues: List[ValidationIssue] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not any(issue.severity == "error" for issue in self.issues)


class ValidationService:
    """Pre-generation checks on parsed grammars and extension settings."""

    def validate_grammar(self, grammar: Any) -> ValidationResult:
        result = ValidationResult()
        if not getattr(grammar, "project_name", None):
            result.issues.append(ValidationIssue("GRAMMAR001", "Grammar is missing a project name"))
        if not getattr(grammar, "interfaces", None):
            result.issues.append(ValidationIssue("GRAMMAR002", "Grammar defines no interfaces"))
        return result

    def validate_config(self, settings: Mapping[str, Any]) -> ValidationResult:
        result = ValidationResult()
        extension = settings.get("extension") or {}
        if not extension.get("name"):
            result.issues.append(ValidationIssue("CONFIG001", "Extension configuration requires a name"))
        return result
