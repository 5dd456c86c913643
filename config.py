"""
GLSP Generator - Configuration

Centralized configuration for the composition root.
Uses environment variables with sensible defaults.
"""
import os
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from observability.logging import LoggingConfig
from observability.tracing import TracingConfig

# Load environment variables from .env file
load_dotenv()


class Environment(Enum):
    """Deployment environments."""
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(Enum):
    """Logging levels accepted by the container presets."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class ContainerConfig:
    """
    Container behaviour switches.

    duplicate_policy is one of "warn", "replace" or "error" and is mapped
    onto di.registry.DuplicateRegistrationPolicy by the container.
    """
    enable_validation: bool = field(
        default_factory=lambda: os.getenv("DI_ENABLE_VALIDATION", "true").lower() == "true"
    )
    enable_circular_dependency_detection: bool = field(
        default_factory=lambda: os.getenv("DI_CIRCULAR_DETECTION", "true").lower() == "true"
    )
    enable_lazy_loading: bool = field(
        default_factory=lambda: os.getenv("DI_LAZY_LOADING", "true").lower() == "true"
    )
    max_resolution_depth: int = field(
        default_factory=lambda: int(os.getenv("DI_MAX_RESOLUTION_DEPTH", "50"))
    )
    log_level: LogLevel = field(
        default_factory=lambda: LogLevel(os.getenv("DI_LOG_LEVEL", "info").lower())
    )
    duplicate_policy: str = field(
        default_factory=lambda: os.getenv("DI_DUPLICATE_POLICY", "warn").lower()
    )

    def with_overrides(self, **changes: Any) -> "ContainerConfig":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enable_validation": self.enable_validation,
            "enable_circular_dependency_detection": self.enable_circular_dependency_detection,
            "enable_lazy_loading": self.enable_lazy_loading,
            "max_resolution_depth": self.max_resolution_depth,
            "log_level": self.log_level.value,
            "duplicate_policy": self.duplicate_policy,
        }


def default_container_config() -> ContainerConfig:
    return ContainerConfig(
        enable_validation=True,
        enable_circular_dependency_detection=True,
        enable_lazy_loading=True,
        max_resolution_depth=50,
        log_level=LogLevel.INFO,
    )


def development_container_config() -> ContainerConfig:
    return ContainerConfig(
        enable_validation=True,
        enable_circular_dependency_detection=True,
        enable_lazy_loading=False,
        max_resolution_depth=100,
        log_level=LogLevel.DEBUG,
    )


def production_container_config() -> ContainerConfig:
    return ContainerConfig(
        enable_validation=False,
        enable_circular_dependency_detection=False,
        enable_lazy_loading=True,
        max_resolution_depth=30,
        log_level=LogLevel.WARNING,
    )


def test_container_config() -> ContainerConfig:
    return ContainerConfig(
        enable_validation=True,
        enable_circular_dependency_detection=True,
        enable_lazy_loading=False,
        max_resolution_depth=50,
        log_level=LogLevel.ERROR,
    )


CONTAINER_PRESETS = {
    "default": default_container_config,
    "development": development_container_config,
    "production": production_container_config,
    "test": test_container_config,
}


@dataclass
class Config:
    """Main configuration class combining all sub-configs."""
    env: Environment = field(default_factory=lambda: Environment(os.getenv("ENVIRONMENT", "development")))
    debug: bool = field(default_factory=lambda: os.getenv("DEBUG", "false").lower() == "true")
    app_name: str = field(default_factory=lambda: os.getenv("APP_NAME", "glsp-generator"))

    container: ContainerConfig = field(default_factory=ContainerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    tracing: TracingConfig = field(default_factory=TracingConfig)

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.env == Environment.PRODUCTION

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.env == Environment.DEVELOPMENT

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return {
            "env": self.env.value,
            "debug": self.debug,
            "app_name": self.app_name,
            "container": self.container.to_dict(),
            "logging": {
                "level": self.logging.level,
                "json_format": self.logging.json_format,
            },
            "tracing": {
                "enabled": self.tracing.enabled,
                "sample_rate": self.tracing.sample_rate,
            },
        }


# Singleton configuration instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create configuration singleton."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def reload_config() -> Config:
    """Reload configuration from environment."""
    global _config
    load_dotenv(override=True)
    _config = Config()
    return _config
