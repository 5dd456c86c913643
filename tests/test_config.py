"""
Tests for configuration presets and environment handling.
"""
from dataclasses import FrozenInstanceError

import pytest

import config
from config import (
    CONTAINER_PRESETS,
    Config,
    ContainerConfig,
    Environment,
    LogLevel,
    default_container_config,
    development_container_config,
    production_container_config,
)
from config import test_container_config as make_test_config


class TestContainerPresets:
    """Tests for the named container configurations."""

    def test_default(self):
        preset = default_container_config()

        assert preset.enable_validation
        assert preset.enable_circular_dependency_detection
        assert preset.max_resolution_depth == 50
        assert preset.log_level is LogLevel.INFO

    def test_development(self):
        preset = development_container_config()

        assert preset.max_resolution_depth == 100
        assert preset.log_level is LogLevel.DEBUG
        assert not preset.enable_lazy_loading

    def test_production(self):
        preset = production_container_config()

        assert not preset.enable_validation
        assert not preset.enable_circular_dependency_detection
        assert preset.max_resolution_depth == 30
        assert preset.log_level is LogLevel.WARNING

    def test_test(self):
        preset = make_test_config()

        assert preset.enable_validation
        assert preset.max_resolution_depth == 50
        assert preset.log_level is LogLevel.ERROR

    def test_registry_of_presets(self):
        assert set(CONTAINER_PRESETS) == {"default", "development", "production", "test"}
        assert CONTAINER_PRESETS["production"]() == production_container_config()


class TestContainerConfig:
    """Tests for ContainerConfig."""

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("DI_MAX_RESOLUTION_DEPTH", "7")
        monkeypatch.setenv("DI_CIRCULAR_DETECTION", "false")
        monkeypatch.setenv("DI_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("DI_DUPLICATE_POLICY", "ERROR")

        cfg = ContainerConfig()

        assert cfg.max_resolution_depth == 7
        assert cfg.enable_circular_dependency_detection is False
        assert cfg.log_level is LogLevel.DEBUG
        assert cfg.duplicate_policy == "error"

    def test_with_overrides_returns_copy(self):
        base = default_container_config()
        changed = base.with_overrides(max_resolution_depth=3)

        assert changed.max_resolution_depth == 3
        assert base.max_resolution_depth == 50

    def test_frozen(self):
        with pytest.raises(FrozenInstanceError):
            default_container_config().max_resolution_depth = 1

    def test_to_dict(self):
        data = default_container_config().to_dict()

        assert data["log_level"] == "info"
        assert data["max_resolution_depth"] == 50


class TestConfig:
    """Tests for the application Config."""

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "production")

        cfg = Config()

        assert cfg.env is Environment.PRODUCTION
        assert cfg.is_production
        assert not cfg.is_development

    def test_to_dict(self):
        data = Config().to_dict()

        assert set(data) == {"env", "debug", "app_name", "container", "logging", "tracing"}
        assert "max_resolution_depth" in data["container"]

    def test_reload_config(self, monkeypatch):
        monkeypatch.setenv("APP_NAME", "statemachine-generator")

        reloaded = config.reload_config()

        assert reloaded.app_name == "statemachine-generator"
        assert config.get_config() is reloaded
