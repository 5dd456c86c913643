"""
Tests for the infrastructure services registered by CoreModule.
"""
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from services.core import (
    CacheService,
    CommandExecutor,
    ConfigurationService,
    EventBus,
    FileSystemService,
    LoggerService,
    MetricsService,
    ProgressService,
    TemplateService,
    ValidationService,
)
from services.grammar import Grammar, GrammarInterface


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def file_system(tmp_path):
    return FileSystemService(tmp_path)


@pytest.fixture
def mock_logger():
    return MagicMock(spec=LoggerService)


class TestFileSystemService:
    """Tests for FileSystemService."""

    def test_write_and_read_relative_to_root(self, file_system, tmp_path):
        written = file_system.write_text("src/model.ts", "export {}")

        assert written == tmp_path / "src" / "model.ts"
        assert file_system.exists("src/model.ts")
        assert file_system.read_text("src/model.ts") == "export {}"

    def test_list_files(self, file_system):
        file_system.write_text("a.langium", "")
        file_system.write_text("b.langium", "")
        file_system.ensure_dir("nested")

        names = [path.name for path in file_system.list_files(".", "*.langium")]
        assert names == ["a.langium", "b.langium"]

    def test_is_accessible(self, file_system, tmp_path):
        assert file_system.is_accessible()
        assert not FileSystemService(tmp_path / "missing").is_accessible()


class TestConfigurationService:
    """Tests for ConfigurationService."""

    def test_dotted_get_with_defaults(self):
        settings = ConfigurationService()

        assert settings.get("cache.max_size") == 100
        assert settings.get("cache.unknown", "fallback") == "fallback"
        assert settings.get("logging.level.deeper") is None

    def test_set_creates_intermediate_sections(self):
        settings = ConfigurationService()
        settings.set("extension.name", "statemachine")

        assert settings.get("extension.name") == "statemachine"

    def test_overrides_merge_deeply(self):
        settings = ConfigurationService({"cache": {"max_size": 5}})

        assert settings.get("cache.max_size") == 5
        assert settings.get("cache.ttl_seconds") == 3600

    def test_instances_do_not_share_defaults(self):
        first = ConfigurationService()
        first.set("cache.max_size", 1)

        assert ConfigurationService().get("cache.max_size") == 100
        assert first.as_dict()["cache"]["max_size"] == 1


class TestCacheService:
    """Tests for CacheService."""

    def test_lru_eviction(self):
        cache = CacheService(max_size=2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.get("a")
        cache.set("c", 3)

        assert cache.has("a")
        assert not cache.has("b")
        assert len(cache) == 2

    def test_expired_entries_are_dropped(self):
        cache = CacheService()
        cache.set("a", 1, ttl_seconds=-1)

        assert cache.get("a", "gone") == "gone"

    def test_from_configuration(self):
        settings = ConfigurationService({"cache": {"max_size": 7, "ttl_seconds": 5}})
        cache = CacheService.from_configuration(settings)

        assert cache.max_size == 7
        assert cache.ttl_seconds == 5.0

    def test_dispose_clears(self):
        cache = CacheService()
        cache.set("a", 1)
        cache.dispose()

        assert len(cache) == 0
        assert cache.delete("a") is False


class TestEventBus:
    """Tests for EventBus."""

    def test_publish_reaches_subscribers(self, mock_logger):
        bus = EventBus(mock_logger)
        received = []
        bus.subscribe("grammar.parsed", received.append)

        assert bus.publish("grammar.parsed", "StateMachine") == 1
        assert received == ["StateMachine"]

    def test_unsubscribe(self, mock_logger):
        bus = EventBus(mock_logger)
        unsubscribe = bus.subscribe("x", lambda payload: None)
        unsubscribe()

        assert bus.subscriber_count("x") == 0
        assert bus.publish("x") == 0

    def test_failing_handler_is_logged(self, mock_logger):
        bus = EventBus(mock_logger)
        received = []

        def broken(_payload):
            raise RuntimeError("handler bug")

        bus.subscribe("x", broken)
        bus.subscribe("x", received.append)

        assert bus.publish("x", 1) == 1
        assert received == [1]
        mock_logger.warning.assert_called_once_with(
            "Event handler failed", event_name="x", error="handler bug"
        )


class TestMetricsAndProgress:
    """Tests for MetricsService and ProgressService."""

    def test_counters_and_timings(self):
        metrics = MetricsService()
        metrics.increment("files")
        metrics.increment("files", 2)
        metrics.record_timing("parse", 0.5)

        snapshot = metrics.snapshot()
        assert metrics.counter("files") == 3
        assert snapshot["timings"]["parse"] == {"count": 1, "avg_ms": 500.0}

        metrics.reset()
        assert metrics.snapshot() == {"counters": {}, "timings": {}}

    def test_progress_lifecycle(self, mock_logger):
        progress = ProgressService(mock_logger)
        progress.start("generate", total=4)
        progress.advance("generate", 2)

        assert progress.get("generate").fraction == 0.5

        task = progress.complete("generate")
        assert task.done
        assert task.fraction == 1.0
        assert progress.get("unknown") is None


class TestCommandExecutor:
    """Tests for CommandExecutor."""

    def test_run_captures_output(self, mock_logger):
        completed = subprocess.CompletedProcess(["yarn", "install"], 0, stdout="done", stderr="")
        with patch("services.core.subprocess.run", return_value=completed) as mock_run:
            result = CommandExecutor(mock_logger, timeout=10).run(["yarn", "install"])

        assert result.ok
        assert result.stdout == "done"
        assert mock_run.call_args.kwargs["timeout"] == 10
        mock_logger.warning.assert_not_called()

    def test_failure_is_logged(self, mock_logger):
        completed = subprocess.CompletedProcess(["npm", "test"], 1, stdout="", stderr="failed")
        with patch("services.core.subprocess.run", return_value=completed):
            result = CommandExecutor(mock_logger).run(["npm", "test"])

        assert not result.ok
        mock_logger.warning.assert_called_once()


class TestTemplateService:
    """Tests for TemplateService."""

    def test_render_placeholders(self):
        templates = TemplateService()
        assert templates.render("Hello {{ name }}!", {"name": "GLSP"}) == "Hello GLSP!"

    def test_dotted_names_and_missing_values(self):
        templates = TemplateService()
        context = {"grammar": Grammar(project_name="StateMachine")}

        assert templates.render("{{grammar.project_name}}", context) == "StateMachine"
        assert templates.render("[{{missing}}]", context) == "[]"

    def test_named_templates(self):
        templates = TemplateService()
        templates.register_template("greeting", "Hi {{who}}")

        assert templates.has_template("greeting")
        assert templates.render_named("greeting", {"who": "there"}) == "Hi there"


class TestValidationService:
    """Tests for ValidationService."""

    def test_valid_grammar(self):
        grammar = Grammar(project_name="StateMachine", interfaces=[GrammarInterface("State")])
        assert ValidationService().validate_grammar(grammar).is_valid

    def test_invalid_grammar_codes(self):
        result = ValidationService().validate_grammar(Grammar(project_name=""))

        assert not result.is_valid
        assert [issue.code for issue in result.issues] == ["GRAMMAR001", "GRAMMAR002"]

    def test_config_requires_extension_name(self):
        service = ValidationService()

        assert [i.code for i in service.validate_config({}).issues] == ["CONFIG001"]
        assert service.validate_config({"extension": {"name": "sm"}}).is_valid


class TestLoggerService:
    """Tests for LoggerService."""

    def test_child_names(self):
        logger = LoggerService("glsp-generator")
        assert logger.child("parser").name == "glsp-generator.parser"

    def test_forwards_to_structlog(self):
        with patch("services.core.get_logger") as mock_get_logger:
            LoggerService("glsp-generator").info("Generated", files=3)

        mock_get_logger.return_value.info.assert_called_once_with("Generated", files=3)
