"""
GLSP Generator - Test Configuration

Pytest fixtures and configuration for all tests.
"""
import asyncio
import threading
from typing import Any, Callable, List

import pytest
import pytest_asyncio

from config import ContainerConfig, test_container_config
from di.container import Container
from di.errors import AggregateDisposalError
from di.global_container import dispose_global_container
from di.identifiers import ServiceIdentifier


class Recorder:
    """Disposable test double appending its name to a shared log."""

    def __init__(self, name: str, log: List[str], fail: bool = False):
        self.name = name
        self.log = log
        self.fail = fail

    def dispose(self) -> None:
        self.log.append(self.name)
        if self.fail:
            raise RuntimeError(f"{self.name} failed to dispose")

    def __repr__(self) -> str:
        return f"Recorder({self.name!r})"


class AsyncRecorder:
    """Disposable exposing only an async teardown."""

    def __init__(self, name: str, log: List[str]):
        self.name = name
        self.log = log

    async def aclose(self) -> None:
        await asyncio.sleep(0)
        self.log.append(self.name)


class Counter:
    """Thread-safe invocation counter for factories."""

    def __init__(self) -> None:
        self.value = 0
        self._lock = threading.Lock()

    def increment(self) -> int:
        with self._lock:
            self.value += 1
            return self.value


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def container_config() -> ContainerConfig:
    """Test preset: validation and cycle detection on, depth 50."""
    return test_container_config()


@pytest.fixture
def container(container_config):
    """Fresh ACTIVE container, disposed after the test."""
    c = Container(container_config)
    yield c
    try:
        c.dispose()
    except AggregateDisposalError:
        pass


@pytest.fixture
def disposal_log() -> List[str]:
    return []


@pytest.fixture
def recorder_factory(disposal_log) -> Callable[..., Callable[[Any], Recorder]]:
    """Build registration factories producing Recorders that share disposal_log."""

    def make(name: str, fail: bool = False) -> Callable[[Any], Recorder]:
        return lambda _resolver: Recorder(name, disposal_log, fail=fail)

    return make


@pytest.fixture
def async_recorder_factory(disposal_log) -> Callable[[str], Callable[[Any], AsyncRecorder]]:
    """Like recorder_factory, for instances that only support async teardown."""

    def make(name: str) -> Callable[[Any], AsyncRecorder]:
        return lambda _resolver: AsyncRecorder(name, disposal_log)

    return make


@pytest.fixture
def counter() -> Counter:
    return Counter()


@pytest.fixture
def token() -> Callable[[str], ServiceIdentifier]:
    """Create throwaway identifiers."""
    return lambda name: ServiceIdentifier(name)


@pytest_asyncio.fixture
async def reset_global_container():
    """Clear the process-wide container after the test."""
    yield
    await dispose_global_container()


@pytest.fixture
def hypothesis_settings_profile():
    """Get current Hypothesis settings profile."""
    from hypothesis import settings
    return settings.default


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "integration: marks tests building the default container")
    config.addinivalue_line("markers", "property: marks property-based tests using Hypothesis")
    config.addinivalue_line("markers", "concurrency: marks tests racing threads or tasks")
