"""
Pytest configuration and fixtures for rest-api-template tests
"""
import asyncio
from typing import Callable, List, Optional, Tuple

import pytest

from rest_api_template.core.config import ConfigService
from rest_api_template.core.subsystem import Subsystem
from rest_api_template.utils.logger import get_logger, reset_logger

CONFIG_VARS = (
    "DB_HOST", "DB_PORT", "DB_USER", "DB_PASSWORD", "DB_NAME",
    "REDIS_HOST", "REDIS_PORT", "REDIS_PASSWORD", "REDIS_DB",
    "SERVER_ADDR", "SERVER_PORT",
    "JAEGER_AGENT_HOST", "JAEGER_AGENT_PORT",
    "DEBUG", "DISABLE_LOGS", "LOG_FORMAT", "LOG_CALLER", "LOG_STACKTRACE",
)


@pytest.fixture(autouse=True)
def clean_logging_state():
    """Reset the project logger around each test for isolation"""
    reset_logger()
    yield
    reset_logger()


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every recognized variable so defaults apply (restored afterwards)"""
    for key in CONFIG_VARS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


@pytest.fixture
def make_config():
    """Build a ConfigService reading only from the given mapping"""
    def _make(**environ) -> ConfigService:
        return ConfigService(env_file=None, environ=environ)
    return _make


@pytest.fixture
def logger():
    return get_logger("tests")


class FakeSubsystem(Subsystem):
    """Scriptable subsystem recording its lifecycle calls"""

    def __init__(
        self,
        name: str,
        events: Optional[List[Tuple[str, str]]] = None,
        on_start: Optional[Callable[[], None]] = None,
        fail_start: Optional[Exception] = None,
        fail_stop: Optional[Exception] = None,
        crash_with: Optional[Exception] = None,
        exit_on_start: bool = False,
        stop_delay: float = 0.0,
    ):
        self.name = name
        self.events = events if events is not None else []
        self.on_start = on_start
        self.fail_start = fail_start
        self.fail_stop = fail_stop
        self.crash_with = crash_with
        self.exit_on_start = exit_on_start
        self.stop_delay = stop_delay
        self.start_calls = 0
        self.stop_calls = 0

    async def start(self) -> None:
        self.start_calls += 1
        self.events.append(("start", self.name))
        if self.fail_start is not None:
            raise self.fail_start
        if self.on_start is not None:
            self.on_start()

    async def wait(self) -> None:
        if self.crash_with is not None:
            await asyncio.sleep(0)
            raise self.crash_with
        if self.exit_on_start:
            return
        await super().wait()

    async def stop(self) -> None:
        self.stop_calls += 1
        self.events.append(("stop", self.name))
        if self.stop_delay:
            await asyncio.sleep(self.stop_delay)
        if self.fail_stop is not None:
            raise self.fail_stop


@pytest.fixture
def fake_subsystem():
    """Factory for FakeSubsystem instances"""
    return FakeSubsystem


def factory_for(subsystem: Subsystem):
    """Wrap a ready-made subsystem as a factory"""
    def _factory(config, logger):
        return subsystem
    _factory.__name__ = f"build_{subsystem.name}"
    return _factory
