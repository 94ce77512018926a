"""Pytest configuration and fixtures for ChainHive tests."""

import asyncio
import logging

import pytest

from chainhive.resilience.retry import RetryConfig


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def use_test_environment(monkeypatch):
    """Keep tests independent of the developer's environment."""
    for name in ("CHAINHIVE_NODIT_API_KEY", "CHAINHIVE_LOG_LEVEL", "CHAINHIVE_RPC_URLS"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def fake_sleep(fake_clock):
    """Sleep replacement that advances the fake clock and records waits."""
    waits: list[float] = []

    async def sleep(seconds: float) -> None:
        waits.append(seconds)
        fake_clock.advance(seconds)
        await asyncio.sleep(0)

    sleep.waits = waits
    return sleep


@pytest.fixture
def fast_retry_config():
    """Retry config with near-zero backoff for quick tests."""
    return RetryConfig(max_retries=3, backoff_ms=1, timeout_ms=1000, exponential_backoff=True)


@pytest.fixture
def restore_root_logging():
    """Restore root logger handlers and level after a test reconfigures them."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
