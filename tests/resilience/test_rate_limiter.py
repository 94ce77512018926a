"""Tests for the sliding-window rate limiter and the limiter registry."""

import asyncio

import pytest

from chainhive.config import Settings
from chainhive.monitoring.metrics import rate_limit_wait_seconds
from chainhive.resilience.rate_limiter import RateLimiter, SlidingWindowRateLimiter


def make_limiter(fake_clock, fake_sleep, max_requests=3, window_ms=1000, name="test"):
    return SlidingWindowRateLimiter(
        max_requests=max_requests,
        window_ms=window_ms,
        name=name,
        clock=fake_clock,
        sleep=fake_sleep,
    )


class TestSlidingWindowRateLimiter:
    """Test window admission and waiting."""

    @pytest.mark.parametrize("kwargs", [{"max_requests": 0}, {"window_ms": 0}])
    def test_invalid_arguments(self, kwargs):
        with pytest.raises(ValueError):
            SlidingWindowRateLimiter(**kwargs)

    @pytest.mark.asyncio
    async def test_admits_up_to_limit_without_waiting(self, fake_clock, fake_sleep):
        limiter = make_limiter(fake_clock, fake_sleep)

        for _ in range(3):
            await limiter.check_limit()

        assert fake_sleep.waits == []
        assert limiter.current_count == 3

    @pytest.mark.asyncio
    async def test_waits_for_oldest_entry_to_leave_window(self, fake_clock, fake_sleep):
        limiter = make_limiter(fake_clock, fake_sleep)
        for _ in range(3):
            await limiter.check_limit()

        fake_clock.advance(0.25)
        await limiter.check_limit()

        assert fake_sleep.waits == [0.75]
        assert fake_clock.now == 1001.0
        # The first three have aged out
        assert limiter.current_count == 1

    @pytest.mark.asyncio
    async def test_never_more_than_max_in_window(self, fake_clock, fake_sleep):
        limiter = make_limiter(fake_clock, fake_sleep, max_requests=2, window_ms=1000)
        admitted = []

        for _ in range(6):
            await limiter.check_limit()
            admitted.append(fake_clock.now)

        for i, ts in enumerate(admitted):
            in_window = [t for t in admitted[: i + 1] if ts - t < 1.0]
            assert len(in_window) <= 2

    @pytest.mark.asyncio
    async def test_waiters_admitted_in_arrival_order(self, fake_clock, fake_sleep):
        limiter = make_limiter(fake_clock, fake_sleep, max_requests=1, window_ms=1000)
        await limiter.check_limit()
        order = []

        async def request(index):
            await limiter.check_limit()
            order.append(index)

        await asyncio.gather(*(request(i) for i in range(3)))

        assert order == [0, 1, 2]
        assert fake_clock.now == 1003.0

    def test_is_allowed(self, fake_clock, fake_sleep):
        limiter = make_limiter(fake_clock, fake_sleep, max_requests=2)

        assert limiter.is_allowed() is True
        assert limiter.is_allowed() is True
        assert limiter.is_allowed() is False

        fake_clock.advance(1.0)
        assert limiter.is_allowed() is True

    def test_reset(self, fake_clock, fake_sleep):
        limiter = make_limiter(fake_clock, fake_sleep, max_requests=1)
        limiter.is_allowed()

        limiter.reset()

        assert limiter.current_count == 0
        assert limiter.is_allowed() is True

    @pytest.mark.asyncio
    async def test_wait_recorded_in_metrics(self, fake_clock, fake_sleep):
        name = "metrics_limiter"
        before = rate_limit_wait_seconds.get(limiter=name)
        limiter = make_limiter(fake_clock, fake_sleep, max_requests=1, name=name)
        await limiter.check_limit()

        await limiter.check_limit()

        after = rate_limit_wait_seconds.get(limiter=name)
        assert after["count"] == before["count"] + 1
        assert after["sum"] == before["sum"] + 1.0

    def test_from_settings(self):
        settings = Settings(rate_limit_max_requests=10, rate_limit_window_ms=2000)
        limiter = SlidingWindowRateLimiter.from_settings(settings)

        assert limiter.max_requests == 10
        assert limiter.window_ms == 2000
        assert limiter.name == "nodit"


class TestRateLimiterRegistry:
    """Test keyed limiters."""

    def test_unconfigured_key_unlimited(self):
        registry = RateLimiter()

        assert all(registry.is_allowed("anyone") for _ in range(50))
        assert registry.get_status("anyone") is None

    def test_configured_service(self):
        registry = RateLimiter()
        registry.configure_service("nodit", max_requests=2, window_ms=60000)

        assert registry.is_allowed("nodit") is True
        assert registry.is_allowed("nodit") is True
        assert registry.is_allowed("nodit") is False

    def test_default_limit_per_key(self):
        registry = RateLimiter(default_max_requests=1)

        assert registry.is_allowed("telegram:1") is True
        assert registry.is_allowed("telegram:1") is False
        assert registry.is_allowed("telegram:2") is True

    @pytest.mark.asyncio
    async def test_wait_for_request(self):
        registry = RateLimiter()
        registry.configure_service("nodit", max_requests=5)

        await registry.wait_for_request("nodit")
        await registry.wait_for_request("unconfigured")

        assert registry.get_status("nodit")["current_count"] == 1

    def test_get_status(self):
        registry = RateLimiter()
        registry.configure_service("nodit", max_requests=100, window_ms=30000)
        registry.is_allowed("nodit")

        assert registry.get_status("nodit") == {
            "service": "nodit",
            "current_count": 1,
            "max_requests": 100,
            "window_ms": 30000,
        }
