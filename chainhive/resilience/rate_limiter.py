"""Rate limiting for outbound calls.

Provides:
- Sliding-window limiter that queues excess calls instead of rejecting them
- Non-blocking admission check for callers that prefer to shed load
- Per-service / per-identifier limiter registry
"""

import asyncio
import logging
import threading
import time
from collections import deque
from typing import TYPE_CHECKING, Awaitable, Callable, Optional

from ..monitoring.exporters import resilience_exporter

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger(__name__)


class SlidingWindowRateLimiter:
    """At most ``max_requests`` admissions in any rolling ``window_ms``.

    Waiters are admitted in arrival order: the asyncio lock queues them and
    only the head of the queue re-checks the window after sleeping.

    Usage:
        limiter = SlidingWindowRateLimiter(max_requests=100, window_ms=60000)
        await limiter.check_limit()
        # make request
    """

    def __init__(
        self,
        max_requests: int = 100,
        window_ms: int = 60000,
        name: str = "default",
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize limiter.

        Args:
            max_requests: Admissions allowed per window
            window_ms: Window length in milliseconds
            name: Limiter name for logging and metrics
            clock: Monotonic clock in seconds
            sleep: Coroutine used to wait, in seconds
        """
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_ms <= 0:
            raise ValueError("window_ms must be positive")

        self.max_requests = max_requests
        self.window_ms = window_ms
        self.name = name
        self._clock = clock
        self._sleep = sleep
        self._timestamps: deque[float] = deque()
        self._state_lock = threading.Lock()
        self._waiters: Optional[asyncio.Lock] = None

    @classmethod
    def from_settings(cls, settings: "Settings", name: str = "nodit") -> "SlidingWindowRateLimiter":
        return cls(
            max_requests=settings.rate_limit_max_requests,
            window_ms=settings.rate_limit_window_ms,
            name=name,
        )

    @property
    def _window(self) -> float:
        return self.window_ms / 1000.0

    def _prune(self, now: float) -> None:
        while self._timestamps and now - self._timestamps[0] >= self._window:
            self._timestamps.popleft()

    def _try_admit(self) -> float:
        """Admit now if possible.

        Returns:
            0.0 if admitted, otherwise seconds until the oldest entry leaves the window
        """
        with self._state_lock:
            now = self._clock()
            self._prune(now)

            if len(self._timestamps) < self.max_requests:
                self._timestamps.append(now)
                return 0.0

            return self._window - (now - self._timestamps[0])

    def is_allowed(self) -> bool:
        """Admit without waiting; False when the window is full."""
        return self._try_admit() == 0.0

    async def check_limit(self) -> None:
        """Wait until a call may proceed, then record it."""
        if self._waiters is None:
            self._waiters = asyncio.Lock()

        async with self._waiters:
            waited = 0.0
            while True:
                wait_time = self._try_admit()
                if wait_time == 0.0:
                    break

                logger.debug(
                    f"Rate limiter {self.name} full, waiting {wait_time * 1000:.0f}ms",
                    extra={"limiter": self.name, "wait_ms": round(wait_time * 1000)},
                )
                await self._sleep(wait_time)
                waited += wait_time

        if waited:
            resilience_exporter.record_rate_limit_wait(self.name, waited)

    @property
    def current_count(self) -> int:
        """Admissions inside the current window."""
        with self._state_lock:
            self._prune(self._clock())
            return len(self._timestamps)

    def reset(self) -> None:
        with self._state_lock:
            self._timestamps.clear()


class RateLimiter:
    """Registry of sliding-window limiters keyed by service or caller identifier.

    Usage:
        limiter = RateLimiter()
        limiter.configure_service("nodit", max_requests=100, window_ms=60000)

        await limiter.wait_for_request("nodit")
        if limiter.is_allowed("telegram:12345"):
            ...
    """

    def __init__(self, default_max_requests: Optional[int] = None, default_window_ms: int = 60000):
        """Initialize registry.

        Args:
            default_max_requests: Limit applied to unconfigured keys (None = unlimited)
            default_window_ms: Window for unconfigured keys
        """
        self.default_max_requests = default_max_requests
        self.default_window_ms = default_window_ms
        self._limiters: dict[str, SlidingWindowRateLimiter] = {}
        self._lock = threading.Lock()

    def configure_service(self, service: str, max_requests: int, window_ms: int = 60000) -> None:
        """Configure rate limit for a service.

        Args:
            service: Service name or caller identifier
            max_requests: Max requests per window
            window_ms: Window length in milliseconds
        """
        with self._lock:
            self._limiters[service] = SlidingWindowRateLimiter(
                max_requests=max_requests, window_ms=window_ms, name=service
            )
        logger.info(f"Configured rate limit for {service}: {max_requests}/{window_ms}ms")

    def _get(self, key: str) -> Optional[SlidingWindowRateLimiter]:
        with self._lock:
            limiter = self._limiters.get(key)
            if limiter is None and self.default_max_requests is not None:
                limiter = SlidingWindowRateLimiter(
                    max_requests=self.default_max_requests,
                    window_ms=self.default_window_ms,
                    name=key,
                )
                self._limiters[key] = limiter
            return limiter

    def is_allowed(self, key: str) -> bool:
        """Non-blocking admission for ``key``; unlimited keys are always allowed."""
        limiter = self._get(key)
        if limiter is None:
            return True
        return limiter.is_allowed()

    async def wait_for_request(self, key: str) -> None:
        """Wait until ``key`` may make a request."""
        limiter = self._get(key)
        if limiter is not None:
            await limiter.check_limit()

    def get_status(self, key: str) -> Optional[dict]:
        """Get limiter status for a key.

        Returns:
            Status dict or None if the key has no limiter
        """
        with self._lock:
            limiter = self._limiters.get(key)
        if limiter is None:
            return None
        return {
            "service": key,
            "current_count": limiter.current_count,
            "max_requests": limiter.max_requests,
            "window_ms": limiter.window_ms,
        }
