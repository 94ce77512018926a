"""Retry with exponential backoff.

Provides automatic retry for transient remote-call failures with:
- Configurable attempt count and per-attempt timeout
- Exponential backoff with jitter
- Message/code based retry classification
"""

import dataclasses
import functools
import inspect
import logging
import random
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, TypeVar

from ..monitoring.exporters import resilience_exporter
from .errors import classify_error
from .timeout import delay, with_async_timeout

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

Operation = Callable[[], Awaitable[T]]

MAX_BACKOFF_MS = 30000
JITTER_FACTOR = 0.1


@dataclass(frozen=True)
class RetryConfig:
    """Configuration for retry behavior."""

    max_retries: int = 3
    backoff_ms: int = 1000
    timeout_ms: int = 30000
    exponential_backoff: bool = True

    def __post_init__(self):
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        if self.backoff_ms < 0:
            raise ValueError("backoff_ms must not be negative")
        if self.timeout_ms <= 0:
            raise ValueError("timeout_ms must be positive")

    def with_overrides(self, **overrides) -> "RetryConfig":
        """Return a copy with the given fields replaced."""
        return dataclasses.replace(self, **overrides)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "RetryConfig":
        return cls(
            max_retries=settings.retry_max_retries,
            backoff_ms=settings.retry_backoff_ms,
            timeout_ms=settings.retry_timeout_ms,
            exponential_backoff=settings.retry_exponential_backoff,
        )


def calculate_backoff(attempt: int, config: RetryConfig) -> float:
    """Calculate backoff delay after a failed attempt.

    Args:
        attempt: Attempt number that just failed (1-indexed)
        config: Retry configuration

    Returns:
        Delay in milliseconds
    """
    if not config.exponential_backoff:
        return float(config.backoff_ms)

    # backoff_ms * 2^(attempt-1), plus up to 10% jitter
    exponential_delay = config.backoff_ms * (2 ** (attempt - 1))
    jitter = random.uniform(0, JITTER_FACTOR * exponential_delay)

    return min(exponential_delay + jitter, MAX_BACKOFF_MS)


class RetryExecutor:
    """Runs an operation until it succeeds, fails permanently, or runs out of attempts.

    Usage:
        executor = RetryExecutor(RetryConfig(max_retries=3, backoff_ms=100))
        balance = await executor.call_with_retry(
            lambda: client.get("/ethereum/native/getNativeBalanceByAccount"),
            context="native balance",
        )
    """

    def __init__(self, config: Optional[RetryConfig] = None, **overrides):
        """Initialize executor.

        Args:
            config: Retry configuration (defaults to RetryConfig())
            **overrides: Per-instance overrides of config fields
        """
        config = config or RetryConfig()
        self.config = config.with_overrides(**overrides) if overrides else config

    def delay_for(self, attempt: int) -> float:
        """Backoff in milliseconds after ``attempt`` failed."""
        return calculate_backoff(attempt, self.config)

    async def call_with_retry(
        self,
        operation: Operation[T],
        context: str = "remote call",
        before_attempt: Optional[Callable[[], Awaitable[None]]] = None,
    ) -> T:
        """Execute operation with retry and per-attempt timeout.

        Args:
            operation: Zero-argument callable returning an awaitable
            context: Label used in logs and metrics
            before_attempt: Awaited before each attempt, outside its timeout
                (e.g. a rate limiter wait)

        Returns:
            The operation's result

        Raises:
            Exception: The last error raised by the operation, unwrapped
        """
        max_retries = self.config.max_retries
        last_error: Optional[BaseException] = None
        retryable = True

        for attempt in range(1, max_retries + 1):
            logger.debug(
                f"{context} - Attempt {attempt}/{max_retries}",
                extra={"context": context, "attempt": attempt},
            )
            if before_attempt is not None:
                await before_attempt()

            started = time.perf_counter()
            try:
                result = await with_async_timeout(operation(), self.config.timeout_ms)
            except Exception as e:
                resilience_exporter.record_attempt(context, False, time.perf_counter() - started)
                last_error = e
                classified = classify_error(e)
                retryable = classified.is_retryable

                logger.warning(
                    f"{context} - Attempt {attempt} failed: {classified.message}",
                    extra={
                        "context": context,
                        "attempt": attempt,
                        "code": classified.code,
                        "category": classified.category,
                        "is_retryable": retryable,
                    },
                )

                if not retryable or attempt == max_retries:
                    break

                wait_ms = self.delay_for(attempt)
                resilience_exporter.record_retry(context)
                logger.debug(
                    f"{context} - Waiting {wait_ms:.0f}ms before retry",
                    extra={"context": context, "attempt": attempt, "delay_ms": round(wait_ms)},
                )
                await delay(wait_ms)
                continue

            resilience_exporter.record_attempt(context, True, time.perf_counter() - started)
            if attempt > 1:
                logger.info(
                    f"{context} - Succeeded on attempt {attempt}",
                    extra={"context": context, "attempt": attempt},
                )
            return result

        if retryable:
            logger.error(
                f"{context} - All {max_retries} retry attempts failed",
                extra={"context": context, "error": str(last_error)},
            )
        else:
            logger.error(
                f"{context} - Non-retryable error, giving up",
                extra={"context": context, "error": str(last_error)},
            )
        raise last_error


def retry_with_backoff(
    config: Optional[RetryConfig] = None,
    context: Optional[str] = None,
    **overrides,
):
    """Decorator routing every call of an async function through a RetryExecutor.

    Args:
        config: Retry configuration
        context: Log label (defaults to the function's qualified name)
        **overrides: Per-instance overrides of config fields

    Usage:
        @retry_with_backoff(max_retries=3, backoff_ms=200)
        async def fetch_block_number():
            ...
    """
    executor = RetryExecutor(config, **overrides)

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        if not inspect.iscoroutinefunction(func):
            raise TypeError(f"retry_with_backoff requires an async function, got {func!r}")

        label = context or func.__qualname__

        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            return await executor.call_with_retry(lambda: func(*args, **kwargs), label)

        wrapper.retry_executor = executor
        return wrapper

    return decorator
