"""Circuit breaker for remote call paths.

Provides per-call-path circuit breakers with:
- Three states: CLOSED (normal), OPEN (failing), HALF_OPEN (probing)
- Configurable failure threshold and recovery time
- A single trial call once the recovery time has elapsed
"""

import functools
import inspect
import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, TypeVar

from ..monitoring.exporters import resilience_exporter
from .errors import CircuitOpenError
from .retry import Operation

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "CLOSED"  # Normal operation
    OPEN = "OPEN"  # Dependency failing, reject calls
    HALF_OPEN = "HALF_OPEN"  # Probing whether the dependency recovered


@dataclass(frozen=True)
class CircuitBreakerConfig:
    """Configuration for a circuit breaker."""

    failure_threshold: int = 5  # Consecutive failures before opening
    recovery_time_ms: int = 60000  # Time OPEN before a trial call is allowed

    def __post_init__(self):
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        if self.recovery_time_ms < 0:
            raise ValueError("recovery_time_ms must not be negative")

    @classmethod
    def from_settings(cls, settings: "Settings") -> "CircuitBreakerConfig":
        return cls(
            failure_threshold=settings.breaker_failure_threshold,
            recovery_time_ms=settings.breaker_recovery_time_ms,
        )


class CircuitBreaker:
    """Circuit breaker guarding one logical call path.

    Usage:
        breaker = CircuitBreaker("nodit_api")
        result = await breaker.execute(lambda: client.get("/ethereum/..."))

        # Or as a decorator:
        @breaker.protect
        async def fetch_balances():
            ...
    """

    def __init__(
        self,
        name: str,
        config: Optional[CircuitBreakerConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        excluded: Optional[Callable[[Exception], bool]] = None,
    ):
        """Initialize circuit breaker.

        Args:
            name: Call path name for logging and metrics
            config: Circuit breaker configuration
            clock: Monotonic clock in seconds
            excluded: Predicate for errors that do not count as failures
        """
        self.name = name
        self.config = config or CircuitBreakerConfig()
        self._clock = clock
        self._excluded = excluded
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: Optional[float] = None
        # Never held across an await
        self._lock = threading.Lock()

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return self._state

    @property
    def failure_count(self) -> int:
        with self._lock:
            return self._failure_count

    @property
    def is_open(self) -> bool:
        return self.state == CircuitState.OPEN

    def _before_call(self) -> None:
        """Admit or reject a call; OPEN turns HALF_OPEN once recovery time has passed."""
        with self._lock:
            if self._state != CircuitState.OPEN:
                return

            elapsed_ms = (self._clock() - self._last_failure_time) * 1000
            if elapsed_ms >= self.config.recovery_time_ms:
                self._transition(CircuitState.HALF_OPEN)
                logger.info(
                    f"Circuit breaker {self.name} entering HALF_OPEN for a trial call",
                    extra={"breaker": self.name},
                )
                return

        raise CircuitOpenError(self.name)

    def record_success(self) -> None:
        """Record a successful call."""
        with self._lock:
            recovered = self._state != CircuitState.CLOSED
            self._failure_count = 0
            self._transition(CircuitState.CLOSED)
        if recovered:
            logger.info(
                f"Circuit breaker {self.name} CLOSED - dependency recovered",
                extra={"breaker": self.name},
            )

    def record_failure(self) -> None:
        """Record a failed call."""
        with self._lock:
            self._failure_count += 1
            self._last_failure_time = self._clock()
            failures = self._failure_count

            tripped = (
                self._state != CircuitState.OPEN
                and failures >= self.config.failure_threshold
            )
            if tripped:
                self._transition(CircuitState.OPEN, tripped=True)

        if tripped:
            logger.warning(
                f"Circuit breaker {self.name} OPENED after {failures} failures",
                extra={"breaker": self.name, "failure_count": failures},
            )

    def _transition(self, state: CircuitState, tripped: bool = False) -> None:
        if self._state == state and not tripped:
            return
        self._state = state
        resilience_exporter.record_breaker_state(self.name, state.value, tripped=tripped)

    async def execute(self, operation: Operation[T]) -> T:
        """Run operation through the breaker.

        Args:
            operation: Zero-argument callable returning an awaitable

        Returns:
            The operation's result

        Raises:
            CircuitOpenError: If the circuit is open; operation is not invoked
            Exception: Whatever the operation raised; excluded errors count as success
        """
        self._before_call()

        try:
            result = await operation()
        except Exception as e:
            if self._excluded is not None and self._excluded(e):
                # The dependency answered; only the request was rejected
                self.record_success()
            else:
                self.record_failure()
            raise

        self.record_success()
        return result

    def protect(self, func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        """Decorator to guard an async function with this breaker."""
        if not inspect.iscoroutinefunction(func):
            raise TypeError(f"protect requires an async function, got {func!r}")

        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            return await self.execute(lambda: func(*args, **kwargs))

        return wrapper

    def reset(self) -> None:
        """Manually reset the circuit breaker."""
        with self._lock:
            self._failure_count = 0
            self._last_failure_time = None
            self._transition(CircuitState.CLOSED)
        logger.info(f"Circuit breaker {self.name} manually reset", extra={"breaker": self.name})

    def get_status(self) -> dict[str, Any]:
        """Get circuit breaker status.

        Returns:
            Status dictionary
        """
        with self._lock:
            return {
                "name": self.name,
                "state": self._state.value,
                "failure_count": self._failure_count,
                "last_failure": self._last_failure_time,
                "failure_threshold": self.config.failure_threshold,
                "recovery_time_ms": self.config.recovery_time_ms,
            }
