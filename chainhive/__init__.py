"""ChainHive: resilient remote-call layer for a multi-chain portfolio backend."""

__version__ = "0.1.0"

from .config import Settings, load_settings
from .logging_config import configure_logging
from .nodit import NoditClient
from .resilience import CircuitBreaker, FallbackExecutor, RetryExecutor, SlidingWindowRateLimiter

__all__ = [
    "Settings",
    "load_settings",
    "configure_logging",
    "NoditClient",
    "RetryExecutor",
    "FallbackExecutor",
    "CircuitBreaker",
    "SlidingWindowRateLimiter",
]
