"""Resilience layer for ChainHive remote calls.

This module provides:
- Retry with exponential backoff and per-attempt timeout
- Ordered fallback across equivalent providers
- Circuit breakers
- Sliding-window rate limiting
- Retry classification of remote-call errors
"""

from .circuit_breaker import CircuitBreaker, CircuitBreakerConfig, CircuitState
from .errors import (
    CircuitOpenError,
    ClassifiedError,
    HTTPStatusError,
    NetworkError,
    OperationTimeoutError,
    RemoteCallError,
    RPCError,
    classify_error,
    is_retryable_error,
)
from .fallback import FallbackExecutor
from .rate_limiter import RateLimiter, SlidingWindowRateLimiter
from .retry import RetryConfig, RetryExecutor, calculate_backoff, retry_with_backoff
from .timeout import delay, with_async_timeout

__all__ = [
    "RetryConfig",
    "RetryExecutor",
    "calculate_backoff",
    "retry_with_backoff",
    "FallbackExecutor",
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitState",
    "SlidingWindowRateLimiter",
    "RateLimiter",
    "delay",
    "with_async_timeout",
    "classify_error",
    "is_retryable_error",
    "ClassifiedError",
    "RemoteCallError",
    "NetworkError",
    "HTTPStatusError",
    "RPCError",
    "OperationTimeoutError",
    "CircuitOpenError",
]
