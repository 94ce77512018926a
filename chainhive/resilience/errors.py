"""Remote-call error variants and retry classification.

Transport boundaries (HTTP client, JSON-RPC client) translate whatever they
catch into one of the ``RemoteCallError`` variants below. The classifier
then decides from message and code whether another attempt can help.
"""

from dataclasses import dataclass
from typing import Any, Optional

UNCLASSIFIED_CODE = -1

# Checked first; these short-circuit every retryable rule below
NON_RETRYABLE_PATTERNS = (
    "invalid api key",
    "unauthorized",
    "forbidden",
    "not found",
    "method not found",
    "invalid params",
    "parse error",
    "invalid request",
)

NETWORK_ERROR_PATTERNS = (
    "network error",
    "timeout",
    "enotfound",
    "econnreset",
    "econnrefused",
    "connection reset",
    "connection refused",
    "socket hang up",
    "request timeout",
    "connection timeout",
    "too many requests",
    "rate limit",
    "service unavailable",
    "bad gateway",
    "gateway timeout",
)

RETRYABLE_HTTP_CODES = frozenset({408, 429, 500, 502, 503, 504})

# Internal error, resource unavailable, limit exceeded
RETRYABLE_RPC_CODES = frozenset({-32603, -32002, -32005})


class RemoteCallError(Exception):
    """Base class for failures of a wrapped remote operation."""

    def __init__(self, message: str = "", code: Optional[int] = None, data: Any = None):
        super().__init__(message)
        self.code = code
        self.data = data


class NetworkError(RemoteCallError):
    """Transport-level failure: DNS, connect, reset, read timeout."""


class HTTPStatusError(RemoteCallError):
    """Upstream answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int, data: Any = None):
        super().__init__(message, code=status_code, data=data)

    @property
    def status_code(self) -> int:
        return self.code


class RPCError(RemoteCallError):
    """JSON-RPC error object returned by a node."""


class OperationTimeoutError(RemoteCallError):
    """An attempt did not finish within its timeout."""

    def __init__(self, message: str = "", timeout_ms: float = 0):
        super().__init__(message)
        self.timeout_ms = timeout_ms


class CircuitOpenError(RemoteCallError):
    """Circuit breaker refused the call without invoking it."""

    def __init__(self, name: str):
        super().__init__(f"Circuit breaker {name} is OPEN")
        self.breaker_name = name


@dataclass(frozen=True)
class ClassifiedError:
    """Normalized view of a failure."""

    code: int
    message: str
    is_retryable: bool
    category: str
    data: Any = None


def _extract(error: BaseException) -> tuple[str, int]:
    message = str(error) or type(error).__name__
    code = getattr(error, "code", None)
    # bool is an int subclass; never treat True/False as a status code
    if not isinstance(code, int) or isinstance(code, bool):
        code = UNCLASSIFIED_CODE
    return message, code


def _categorize(message: str, code: int) -> tuple[bool, str]:
    lowered = message.lower()

    if any(pattern in lowered for pattern in NON_RETRYABLE_PATTERNS):
        return False, "client"

    if any(pattern in lowered for pattern in NETWORK_ERROR_PATTERNS):
        return True, "network"

    if code in RETRYABLE_HTTP_CODES:
        return True, "http"

    if code in RETRYABLE_RPC_CODES:
        return True, "rpc"

    # Unknown errors are assumed transient
    return True, "unknown"


def classify_error(error: BaseException) -> ClassifiedError:
    """Classify an error raised by a remote operation.

    Args:
        error: The exception that occurred

    Returns:
        ClassifiedError with code, message and retry decision
    """
    message, code = _extract(error)
    is_retryable, category = _categorize(message, code)
    return ClassifiedError(
        code=code,
        message=message,
        is_retryable=is_retryable,
        category=category,
        data=getattr(error, "data", None),
    )


def is_retryable_error(error: BaseException) -> bool:
    """Return True if another attempt could succeed."""
    return classify_error(error).is_retryable
