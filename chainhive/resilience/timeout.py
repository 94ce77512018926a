"""Delay and timeout primitives.

A timed-out attempt is cancelled, so transports with native cancellation
(httpx) abort the in-flight request. Work running in a thread executor cannot
be stopped; it finishes in the background and its result is discarded.
"""

import asyncio
from typing import Awaitable, TypeVar

from .errors import OperationTimeoutError

T = TypeVar("T")


async def delay(ms: float) -> None:
    """Suspend the current task for ``ms`` milliseconds."""
    await asyncio.sleep(max(ms, 0) / 1000.0)


async def with_async_timeout(
    awaitable: Awaitable[T],
    timeout_ms: float,
    error_message: str = "Operation timed out",
) -> T:
    """Await with a timeout.

    Only the timer firing produces ``OperationTimeoutError``; a
    ``TimeoutError`` raised by the operation itself propagates unchanged.

    Args:
        awaitable: Coroutine or future to await
        timeout_ms: Timeout in milliseconds
        error_message: Prefix for the timeout error message

    Returns:
        Result of the awaitable

    Raises:
        OperationTimeoutError: If the timeout is exceeded
    """
    task = asyncio.ensure_future(awaitable)
    try:
        done, _ = await asyncio.wait({task}, timeout=timeout_ms / 1000.0)
    except asyncio.CancelledError:
        task.cancel()
        raise

    if not done:
        task.cancel()
        # Wait for the operation to unwind its cancellation
        await asyncio.gather(task, return_exceptions=True)
        raise OperationTimeoutError(f"{error_message} after {timeout_ms:g}ms", timeout_ms)

    return task.result()
