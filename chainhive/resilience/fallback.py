"""Fallback across equivalent providers.

Used when several upstream endpoints can answer the same call (primary and
backup RPC nodes, for example). Order encodes preference; providers are
tried one at a time, never in parallel.
"""

import logging
from typing import Awaitable, Callable, Optional, Sequence, TypeVar

from .retry import Operation, RetryExecutor

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FallbackExecutor:
    """Tries an ordered list of operations, each with retry, until one succeeds."""

    def __init__(self, retry_executor: Optional[RetryExecutor] = None):
        """Initialize fallback executor.

        Args:
            retry_executor: Executor applied to each provider
        """
        self.retry_executor = retry_executor or RetryExecutor()

    async def call_with_fallback(
        self,
        operations: Sequence[Operation[T]],
        context: str = "multi-provider call",
        before_attempt: Optional[Callable[[], Awaitable[None]]] = None,
    ) -> T:
        """Return the first provider result that succeeds.

        Args:
            operations: Providers in order of preference
            context: Label used in logs
            before_attempt: Awaited before every attempt of every provider

        Returns:
            Result of the first successful provider

        Raises:
            ValueError: If no operations are given
            Exception: The last provider's error when all of them fail
        """
        if not operations:
            raise ValueError("call_with_fallback requires at least one operation")

        total = len(operations)
        last_error: Optional[Exception] = None

        for index, operation in enumerate(operations, start=1):
            logger.debug(
                f"{context} - Trying provider {index}/{total}",
                extra={"context": context, "provider": index},
            )
            try:
                return await self.retry_executor.call_with_retry(
                    operation,
                    f"{context} (provider {index}/{total})",
                    before_attempt=before_attempt,
                )
            except Exception as e:
                last_error = e
                logger.warning(
                    f"{context} - Provider {index} failed: {e}",
                    extra={"context": context, "provider": index},
                )

        logger.error(
            f"{context} - All {total} providers failed",
            extra={"context": context, "error": str(last_error)},
        )
        raise last_error
