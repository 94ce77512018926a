"""Tests for the fallback executor."""

from unittest.mock import AsyncMock, Mock

import pytest

from chainhive.resilience.errors import HTTPStatusError, NetworkError, RemoteCallError
from chainhive.resilience.fallback import FallbackExecutor
from chainhive.resilience.retry import RetryExecutor


@pytest.fixture
def executor(fast_retry_config):
    return FallbackExecutor(RetryExecutor(fast_retry_config))


class TestFallbackExecutor:
    """Test call_with_fallback."""

    @pytest.mark.asyncio
    async def test_first_provider_success_skips_rest(self, executor):
        primary = AsyncMock(return_value="primary")
        backup = AsyncMock(return_value="backup")

        assert await executor.call_with_fallback([primary, backup], "balances") == "primary"
        backup.assert_not_called()

    @pytest.mark.asyncio
    async def test_backup_used_after_primary_exhausts_retries(self, executor):
        order = []

        async def primary():
            order.append("primary")
            raise NetworkError("Network error: econnrefused")

        async def backup():
            order.append("backup")
            return "backup"

        assert await executor.call_with_fallback([primary, backup], "balances") == "backup"
        assert order == ["primary", "primary", "primary", "backup"]

    @pytest.mark.asyncio
    async def test_non_retryable_moves_to_next_provider_at_once(self, executor):
        primary = AsyncMock(side_effect=HTTPStatusError("API request failed: 403 Forbidden", 403))
        backup = AsyncMock(return_value="backup")

        assert await executor.call_with_fallback([primary, backup]) == "backup"
        assert primary.call_count == 1

    @pytest.mark.asyncio
    async def test_all_providers_fail_raises_last_error(self, executor):
        first_error = RemoteCallError("Invalid request")
        last_error = RemoteCallError("Forbidden")
        primary = AsyncMock(side_effect=first_error)
        backup = AsyncMock(side_effect=last_error)

        with pytest.raises(RemoteCallError) as exc_info:
            await executor.call_with_fallback([primary, backup], "balances")

        assert exc_info.value is last_error

    @pytest.mark.asyncio
    async def test_empty_provider_list_rejected(self, executor):
        with pytest.raises(ValueError):
            await executor.call_with_fallback([], "balances")

    @pytest.mark.asyncio
    async def test_context_labels_include_provider_position(self):
        retry_executor = Mock()
        retry_executor.call_with_retry = AsyncMock(side_effect=[RemoteCallError("down"), "ok"])
        executor = FallbackExecutor(retry_executor)
        primary, backup = AsyncMock(), AsyncMock()

        await executor.call_with_fallback([primary, backup], "rpc ethereum eth_call")

        labels = [c.args[1] for c in retry_executor.call_with_retry.call_args_list]
        assert labels == [
            "rpc ethereum eth_call (provider 1/2)",
            "rpc ethereum eth_call (provider 2/2)",
        ]
        assert retry_executor.call_with_retry.call_args_list[0].args[0] is primary

    def test_default_retry_executor(self):
        assert isinstance(FallbackExecutor().retry_executor, RetryExecutor)
