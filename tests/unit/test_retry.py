"""Tests for retry strategies."""
import asyncio
import pytest
from unittest.mock import AsyncMock

import aiohttp

from savebackup.core.exceptions import ProtocolError, TransportError
from savebackup.core.retry import ExponentialBackoffStrategy, retry_async


class TestExponentialBackoffStrategy:
    """Test suite for ExponentialBackoffStrategy."""

    def test_delays_double(self):
        """Test delay is base * 2 ** attempt."""
        strategy = ExponentialBackoffStrategy(base_delay=1.0)

        assert [strategy.calculate_delay(n) for n in range(3)] == [1.0, 2.0, 4.0]

    def test_max_delay(self):
        """Test delay is capped."""
        strategy = ExponentialBackoffStrategy(base_delay=1.0, max_delay=3.0)

        assert strategy.calculate_delay(5) == 3.0

    def test_retries_transport_errors(self):
        """Test transport failures are retried while attempts remain."""
        strategy = ExponentialBackoffStrategy()

        assert strategy.should_retry(TransportError("x"), 0, 3)
        assert strategy.should_retry(aiohttp.ClientConnectionError(), 1, 3)
        assert strategy.should_retry(asyncio.TimeoutError(), 1, 3)
        assert not strategy.should_retry(TransportError("x"), 2, 3)

    def test_does_not_retry_other_errors(self):
        """Test non-transport errors fail immediately."""
        strategy = ExponentialBackoffStrategy()

        assert not strategy.should_retry(ProtocolError("x"), 0, 3)
        assert not strategy.should_retry(ValueError("x"), 0, 3)

    @pytest.mark.asyncio
    async def test_wait_uses_sleep(self):
        """Test wait_async sleeps for the calculated delay."""
        sleep = AsyncMock()
        strategy = ExponentialBackoffStrategy(base_delay=1.0, sleep=sleep)

        await strategy.wait_async(2)

        sleep.assert_awaited_once_with(4.0)


class TestRetryAsync:
    """Test suite for retry_async."""

    @pytest.mark.asyncio
    async def test_success_first_attempt(self):
        """Test no retry on success."""
        operation = AsyncMock(return_value='ok')

        assert await retry_async(operation, max_attempts=3) == 'ok'
        assert operation.await_count == 1

    @pytest.mark.asyncio
    async def test_recovers_after_failures(self):
        """Test two failures then success with 1s and 2s backoff."""
        sleep = AsyncMock()
        operation = AsyncMock(side_effect=[TransportError("a"), TransportError("b"), 'ok'])

        result = await retry_async(
            operation,
            strategy=ExponentialBackoffStrategy(sleep=sleep),
            max_attempts=3
        )

        assert result == 'ok'
        assert operation.await_count == 3
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self):
        """Test the last error is raised once attempts run out."""
        sleep = AsyncMock()
        operation = AsyncMock(side_effect=TransportError("down", status=503))

        with pytest.raises(TransportError) as exc_info:
            await retry_async(
                operation,
                strategy=ExponentialBackoffStrategy(sleep=sleep),
                max_attempts=3
            )

        assert exc_info.value.status == 503
        assert operation.await_count == 3
        assert sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_non_retryable_raises_immediately(self):
        """Test protocol errors are not retried."""
        operation = AsyncMock(side_effect=ProtocolError("bad"))

        with pytest.raises(ProtocolError):
            await retry_async(operation, strategy=ExponentialBackoffStrategy(base_delay=0))

        assert operation.await_count == 1

    @pytest.mark.asyncio
    async def test_invalid_max_attempts(self):
        """Test at least one attempt is required."""
        with pytest.raises(ValueError):
            await retry_async(AsyncMock(), max_attempts=0)
