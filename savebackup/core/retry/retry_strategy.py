"""Retry strategies using Strategy Pattern."""
import asyncio
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

import aiohttp

from ..exceptions import TransportError
from ..logging import get_logger

T = TypeVar('T')

logger = get_logger('savebackup.retry')

DEFAULT_RETRY_ON: Tuple[Type[BaseException], ...] = (
    TransportError,
    aiohttp.ClientError,
    asyncio.TimeoutError,
)


class RetryStrategy(ABC):
    """Abstract retry strategy."""

    @abstractmethod
    def should_retry(self, error: BaseException, attempt: int, max_attempts: int) -> bool:
        """Determines if the failed attempt should be retried."""
        pass

    @abstractmethod
    async def wait_async(self, attempt: int):
        """Waits before the next attempt."""
        pass


class ExponentialBackoffStrategy(RetryStrategy):
    """
    Exponential backoff retry strategy.

    Attempt ``n`` (zero based) is followed by a pause of
    ``base_delay * 2 ** n`` seconds, capped at ``max_delay`` when given.
    Only transport-level failures are retried.
    """

    def __init__(
        self,
        base_delay: float = 1.0,
        max_delay: Optional[float] = None,
        retry_on: Tuple[Type[BaseException], ...] = DEFAULT_RETRY_ON,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.retry_on = retry_on
        self._sleep = sleep

    def calculate_delay(self, attempt: int) -> float:
        """Calculate delay after the given attempt number."""
        delay = self.base_delay * (2 ** attempt)
        if self.max_delay is not None:
            return min(delay, self.max_delay)
        return delay

    def should_retry(self, error: BaseException, attempt: int, max_attempts: int) -> bool:
        """Retries transport errors while attempts remain."""
        return isinstance(error, self.retry_on) and attempt + 1 < max_attempts

    async def wait_async(self, attempt: int):
        """Waits with exponential backoff."""
        await self._sleep(self.calculate_delay(attempt))


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    strategy: Optional[RetryStrategy] = None,
    max_attempts: int = 3,
    description: str = 'operation'
) -> T:
    """
    Run an async operation under a bounded retry policy.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        strategy: Retry strategy (exponential backoff by default)
        max_attempts: Total number of attempts, including the first
        description: Label used in log messages

    Returns:
        The operation result

    Raises:
        The last error once the strategy declines to retry
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    strategy = strategy or ExponentialBackoffStrategy()
    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as e:
            if not strategy.should_retry(e, attempt, max_attempts):
                if attempt > 0:
                    logger.error(f"{description} failed after {attempt + 1} attempts: {e}")
                raise
            logger.warning(
                f"{description} failed (attempt {attempt + 1}/{max_attempts}): {e}; retrying"
            )
            await strategy.wait_async(attempt)
            attempt += 1
