"""Retry strategies using Strategy Pattern."""
from .retry_strategy import RetryStrategy, ExponentialBackoffStrategy, retry_async

__all__ = [
    'RetryStrategy',
    'ExponentialBackoffStrategy',
    'retry_async',
]
