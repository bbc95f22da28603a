# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.15
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/zenjournal/core/retry.py

"""
Retry with exponential backoff for remote store reads.

Only idempotent operations (query, direct lookup, download) are wrapped.
Writes are left to the next save or sync trigger so a retry can never
create a duplicate remote object.
"""

import asyncio
import random
from functools import wraps
from typing import Callable, Optional, Type, Tuple, Any

from loguru import logger

from zenjournal.system.exceptions import RemoteError


class RetryConfig:
    """Configuration for retry behavior"""

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 0.5,
        max_delay: float = 30.0,
        exponential_base: float = 2.0,
        jitter: bool = True
    ):
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter

    @classmethod
    def from_settings(cls, sync_settings) -> "RetryConfig":
        return cls(max_attempts=sync_settings.retry_attempts, base_delay=sync_settings.retry_base_delay)


def calculate_delay(attempt: int, config: RetryConfig, hint: Optional[float] = None) -> float:
    """Delay before the next attempt; a server-provided hint (Retry-After) wins."""
    if attempt <= 0:
        return 0.0
    if hint is not None:
        return min(max(0.0, hint), config.max_delay)

    delay = config.base_delay * (config.exponential_base ** (attempt - 1))
    delay = min(delay, config.max_delay)

    if config.jitter:
        jitter_range = delay * 0.1  # 10% jitter
        delay += random.uniform(-jitter_range, jitter_range)

    return max(0.0, delay)


def is_retryable_error(exception: Exception,
                       retryable_exceptions: Tuple[Type[Exception], ...] = (RemoteError,)) -> bool:
    """Determine if an exception should trigger a retry"""
    if isinstance(exception, retryable_exceptions):
        return bool(getattr(exception, "retry_possible", True))
    return False


async def call_with_retry(
    func: Callable,
    *args,
    config: Optional[RetryConfig] = None,
    operation_name: str = "operation",
    retryable_exceptions: Tuple[Type[Exception], ...] = (RemoteError,),
    **kwargs
) -> Any:
    """Await func(*args, **kwargs), retrying transient failures."""
    config = config or RetryConfig()
    for attempt in range(1, config.max_attempts + 1):
        try:
            result = await func(*args, **kwargs)
            if attempt > 1:
                logger.info(f"{operation_name} succeeded on attempt {attempt}")
            return result
        except Exception as e:
            if not is_retryable_error(e, retryable_exceptions):
                raise
            if attempt >= config.max_attempts:
                logger.error(f"{operation_name} failed after {config.max_attempts} attempts: {e}")
                raise
            delay = calculate_delay(attempt, config, getattr(e, "backoff_seconds", None))
            logger.warning(
                f"{operation_name} failed on attempt {attempt}/{config.max_attempts}: {e}. "
                f"Retrying in {delay:.2f} seconds..."
            )
            if delay > 0:
                await asyncio.sleep(delay)


def retry_with_backoff(operation_name: str = "operation"):
    """
    Decorator for coroutine methods whose instance carries a `retry_config`.

    Args:
        operation_name: Human-readable name for logging
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(self, *args, **kwargs) -> Any:
            return await call_with_retry(
                func, self, *args,
                config=getattr(self, "retry_config", None),
                operation_name=operation_name,
                **kwargs
            )
        return wrapper
    return decorator
