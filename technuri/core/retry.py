"""
Retry with exponential backoff and jitter for flaky upstream calls
"""
import asyncio
import functools
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from technuri.core.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryConfig:
    """Backoff parameters; delays are in milliseconds."""
    max_attempts: int = 3
    initial_delay_ms: int = 1000
    backoff_factor: float = 2.0
    jitter_ms: int = 300

    @classmethod
    def from_settings(cls) -> "RetryConfig":
        return cls(
            max_attempts=settings.JOB_MAX_RETRIES,
            initial_delay_ms=settings.JOB_INITIAL_DELAY,
            backoff_factor=settings.JOB_BACKOFF_FACTOR,
            jitter_ms=settings.JOB_JITTER,
        )


def compute_backoff_delay(attempt: int, config: RetryConfig) -> float:
    """
    Delay in milliseconds to wait after the given (1-based) failed attempt.

    delay_k = initial * factor^(k-1) + uniform(0, jitter)
    """
    base = config.initial_delay_ms * (config.backoff_factor ** (attempt - 1))
    jitter = random.uniform(0, config.jitter_ms) if config.jitter_ms > 0 else 0.0
    return base + jitter


class RetryExecutor:
    """Runs an async operation up to ``max_attempts`` times."""

    def __init__(self, config: Optional[RetryConfig] = None):
        self.config = config or RetryConfig.from_settings()

    async def _sleep(self, delay_ms: float) -> None:
        await asyncio.sleep(delay_ms / 1000)

    async def run(self, operation: Callable[[], Awaitable[T]], context: str = "") -> T:
        """
        Await ``operation()`` until it succeeds or attempts are exhausted.

        Raises the last error after the final attempt.
        """
        max_attempts = max(1, self.config.max_attempts)
        last_error: Optional[BaseException] = None

        for attempt in range(1, max_attempts + 1):
            try:
                return await operation()
            except Exception as e:  # pylint: disable=broad-except
                last_error = e
                if attempt == max_attempts:
                    logger.error(f"Failed after {max_attempts} attempts: {context}. Error: {e}")
                    break

                delay_ms = compute_backoff_delay(attempt, self.config)
                logger.warning(
                    f"Attempt {attempt} failed: {context}. Retrying in {delay_ms:.0f}ms. Error: {e}"
                )
                await self._sleep(delay_ms)

        raise last_error


def retry_on_failure(config: Optional[RetryConfig] = None):
    """
    Decorator to retry async functions on failure

    Usage:
        @retry_on_failure(RetryConfig(max_attempts=3))
        async def my_function():
            # code that might fail
    """
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            executor = RetryExecutor(config)
            return await executor.run(lambda: func(*args, **kwargs), func.__name__)
        return wrapper
    return decorator
