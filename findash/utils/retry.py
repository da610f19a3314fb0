"""
Retry logic with exponential backoff for upstream calls
"""

import asyncio
import functools
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from .errors import NetworkError, classify_error
from .logger import get_logger

logger = get_logger(__name__)

T = TypeVar('T')

@dataclass(frozen=True)
class RetryConfig:
    """
    Backoff policy for a single operation

    Attributes:
        max_retries: Total number of attempts (first call included)
        initial_delay: Seconds to wait after the first failure
        max_delay: Upper bound for any single wait
        factor: Growth factor between consecutive waits
        attempt_timeout: Optional per-attempt timeout in seconds
    """
    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 10.0
    factor: float = 2.0
    attempt_timeout: Optional[float] = None

    def __post_init__(self):
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        if self.factor <= 1:
            raise ValueError("factor must be greater than 1")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must be non-negative")

    def delay_for(self, attempt: int) -> float:
        """Wait after failed attempt number `attempt` (1-based)"""
        return min(self.initial_delay * self.factor ** (attempt - 1), self.max_delay)

def default_retry_config() -> RetryConfig:
    """Policy built from configuration (3 attempts, 1s, 10s cap, x2)"""
    from ..config import get_config
    settings = get_config().retry
    return RetryConfig(
        max_retries=settings.max_retries,
        initial_delay=settings.initial_delay_seconds,
        max_delay=settings.max_delay_seconds,
        factor=settings.factor
    )

async def _attempt(operation: Callable[[], Awaitable[T]], config: RetryConfig) -> T:
    if config.attempt_timeout is None:
        return await operation()
    try:
        return await asyncio.wait_for(operation(), timeout=config.attempt_timeout)
    except asyncio.TimeoutError as e:
        raise NetworkError(f"Operation timed out after {config.attempt_timeout}s") from e

async def with_retry(
    operation: Callable[[], Awaitable[T]],
    config: Optional[RetryConfig] = None,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    description: str = "operation"
) -> T:
    """
    Run `operation` with exponential backoff

    Validation errors and API errors marked non-retryable fail on the
    first attempt. Anything else is retried until `max_retries` attempts
    have been made; the last error is then re-raised unchanged.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        config: Backoff policy (default: from configuration)
        sleep: Awaitable used for the backoff wait
        description: Label used in log messages

    Returns:
        Result of the first successful attempt
    """
    config = config or default_retry_config()
    attempt = 1

    while True:
        try:
            result = await _attempt(operation, config)
        except Exception as e:
            record = classify_error(e)

            if not record.is_retryable:
                logger.warning(f"{description} failed with non-retryable {record.tag}: {record.message}")
                raise

            if attempt >= config.max_retries:
                logger.error(
                    f"{description} failed after {attempt} attempts: {record.tag}: {record.message}"
                )
                raise

            delay = config.delay_for(attempt)
            logger.warning(
                f"{description} attempt {attempt}/{config.max_retries} failed "
                f"({record.tag}: {record.message}), retrying in {delay:.2f}s"
            )
        else:
            if attempt > 1:
                logger.info(f"{description} succeeded after {attempt} attempts")
            return result

        await sleep(delay)
        attempt += 1

def retry(config: Optional[RetryConfig] = None):
    """Decorator form of with_retry for coroutine functions"""

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            return await with_retry(
                lambda: func(*args, **kwargs),
                config,
                description=func.__qualname__
            )

        return wrapper
    return decorator
