"""
Retry utilities with exponential backoff for outbound API calls.

Only transient failures are retried: dropped connections, timeouts and
429/5xx answers. A missing record or a rejected payload fails immediately.
"""
import asyncio
import functools
import random
from typing import Callable, Optional, Tuple, Type

import aiohttp

from seodash.config import get_settings
from seodash.exceptions import NotFoundError, SeoDashError
from seodash.utils.logger import log


RETRYABLE_EXCEPTIONS: Tuple[Type[BaseException], ...] = (
    aiohttp.ClientConnectionError,
    aiohttp.ServerTimeoutError,
    asyncio.TimeoutError,
    ConnectionError,
)

RETRYABLE_STATUS_CODES: Tuple[int, ...] = (429, 500, 502, 503, 504)


def calculate_backoff(
    attempt: int,
    base_delay: float = 0.5,
    max_delay: float = 8.0,
    jitter: bool = True
) -> float:
    """
    Delay before the next attempt.

    Args:
        attempt: Attempt that just failed (1-indexed)
        base_delay: Delay after the first failure
        max_delay: Upper bound before jitter
        jitter: Add 0-25% randomness

    Returns:
        Delay in seconds
    """
    delay = min(base_delay * (2 ** (attempt - 1)), max_delay)
    if jitter:
        delay += delay * random.uniform(0, 0.25)
    return delay


def is_retryable_error(error: BaseException) -> bool:
    """Check if an error is worth another attempt."""
    if isinstance(error, NotFoundError):
        return False

    if isinstance(error, RETRYABLE_EXCEPTIONS):
        return True

    status = getattr(error, "status", None)
    if isinstance(error, SeoDashError) and status is not None:
        return status in RETRYABLE_STATUS_CODES

    return False


def retry_async(
    max_attempts: Optional[int] = None,
    base_delay: float = 0.5,
    max_delay: float = 8.0,
    on_retry: Optional[Callable[[int, BaseException, float], None]] = None
):
    """
    Async decorator for retrying operations with exponential backoff.

    max_attempts defaults to settings.http_max_attempts, read at call time.

    Usage:
        @retry_async()
        async def _request(...):
            ...
    """
    def decorator(func: Callable):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            attempts = max_attempts or get_settings().http_max_attempts

            for attempt in range(1, attempts + 1):
                try:
                    result = await func(*args, **kwargs)
                    if attempt > 1:
                        log.info(f"{func.__name__} succeeded on attempt {attempt}")
                    return result

                except Exception as e:
                    if attempt >= attempts or not is_retryable_error(e):
                        raise

                    delay = calculate_backoff(attempt, base_delay=base_delay, max_delay=max_delay)
                    log.warning(
                        f"{func.__name__} attempt {attempt} failed: {e}. "
                        f"Retrying in {delay:.1f}s..."
                    )
                    if on_retry:
                        on_retry(attempt, e, delay)

                    await asyncio.sleep(delay)

            raise RuntimeError("Retry exhausted")

        return wrapper

    return decorator
