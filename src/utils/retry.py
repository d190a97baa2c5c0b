"""
Pulseflow Debug Agent - Retry Logic with Exponential Backoff
Created: 2026-01-12

Provides the retry decorator used by the Pulseflow fetch client and the LLM analyzer.

Features:
- Exponential Backoff: 1s → 2s → 4s
- Configurable retry count (default: 3)
- Optional predicate to reject non-transient errors of a retryable type
- Structured logging
"""

import time
from functools import wraps
from typing import Any, Callable, Optional, Tuple, Type, TypeVar

from loguru import logger

T = TypeVar("T")


def exponential_backoff(attempt: int, base_delay: float = 1.0, max_delay: float = 32.0) -> float:
    """
    Calculate exponential backoff delay.

    Args:
        attempt: Current retry attempt (0-indexed)
        base_delay: Base delay in seconds (default: 1.0)
        max_delay: Maximum delay in seconds (default: 32.0)

    Returns:
        Delay in seconds (capped at max_delay)

    Example:
        attempt=0 → 1s
        attempt=1 → 2s
        attempt=2 → 4s
        attempt=3 → 8s
    """
    delay = base_delay * (2**attempt)
    return min(delay, max_delay)


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    retryable_exceptions: Tuple[Type[Exception], ...] = (ConnectionError, TimeoutError),
    should_retry: Optional[Callable[[Exception], bool]] = None,
    log_prefix: str = "Retry",
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator for retry logic with exponential backoff.

    Args:
        max_retries: Maximum number of attempts (default: 3)
        base_delay: Base delay for exponential backoff (default: 1.0s)
        retryable_exceptions: Tuple of exception types to retry on
        should_retry: Optional predicate; a retryable-type error for which it
            returns False is re-raised immediately
        log_prefix: Prefix for log messages

    Returns:
        Decorated function that retries on failure

    Usage:
        @retry_with_backoff(max_retries=3, base_delay=1.0)
        def fetch():
            return requests.get(url, timeout=10)

    Behavior:
        - Attempt 1: No delay
        - Attempt 2: Wait 1s (base_delay * 2^0)
        - Attempt 3: Wait 2s (base_delay * 2^1)

        If all attempts fail, raise the last exception.
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            last_exception = None

            for attempt in range(max_retries):
                try:
                    result = func(*args, **kwargs)

                    if attempt > 0:
                        logger.info(
                            f"[{log_prefix}] ✅ Success on attempt {attempt + 1}/{max_retries} "
                            f"for {func.__name__}"
                        )

                    return result

                except retryable_exceptions as e:
                    last_exception = e

                    if should_retry is not None and not should_retry(e):
                        logger.warning(
                            f"[{log_prefix}] Non-transient {type(e).__name__} in {func.__name__}: {e}"
                        )
                        raise

                    if attempt >= max_retries - 1:
                        logger.error(
                            f"[{log_prefix}] ❌ All {max_retries} attempts failed for {func.__name__}: {e}"
                        )
                        raise

                    delay = exponential_backoff(attempt, base_delay)

                    logger.warning(
                        f"[{log_prefix}] ⚠️ Attempt {attempt + 1}/{max_retries} failed for {func.__name__}: {e}. "
                        f"Retrying in {delay:.1f}s..."
                    )

                    time.sleep(delay)

            if last_exception:
                raise last_exception

            raise RuntimeError(f"Unexpected retry logic failure in {func.__name__}")

        return wrapper

    return decorator
