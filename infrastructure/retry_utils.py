"""
Retry utilities with exponential backoff for GitHub rate limits and transient errors.
"""

import time
import logging
from typing import Callable, TypeVar
from functools import wraps
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

T = TypeVar('T')


class RateLimitExceeded(Exception):
    """Raised when GitHub API rate limit is exceeded."""
    def __init__(self, reset_at: datetime):
        self.reset_at = reset_at
        super().__init__(f"Rate limit exceeded. Resets at {reset_at}")

    def seconds_until_reset(self) -> float:
        return (self.reset_at - datetime.now(timezone.utc)).total_seconds()


def exponential_backoff(
    max_retries: int = 5,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    retry_on: tuple[type[Exception], ...] = (Exception,),
) -> Callable:
    """
    Decorator for exponential backoff retry logic.

    Args:
        max_retries: Maximum number of retry attempts
        base_delay: Initial delay in seconds
        max_delay: Maximum delay between retries
        exponential_base: Multiplier for exponential growth
        retry_on: Exception types worth retrying; anything else propagates at once
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except RateLimitExceeded as e:
                    if attempt == max_retries:
                        raise
                    wait_time = e.seconds_until_reset()
                    if wait_time > 0:
                        logger.warning(
                            f"Rate limit exceeded. Waiting {wait_time:.1f}s until reset"
                        )
                        time.sleep(wait_time + 1)  # 1s buffer
                    else:
                        # reset already passed but GitHub still refuses
                        delay = min(base_delay * (exponential_base ** attempt), max_delay)
                        logger.warning(
                            f"Rate limit still exceeded after reset. Retrying in {delay:.1f}s..."
                        )
                        time.sleep(delay)
                except retry_on as e:
                    if attempt == max_retries:
                        logger.error(
                            f"Max retries ({max_retries}) reached for {func.__name__}"
                        )
                        raise

                    delay = min(
                        base_delay * (exponential_base ** attempt),
                        max_delay
                    )

                    logger.warning(
                        f"Attempt {attempt + 1}/{max_retries} failed for "
                        f"{func.__name__}: {str(e)}. Retrying in {delay:.1f}s..."
                    )
                    time.sleep(delay)

            raise AssertionError("unreachable")

        return wrapper
    return decorator
