"""
Retry Utility with Exponential Backoff.

Shared by the embedding gateway (in-call retries against a provider) and the
job queue (re-queueing a failed job attempt after a delay).

Usage:
------
    from kbforge.utils.retry import retry_with_backoff, RetryConfig

    @retry_with_backoff(max_attempts=3, base_delay=1.0)
    def embed(texts):
        return embedder.embed(texts)

    # Job-queue style: only compute the delay, the caller reschedules
    delay = calculate_delay(job.attempts_made, RetryConfig(base_delay=5.0))
"""

import logging
import random
import time
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, TypeVar

from kbforge.errors import (
    KBForgeError,
    PermanentError,
    RateLimitError,
    RetryableError,
    is_retryable,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Default exceptions that are considered retryable
DEFAULT_RETRYABLE_EXCEPTIONS: tuple[type[Exception], ...] = (
    RetryableError,
    ConnectionError,
    OSError,  # Includes network errors
)


@dataclass
class RetryConfig:
    """
    Configuration for retry behavior.

    Attributes:
        max_attempts: Maximum number of attempts (including initial)
        base_delay: Initial delay between retries (seconds)
        max_delay: Maximum delay between retries (seconds)
        exponential_base: Base for exponential backoff (delay = base_delay * exponential_base^(attempt-1))
        jitter: Add random jitter to delays (0.0 to 1.0, fraction of delay)
        retry_on: Tuple of exception types to retry on
        stop_on: Tuple of exception types to never retry on
        respect_retry_after: Honor Retry-After from RateLimitError
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 60.0
    exponential_base: float = 2.0
    jitter: float = 0.1
    retry_on: tuple[type[Exception], ...] = DEFAULT_RETRYABLE_EXCEPTIONS
    stop_on: tuple[type[Exception], ...] = (PermanentError,)
    respect_retry_after: bool = True

    def __post_init__(self):
        """Validate configuration values."""
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0:
            raise ValueError("base_delay must be non-negative")
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be >= base_delay")
        if not 0 <= self.jitter <= 1:
            raise ValueError("jitter must be between 0 and 1")


def calculate_delay(
    attempt: int,
    config: RetryConfig,
    error: Exception | None = None
) -> float:
    """
    Calculate delay before next retry attempt.

    Args:
        attempt: Current attempt number (1-based)
        config: Retry configuration
        error: The exception that triggered the retry

    Returns:
        Delay in seconds before next attempt
    """
    # Check for Retry-After from rate limit errors
    if config.respect_retry_after and isinstance(error, RateLimitError):
        if error.retry_after is not None and error.retry_after > 0:
            logger.debug(f"Using Retry-After header: {error.retry_after}s")
            return min(error.retry_after, config.max_delay)

    delay = config.base_delay * (config.exponential_base ** (attempt - 1))

    if config.jitter > 0:
        jitter_range = delay * config.jitter
        delay += random.uniform(-jitter_range, jitter_range)

    delay = min(delay, config.max_delay)
    return max(delay, 0)


def should_retry(
    error: Exception,
    attempt: int,
    config: RetryConfig
) -> bool:
    """
    Determine if an error should trigger a retry.

    Args:
        error: The exception that was raised
        attempt: Current attempt number
        config: Retry configuration

    Returns:
        True if should retry, False otherwise
    """
    if attempt >= config.max_attempts:
        logger.debug(f"Max attempts ({config.max_attempts}) reached, not retrying")
        return False

    # Never retry these, even when wrapped
    if isinstance(error, config.stop_on):
        logger.debug(f"Error type {type(error).__name__} in stop_on list, not retrying")
        return False
    original = getattr(error, "original_error", None)
    if original is not None and isinstance(original, config.stop_on):
        logger.debug(f"Wrapped error {type(original).__name__} in stop_on list, not retrying")
        return False

    if isinstance(error, config.retry_on):
        return True

    if is_retryable(error):
        return True

    logger.debug(f"Error type {type(error).__name__} not in retry_on list, not retrying")
    return False


def retry_with_backoff(
    func: Callable[..., T] | None = None,
    *,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    config: RetryConfig | None = None,
) -> Callable[..., T] | Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator that retries a function with exponential backoff.

    Can be used with or without arguments:

        @retry_with_backoff
        def my_func():
            pass

        @retry_with_backoff(max_attempts=5)
        def my_func():
            pass

    Args:
        func: The function to wrap (when used without arguments)
        max_attempts: Maximum retry attempts
        base_delay: Initial delay between retries
        max_delay: Maximum delay cap
        config: Full RetryConfig (overrides other params if provided)

    Returns:
        Decorated function with retry logic
    """
    if config is None:
        config = RetryConfig(
            max_attempts=max_attempts,
            base_delay=base_delay,
            max_delay=max_delay,
        )

    def decorator(fn: Callable[..., T]) -> Callable[..., T]:
        @wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            for attempt in range(1, config.max_attempts + 1):
                try:
                    return fn(*args, **kwargs)
                except Exception as e:
                    _log_error(fn.__name__, attempt, config.max_attempts, e)

                    if not should_retry(e, attempt, config):
                        raise

                    delay = calculate_delay(attempt, config, e)
                    logger.warning(
                        f"[{fn.__name__}] Retrying in {delay:.2f}s "
                        f"(attempt {attempt}/{config.max_attempts}) "
                        f"after {type(e).__name__}: {e}"
                    )
                    time.sleep(delay)

            # should_retry refuses the last attempt, so the loop always returns or raises
            raise RuntimeError(f"Retry failed for {fn.__name__} with no error captured")

        return wrapper

    if func is not None:
        return decorator(func)
    return decorator


def _log_error(func_name: str, attempt: int, max_attempts: int, error: Exception) -> None:
    error_info = {
        "function": func_name,
        "attempt": attempt,
        "max_attempts": max_attempts,
        "error_type": type(error).__name__,
        "error_message": str(error),
    }

    if isinstance(error, KBForgeError):
        error_info["details"] = error.details

    if attempt == max_attempts:
        logger.error(f"[{func_name}] Final attempt failed: {error_info}")
    else:
        logger.debug(f"[{func_name}] Attempt {attempt} failed: {error_info}")
