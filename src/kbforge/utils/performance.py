"""Timing helpers for pipeline stages."""

import time
from contextlib import contextmanager
from functools import wraps
from typing import Any, Callable

from loguru import logger


@contextmanager
def timer(operation: str, log_level: str = "DEBUG", threshold_ms: float = 0):
    """Context manager for timing operations.

    Args:
        operation: Description of the operation being timed
        log_level: Log level to use ("DEBUG", "INFO", "WARNING")
        threshold_ms: Only log if operation takes longer than this (in milliseconds)

    Example:
        >>> with timer("Embedding batch of 50 chunks"):
        ...     vectors = embedder.embed(texts)
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000
        if elapsed_ms >= threshold_ms:
            getattr(logger, log_level.lower())(f"{operation} took {elapsed_ms:.2f}ms")


def timed(operation: str | None = None, threshold_ms: float = 100):
    """Decorator for timing function execution.

    Runs slower than one second are logged at INFO, the rest at DEBUG.
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            op_name = operation or f"{func.__module__}.{func.__name__}"
            start = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                elapsed_ms = (time.perf_counter() - start) * 1000
                if elapsed_ms >= threshold_ms:
                    if elapsed_ms > 1000:
                        logger.info(f"{op_name} took {elapsed_ms / 1000:.2f}s")
                    else:
                        logger.debug(f"{op_name} took {elapsed_ms:.2f}ms")

        return wrapper
    return decorator
