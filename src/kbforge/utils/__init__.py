from kbforge.utils.performance import timed, timer
from kbforge.utils.retry import RetryConfig, calculate_delay, retry_with_backoff, should_retry
from kbforge.utils.similarity import cosine_similarity

__all__ = [
    "RetryConfig",
    "calculate_delay",
    "retry_with_backoff",
    "should_retry",
    "timer",
    "timed",
    "cosine_similarity",
]
