"""
Pipeline runtime configuration.

Controls batching, queue-level retries, worker concurrency and the
retention windows used by the housekeeping sweep.
"""

from dataclasses import dataclass
from datetime import timedelta

from kbforge.utils.retry import RetryConfig


@dataclass
class PipelineConfig:
    """
    Configuration for the ingestion pipeline and its job queues.

    Attributes:
        embedding_batch_size: Number of chunk texts sent to the embedding
            provider per call. Default: 50

        job_attempts: Attempts per job, including the first one. Jobs that
            fail with a permanent error are never re-attempted.
            Default: 1 (no queue-level retry)

        job_backoff_seconds: Initial delay before re-attempting a failed job.
            Doubles with each attempt. Default: 5.0

        job_backoff_max_seconds: Cap for the re-attempt delay. Default: 300.0

        worker_concurrency: Worker threads started per queue. Default: 1

        completed_job_retention_hours: Completed jobs older than this are
            purged by the sweep. Default: 24

        failed_job_retention_days: Failed jobs older than this are purged by
            the sweep. Default: 7

        cleanup_interval_seconds: Period of the housekeeping sweep.
            Default: 3600

        stall_interval_seconds: An active job without a heartbeat for this
            long is reported as stalled. Default: 30

    Example:
        >>> config = PipelineConfig(job_attempts=3, worker_concurrency=4)
    """

    embedding_batch_size: int = 50
    job_attempts: int = 1
    job_backoff_seconds: float = 5.0
    job_backoff_max_seconds: float = 300.0
    worker_concurrency: int = 1
    completed_job_retention_hours: int = 24
    failed_job_retention_days: int = 7
    cleanup_interval_seconds: float = 3600.0
    stall_interval_seconds: float = 30.0

    def __post_init__(self):
        """Validate configuration values."""
        if self.embedding_batch_size < 1:
            raise ValueError("embedding_batch_size must be at least 1")
        if self.job_attempts < 1:
            raise ValueError("job_attempts must be at least 1")
        if self.job_backoff_seconds < 0:
            raise ValueError("job_backoff_seconds must be non-negative")
        if self.job_backoff_max_seconds < self.job_backoff_seconds:
            raise ValueError("job_backoff_max_seconds must be >= job_backoff_seconds")
        if self.worker_concurrency < 1:
            raise ValueError("worker_concurrency must be at least 1")
        if self.completed_job_retention_hours < 0 or self.failed_job_retention_days < 0:
            raise ValueError("retention windows must be non-negative")
        if self.cleanup_interval_seconds <= 0:
            raise ValueError("cleanup_interval_seconds must be positive")
        if self.stall_interval_seconds <= 0:
            raise ValueError("stall_interval_seconds must be positive")

    @property
    def completed_job_retention(self) -> timedelta:
        return timedelta(hours=self.completed_job_retention_hours)

    @property
    def failed_job_retention(self) -> timedelta:
        return timedelta(days=self.failed_job_retention_days)

    @property
    def stall_interval(self) -> timedelta:
        return timedelta(seconds=self.stall_interval_seconds)

    def retry_config(self) -> RetryConfig:
        """Backoff policy applied by the job queue between job attempts."""
        return RetryConfig(
            max_attempts=self.job_attempts,
            base_delay=self.job_backoff_seconds,
            max_delay=self.job_backoff_max_seconds,
            jitter=0.0,
            retry_on=(Exception,),
        )
