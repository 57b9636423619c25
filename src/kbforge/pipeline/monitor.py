"""
Queue monitoring and housekeeping.

Logs job completions, failures and stalls, and periodically sweeps the
queues: stall detection on every tick, purging of old finished jobs once per
cleanup interval.
"""

import logging
import threading
import time

from kbforge.config.pipeline import PipelineConfig
from kbforge.entities.job import IngestionJob, JobState, QueueName
from kbforge.jobs.base import BaseJobQueue, JobEvent

logger = logging.getLogger(__name__)


class QueueMonitor:
    """
    Observe and tidy a job queue.

    Stalled jobs are reported, never resumed; resuming is the queue
    infrastructure's job.

    Example:
        >>> monitor = QueueMonitor(queue, PipelineConfig())
        >>> monitor.attach()
        >>> monitor.start()   # background sweep thread
        >>> monitor.sweep()   # or sweep on demand
        {'completed_removed': 0, 'failed_removed': 0, 'stalled': 0}
    """

    def __init__(self, queue: BaseJobQueue, config: PipelineConfig | None = None):
        self.queue = queue
        self.config = config or PipelineConfig()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._attached = False

    def attach(self) -> None:
        """Subscribe the logging listeners to the queue's job events."""
        if self._attached:
            return
        self.queue.on(JobEvent.COMPLETED, self._on_completed)
        self.queue.on(JobEvent.FAILED, self._on_failed)
        self.queue.on(JobEvent.STALLED, self._on_stalled)
        self._attached = True

    @staticmethod
    def _on_completed(job: IngestionJob) -> None:
        logger.info(f"{job.queue_name.capitalize()} job {job.job_id} completed")

    @staticmethod
    def _on_failed(job: IngestionJob) -> None:
        logger.error(f"{job.queue_name.capitalize()} job {job.job_id} failed: {job.failure_reason}")

    @staticmethod
    def _on_stalled(job: IngestionJob) -> None:
        logger.warning(f"{job.queue_name.capitalize()} job {job.job_id} stalled")

    def check_stalled(self) -> int:
        stalled = self.queue.check_stalled(self.config.stall_interval)
        return len(stalled)

    def clean(self) -> tuple[int, int]:
        """
        Purge completed jobs past their retention window, then failed ones.

        Stalled jobs share the failed retention window and are counted with them.
        """
        completed = failed = 0
        for queue in QueueName:
            completed += len(self.queue.clean(queue, self.config.completed_job_retention, JobState.COMPLETED))
            failed += len(self.queue.clean(queue, self.config.failed_job_retention, JobState.FAILED))
            failed += len(self.queue.clean(queue, self.config.failed_job_retention, JobState.STALLED))
        return completed, failed

    def sweep(self) -> dict[str, int]:
        """Run stall detection and retention cleanup once."""
        stalled = self.check_stalled()
        completed, failed = self.clean()
        logger.info(
            f"Queue sweep: removed {completed} completed and {failed} failed jobs, "
            f"{stalled} stalled"
        )
        return {"completed_removed": completed, "failed_removed": failed, "stalled": stalled}

    def start(self) -> None:
        """Start the background sweep thread."""
        if self._thread is not None:
            return
        self.attach()
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="kbforge-queue-monitor", daemon=True)
        self._thread.start()
        logger.info("Queue monitor started")

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Queue monitor stopped")

    def _run(self) -> None:
        last_clean = time.monotonic()
        while not self._stop.wait(self.config.stall_interval_seconds):
            try:
                self.check_stalled()
                if time.monotonic() - last_clean >= self.config.cleanup_interval_seconds:
                    self.clean()
                    last_clean = time.monotonic()
            except Exception:
                logger.exception("Queue sweep failed")
