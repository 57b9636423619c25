"""
In-process job queue.

Backs the four pipeline stages with named queues held in memory. Jobs are
executed either synchronously via :meth:`InMemoryJobQueue.run_until_idle`
(tests, scripts) or by worker threads started with :meth:`start`.

Lifecycle of a job:
    waiting -> active -> completed
                      -> failed
                      -> waiting (re-attempt after backoff, if attempts remain)
    active -> stalled (no heartbeat within the stall window; final, a late
                       result of the worker does not change it)
"""

import dataclasses
import logging
import threading
from collections import deque
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from kbforge.config.pipeline import PipelineConfig
from kbforge.entities.job import IngestionJob, JobState, QueueName
from kbforge.errors import ConfigurationError, KBForgeError
from kbforge.jobs.base import BaseJobQueue, JobEvent, JobHandler, JobListener
from kbforge.utils.retry import calculate_delay, should_retry

logger = logging.getLogger(__name__)

# Upper bound for a worker's idle wait, so stop() and delayed jobs are noticed
IDLE_POLL_SECONDS = 0.5


class InMemoryJobQueue(BaseJobQueue):
    """
    Thread-safe in-memory implementation of the job-queue contract.

    Attributes:
        config: Attempts, backoff and concurrency settings
        clock: Returns the current time (UTC); injectable for tests

    Example:
        >>> queue = InMemoryJobQueue()
        >>> queue.process("document", "process-document", handler)
        >>> job = queue.enqueue("document", "process-document", {"document_id": "d1"})
        >>> queue.run_until_idle()
        >>> queue.get_job("document", job.job_id).state
        <JobState.COMPLETED: 'completed'>
    """

    def __init__(
        self,
        config: PipelineConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.config = config or PipelineConfig()
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self._retry_config = self.config.retry_config()

        self._jobs: dict[QueueName, dict[str, IngestionJob]] = {q: {} for q in QueueName}
        self._waiting: dict[QueueName, deque[str]] = {q: deque() for q in QueueName}
        self._handlers: dict[tuple[QueueName, str], JobHandler] = {}
        self._listeners: dict[JobEvent, list[JobListener]] = {e: [] for e in JobEvent}

        self._lock = threading.RLock()
        self._available = threading.Condition(self._lock)
        self._workers: list[threading.Thread] = []
        self._stopping = threading.Event()

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------

    def enqueue(
        self,
        queue_name: QueueName | str,
        job_type: str,
        payload: dict[str, Any],
        *,
        max_attempts: int | None = None,
    ) -> IngestionJob:
        queue = QueueName(queue_name)
        job = IngestionJob(
            queue_name=queue,
            job_type=job_type,
            payload=payload,
            created_at=self.clock(),
            max_attempts=max_attempts or self.config.job_attempts,
        )

        with self._available:
            self._jobs[queue][job.job_id] = job
            self._waiting[queue].append(job.job_id)
            self._available.notify_all()

        logger.debug(f"[job {job.job_id}] Enqueued {job_type} on '{queue}'")
        return job

    def get_job(self, queue_name: QueueName | str, job_id: str) -> IngestionJob | None:
        return self._jobs[QueueName(queue_name)].get(job_id)

    def jobs(self, queue_name: QueueName | str, state: JobState | None = None) -> list[IngestionJob]:
        with self._lock:
            jobs = list(self._jobs[QueueName(queue_name)].values())
        return [j for j in jobs if state is None or j.state == state]

    def counts(self, queue_name: QueueName | str) -> dict[str, int]:
        counts = {state.value: 0 for state in JobState}
        for job in self.jobs(queue_name):
            counts[job.state.value] += 1
        return counts

    # ------------------------------------------------------------------
    # Consumer side
    # ------------------------------------------------------------------

    def process(self, queue_name: QueueName | str, job_type: str, handler: JobHandler) -> None:
        self._handlers[(QueueName(queue_name), job_type)] = handler

    def on(self, event: JobEvent | str, listener: JobListener) -> None:
        self._listeners[JobEvent(event)].append(listener)

    def update_progress(self, job: IngestionJob, progress: int) -> None:
        job.progress = max(0, min(100, int(progress)))
        job.heartbeat_at = self.clock()

    def _take_next(self, queue: QueueName) -> IngestionJob | None:
        """Pop the first waiting job whose backoff has elapsed and mark it active."""
        now = self.clock()
        with self._lock:
            waiting = self._waiting[queue]
            for job_id in list(waiting):
                job = self._jobs[queue].get(job_id)
                if job is None or job.state != JobState.WAITING:
                    waiting.remove(job_id)
                    continue
                if job.available_at is not None and job.available_at > now:
                    continue

                waiting.remove(job_id)
                job.state = JobState.ACTIVE
                job.started_at = now
                job.heartbeat_at = now
                job.attempts_made += 1
                return job
        return None

    def _execute(self, job: IngestionJob) -> None:
        """Run a job's handler and record the outcome. Never raises."""
        handler = self._handlers.get((job.queue_name, job.job_type))
        logger.info(
            f"[job {job.job_id}] Processing {job.job_type} "
            f"(attempt {job.attempts_made}/{job.max_attempts})"
        )

        try:
            if handler is None:
                raise ConfigurationError(f"No handler registered for {job.queue_name}/{job.job_type}")
            result = handler(job)
        except Exception as e:
            self._handle_failure(job, e)
            return

        with self._lock:
            if job.state == JobState.STALLED:
                logger.warning(f"[job {job.job_id}] Finished after being marked stalled, state left as stalled")
                return
            job.result = result
            job.progress = 100
            job.finished_at = self.clock()
            job.failure_reason = None
            job.state = JobState.COMPLETED

        logger.info(f"[job {job.job_id}] Completed {job.job_type}")
        self._emit(JobEvent.COMPLETED, job)

    def _handle_failure(self, job: IngestionJob, error: Exception) -> None:
        reason = error.message if isinstance(error, KBForgeError) else str(error) or type(error).__name__
        retry_config = self._retry_config
        if job.max_attempts != retry_config.max_attempts:
            retry_config = dataclasses.replace(retry_config, max_attempts=job.max_attempts)

        with self._available:
            if job.state == JobState.STALLED:
                logger.warning(f"[job {job.job_id}] Failed after being marked stalled, state left as stalled: {reason}")
                return
            job.failure_reason = reason
            if should_retry(error, job.attempts_made, retry_config):
                delay = calculate_delay(job.attempts_made, retry_config, error)
                job.state = JobState.WAITING
                job.available_at = self.clock() + timedelta(seconds=delay)
                self._waiting[job.queue_name].append(job.job_id)
                self._available.notify_all()
                logger.warning(
                    f"[job {job.job_id}] Attempt {job.attempts_made}/{job.max_attempts} failed, "
                    f"retrying in {delay:.1f}s: {reason}"
                )
                return

            job.state = JobState.FAILED
            job.finished_at = self.clock()

        logger.error(f"[job {job.job_id}] Failed {job.job_type}: {type(error).__name__}: {reason}")
        self._emit(JobEvent.FAILED, job)

    def _emit(self, event: JobEvent, job: IngestionJob) -> None:
        for listener in list(self._listeners[event]):
            try:
                listener(job)
            except Exception as e:
                logger.warning(f"Job '{event}' listener failed: {e}")

    def process_next(self, queue_name: QueueName | str) -> bool:
        """Run one available job of a queue on the calling thread."""
        job = self._take_next(QueueName(queue_name))
        if job is None:
            return False
        self._execute(job)
        return True

    def run_until_idle(self, max_jobs: int | None = None) -> int:
        """
        Process jobs on the calling thread until no queue has an available job.

        Jobs enqueued by handlers are picked up in the same run. Jobs held
        back by a backoff delay are not waited for.

        Returns:
            Number of jobs executed
        """
        executed = 0
        progressed = True
        while progressed:
            progressed = False
            for queue in QueueName:
                if max_jobs is not None and executed >= max_jobs:
                    return executed
                if self.process_next(queue):
                    executed += 1
                    progressed = True
        return executed

    # ------------------------------------------------------------------
    # Worker threads
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start ``worker_concurrency`` worker threads per queue with handlers."""
        if self._workers:
            return
        self._stopping.clear()

        queues = sorted({queue for queue, _ in self._handlers})
        for queue in queues:
            for n in range(self.config.worker_concurrency):
                worker = threading.Thread(
                    target=self._worker_loop,
                    args=(queue,),
                    name=f"kbforge-{queue}-{n}",
                    daemon=True,
                )
                worker.start()
                self._workers.append(worker)

        logger.info(f"Started {len(self._workers)} workers for queues: {', '.join(queues)}")

    def stop(self, timeout: float = 5.0) -> None:
        """Stop workers after their current job."""
        self._stopping.set()
        with self._available:
            self._available.notify_all()
        for worker in self._workers:
            worker.join(timeout)
        self._workers = []
        logger.info("Job queue workers stopped")

    def _worker_loop(self, queue: QueueName) -> None:
        while not self._stopping.is_set():
            job = self._take_next(queue)
            if job is None:
                with self._available:
                    self._available.wait(IDLE_POLL_SECONDS)
                continue
            self._execute(job)

    # ------------------------------------------------------------------
    # Housekeeping
    # ------------------------------------------------------------------

    def clean(self, queue_name: QueueName | str, grace: timedelta, state: JobState) -> list[str]:
        queue = QueueName(queue_name)
        cutoff = self.clock() - grace

        with self._lock:
            expired = [
                job_id for job_id, job in self._jobs[queue].items()
                if job.state == state and job.finished_at is not None and job.finished_at < cutoff
            ]
            for job_id in expired:
                del self._jobs[queue][job_id]

        if expired:
            logger.info(f"Cleaned {len(expired)} {state} jobs from '{queue}'")
        return expired

    def check_stalled(self, stall_after: timedelta) -> list[IngestionJob]:
        now = self.clock()
        cutoff = now - stall_after
        stalled: list[IngestionJob] = []

        with self._lock:
            for jobs in self._jobs.values():
                for job in jobs.values():
                    last_seen = job.heartbeat_at or job.started_at
                    if job.state == JobState.ACTIVE and last_seen is not None and last_seen < cutoff:
                        job.state = JobState.STALLED
                        job.finished_at = now
                        stalled.append(job)

        for job in stalled:
            logger.warning(f"[job {job.job_id}] Stalled on '{job.queue_name}' (no heartbeat since {job.heartbeat_at})")
            self._emit(JobEvent.STALLED, job)
        return stalled
