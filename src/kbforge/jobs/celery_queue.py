"""
Celery-backed job queue.

Each pipeline queue maps to one Celery task routed to a Celery queue of the
same name, so workers can be started per stage and scaled across processes:

    celery -A kbforge.worker worker -Q document,webscraping
    celery -A kbforge.worker worker -Q embedding,reindex --concurrency 4

Job records live in the application database and are shared by producers,
workers and the monitoring API. Messages are acknowledged only after the
job has run, so a job whose worker died is delivered again.

Lifecycle of a job record:
    waiting -> active -> completed
                      -> failed
                      -> waiting (re-delivered after backoff, if attempts remain)
    active -> active (re-delivered after the worker was lost)
    active -> stalled (no heartbeat within the stall window; final)
"""

import dataclasses
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from celery import Celery
from sqlalchemy.engine import Engine
from sqlmodel import Field, Session, SQLModel, create_engine, select

from kbforge.config.pipeline import PipelineConfig
from kbforge.config.settings import Settings
from kbforge.entities.job import IngestionJob, JobState, QueueName
from kbforge.errors import ConfigurationError, KBForgeError
from kbforge.jobs.base import BaseJobQueue, JobEvent, JobHandler, JobListener
from kbforge.utils.retry import calculate_delay, should_retry

logger = logging.getLogger(__name__)

TASK_PREFIX = "kbforge.jobs"

# States in which a delivered message is executed
RUNNABLE_STATES = (JobState.WAITING.value, JobState.ACTIVE.value)


def create_celery_app(settings: Settings) -> Celery:
    """Build the Celery app for the ingestion queues."""
    app = Celery(
        "kbforge",
        broker=settings.CELERY_BROKER_URL,
        backend=settings.CELERY_RESULT_BACKEND,
    )
    app.conf.update(
        task_serializer="json",
        result_serializer="json",
        accept_content=["json"],
        timezone=settings.CELERY_TIMEZONE,
        task_acks_late=True,
        task_reject_on_worker_lost=True,
        worker_prefetch_multiplier=1,
    )
    return app


def _to_db(value: datetime | None) -> datetime | None:
    # Stored as naive UTC so SQL comparisons work on every backend
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _from_db(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class JobRecord(SQLModel, table=True):
    """Persistent state of one ingestion job."""
    __tablename__ = "ingestion_jobs"

    job_id: str = Field(primary_key=True)
    queue_name: str = Field(index=True)
    job_type: str
    state: str = Field(default=JobState.WAITING.value, index=True)
    payload: str  # JSON
    progress: int = 0
    max_attempts: int = 1
    attempts_made: int = 0
    created_at: datetime
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    heartbeat_at: Optional[datetime] = None
    available_at: Optional[datetime] = None
    failure_reason: Optional[str] = None
    result: Optional[str] = None  # JSON

    @classmethod
    def from_job(cls, job: IngestionJob) -> "JobRecord":
        record = cls(
            job_id=job.job_id,
            queue_name=job.queue_name.value,
            job_type=job.job_type,
            payload=json.dumps(job.payload),
            created_at=_to_db(job.created_at),
        )
        record.update_from(job)
        return record

    def update_from(self, job: IngestionJob) -> None:
        """Copy the mutable lifecycle fields of ``job``."""
        self.state = job.state.value
        self.progress = job.progress
        self.max_attempts = job.max_attempts
        self.attempts_made = job.attempts_made
        self.started_at = _to_db(job.started_at)
        self.finished_at = _to_db(job.finished_at)
        self.heartbeat_at = _to_db(job.heartbeat_at)
        self.available_at = _to_db(job.available_at)
        self.failure_reason = job.failure_reason
        self.result = json.dumps(job.result, default=str) if job.result is not None else None

    def to_job(self) -> IngestionJob:
        return IngestionJob(
            queue_name=QueueName(self.queue_name),
            job_type=self.job_type,
            payload=json.loads(self.payload),
            created_at=_from_db(self.created_at),
            job_id=self.job_id,
            state=JobState(self.state),
            progress=self.progress,
            max_attempts=self.max_attempts,
            attempts_made=self.attempts_made,
            started_at=_from_db(self.started_at),
            finished_at=_from_db(self.finished_at),
            heartbeat_at=_from_db(self.heartbeat_at),
            available_at=_from_db(self.available_at),
            failure_reason=self.failure_reason,
            result=json.loads(self.result) if self.result is not None else None,
        )


class CeleryJobQueue(BaseJobQueue):
    """
    Job-queue contract on Celery workers with database-held job records.

    Handlers and listeners are registered per process. Workers must build
    the same pipeline as producers so that every delivered job finds its
    handler; listeners fire in the process that finishes the job.

    Attributes:
        app: Celery app the per-queue tasks are registered on
        engine: Database holding the job records
        config: Attempts and backoff settings
        clock: Returns the current time (UTC); injectable for tests

    Example:
        >>> queue = CeleryJobQueue.from_settings(load_settings())
        >>> pipeline = IngestionPipeline(queue, repo, gateway, store, FileExtractor(), WebsiteExtractor())
        >>> job = pipeline.submit_document("doc-1", "bot-1")
    """

    def __init__(
        self,
        app: Celery,
        engine: Engine,
        config: PipelineConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.app = app
        self.engine = engine
        self.config = config or PipelineConfig()
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self._retry_config = self.config.retry_config()

        self._handlers: dict[tuple[QueueName, str], JobHandler] = {}
        self._listeners: dict[JobEvent, list[JobListener]] = {e: [] for e in JobEvent}

        SQLModel.metadata.create_all(engine, tables=[JobRecord.__table__])
        self._tasks = {queue: self._register_task(queue) for queue in QueueName}

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        app: Celery | None = None,
        config: PipelineConfig | None = None,
    ) -> "CeleryJobQueue":
        url = settings.DATABASE_URL
        connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
        return cls(
            app or create_celery_app(settings),
            create_engine(url, echo=False, connect_args=connect_args),
            config or settings.pipeline_config(),
        )

    def _register_task(self, queue: QueueName):
        def run_job(job_id: str) -> None:
            self.run_job(queue, job_id)

        return self.app.task(name=f"{TASK_PREFIX}.{queue.value}", shared=False, lazy=False)(run_job)

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

        with Session(self.engine) as session:
            session.add(JobRecord.from_job(job))
            session.commit()

        logger.debug(f"[job {job.job_id}] Enqueued {job_type} on '{queue}'")
        self._dispatch(job)
        return job

    def _dispatch(self, job: IngestionJob, countdown: float | None = None) -> None:
        self._tasks[job.queue_name].apply_async(
            args=[job.job_id],
            queue=job.queue_name.value,
            countdown=countdown,
        )

    def get_job(self, queue_name: QueueName | str, job_id: str) -> IngestionJob | None:
        queue = QueueName(queue_name)
        with Session(self.engine) as session:
            record = session.get(JobRecord, job_id)
            if record is None or record.queue_name != queue.value:
                return None
            return record.to_job()

    def jobs(self, queue_name: QueueName | str, state: JobState | None = None) -> list[IngestionJob]:
        statement = select(JobRecord).where(JobRecord.queue_name == QueueName(queue_name).value)
        if state is not None:
            statement = statement.where(JobRecord.state == JobState(state).value)
        with Session(self.engine) as session:
            return [record.to_job() for record in session.exec(statement).all()]

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

        with Session(self.engine) as session:
            record = session.get(JobRecord, job.job_id)
            if record is None:
                return
            record.progress = job.progress
            record.heartbeat_at = _to_db(job.heartbeat_at)
            session.add(record)
            session.commit()

    def run_job(self, queue_name: QueueName | str, job_id: str) -> None:
        """Execute one delivered job and record the outcome. Never raises."""
        job = self._claim(QueueName(queue_name), job_id)
        if job is None:
            return

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

        job.result = result
        job.progress = 100
        job.finished_at = self.clock()
        job.failure_reason = None
        job.state = JobState.COMPLETED
        if not self._finish(job):
            return

        logger.info(f"[job {job.job_id}] Completed {job.job_type}")
        self._emit(JobEvent.COMPLETED, job)

    def _claim(self, queue: QueueName, job_id: str) -> IngestionJob | None:
        """Mark a delivered job active, or skip it when it must not run."""
        now = self.clock()
        with Session(self.engine) as session:
            record = session.get(JobRecord, job_id)
            if record is None or record.queue_name != queue.value:
                logger.warning(f"[job {job_id}] Delivered but no longer recorded, skipping")
                return None
            if record.state not in RUNNABLE_STATES:
                logger.warning(f"[job {job_id}] Delivered in state {record.state}, skipping")
                return None

            record.state = JobState.ACTIVE.value
            record.started_at = _to_db(now)
            record.heartbeat_at = _to_db(now)
            record.attempts_made += 1
            session.add(record)
            session.commit()
            session.refresh(record)
            return record.to_job()

    def _finish(self, job: IngestionJob) -> bool:
        """Write the outcome of a run unless the job was marked stalled meanwhile."""
        with Session(self.engine) as session:
            record = session.get(JobRecord, job.job_id)
            if record is None:
                logger.warning(f"[job {job.job_id}] Finished after its record was removed")
                return False
            if record.state == JobState.STALLED.value:
                logger.warning(f"[job {job.job_id}] Finished after being marked stalled, state left as stalled")
                return False

            record.update_from(job)
            session.add(record)
            session.commit()
        return True

    def _handle_failure(self, job: IngestionJob, error: Exception) -> None:
        reason = error.message if isinstance(error, KBForgeError) else str(error) or type(error).__name__
        retry_config = self._retry_config
        if job.max_attempts != retry_config.max_attempts:
            retry_config = dataclasses.replace(retry_config, max_attempts=job.max_attempts)

        job.failure_reason = reason
        retry = should_retry(error, job.attempts_made, retry_config)
        if retry:
            delay = calculate_delay(job.attempts_made, retry_config, error)
            job.state = JobState.WAITING
            job.available_at = self.clock() + timedelta(seconds=delay)
        else:
            job.state = JobState.FAILED
            job.finished_at = self.clock()

        if not self._finish(job):
            return

        if retry:
            logger.warning(
                f"[job {job.job_id}] Attempt {job.attempts_made}/{job.max_attempts} failed, "
                f"retrying in {delay:.1f}s: {reason}"
            )
            self._dispatch(job, countdown=delay)
            return

        logger.error(f"[job {job.job_id}] Failed {job.job_type}: {type(error).__name__}: {reason}")
        self._emit(JobEvent.FAILED, job)

    def _emit(self, event: JobEvent, job: IngestionJob) -> None:
        for listener in list(self._listeners[event]):
            try:
                listener(job)
            except Exception as e:
                logger.warning(f"Job '{event}' listener failed: {e}")

    # ------------------------------------------------------------------
    # Housekeeping
    # ------------------------------------------------------------------

    def clean(self, queue_name: QueueName | str, grace: timedelta, state: JobState) -> list[str]:
        queue = QueueName(queue_name)
        cutoff = _to_db(self.clock() - grace)
        statement = select(JobRecord).where(
            JobRecord.queue_name == queue.value,
            JobRecord.state == JobState(state).value,
            JobRecord.finished_at < cutoff,
        )

        with Session(self.engine) as session:
            expired = session.exec(statement).all()
            removed = [record.job_id for record in expired]
            for record in expired:
                session.delete(record)
            session.commit()

        if removed:
            logger.info(f"Cleaned {len(removed)} {state} jobs from '{queue}'")
        return removed

    def check_stalled(self, stall_after: timedelta) -> list[IngestionJob]:
        now = self.clock()
        statement = select(JobRecord).where(
            JobRecord.state == JobState.ACTIVE.value,
            JobRecord.heartbeat_at < _to_db(now - stall_after),
        )

        with Session(self.engine) as session:
            records = session.exec(statement).all()
            for record in records:
                record.state = JobState.STALLED.value
                record.finished_at = _to_db(now)
                session.add(record)
            stalled = [record.to_job() for record in records]
            session.commit()

        for job in stalled:
            logger.warning(f"[job {job.job_id}] Stalled on '{job.queue_name}' (no heartbeat since {job.heartbeat_at})")
            self._emit(JobEvent.STALLED, job)
        return stalled
