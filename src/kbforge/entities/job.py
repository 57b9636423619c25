"""Job entities used by the ingestion queues."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel


class QueueName(StrEnum):
    """Pipeline stages, one job queue each."""
    DOCUMENT = "document"
    EMBEDDING = "embedding"
    WEBSCRAPING = "webscraping"
    REINDEX = "reindex"


class JobType(StrEnum):
    PROCESS_DOCUMENT = "process-document"
    SCRAPE_WEBSITE = "scrape-website"
    GENERATE_EMBEDDINGS = "generate-embeddings"
    REINDEX_BOT = "reindex-bot"


class JobState(StrEnum):
    WAITING = "waiting"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"
    STALLED = "stalled"


@dataclass
class IngestionJob:
    """
    One execution of a pipeline stage.

    Created by the queue on enqueue and mutated only by the worker
    executing it. ``available_at`` holds back a re-attempted job until its
    backoff delay has elapsed.
    """

    queue_name: QueueName
    job_type: str
    payload: dict[str, Any]
    created_at: datetime
    job_id: str = field(default_factory=lambda: uuid4().hex)
    state: JobState = JobState.WAITING
    progress: int = 0
    max_attempts: int = 1
    attempts_made: int = 0
    started_at: datetime | None = None
    finished_at: datetime | None = None
    heartbeat_at: datetime | None = None
    available_at: datetime | None = None
    failure_reason: str | None = None
    result: Any = None

    @property
    def is_finished(self) -> bool:
        return self.state in (JobState.COMPLETED, JobState.FAILED)


class JobProgress(BaseModel):
    """Snapshot of a job returned by progress queries."""

    id: str
    queue_name: QueueName
    job_type: str
    state: JobState
    progress: int
    data: dict[str, Any]
    attempts_made: int
    created_at: datetime
    processed_at: datetime | None = None
    finished_at: datetime | None = None
    failure_reason: str | None = None

    @classmethod
    def from_job(cls, job: IngestionJob) -> "JobProgress":
        return cls(
            id=job.job_id,
            queue_name=job.queue_name,
            job_type=job.job_type,
            state=job.state,
            progress=job.progress,
            data=dict(job.payload),
            attempts_made=job.attempts_made,
            created_at=job.created_at,
            processed_at=job.started_at,
            finished_at=job.finished_at,
            failure_reason=job.failure_reason,
        )
