from abc import ABC, abstractmethod
from datetime import timedelta
from enum import StrEnum
from typing import Any, Callable

from kbforge.entities.job import IngestionJob, JobState, QueueName

# A stage handler receives the job it executes and returns the job result
JobHandler = Callable[[IngestionJob], Any]
JobListener = Callable[[IngestionJob], None]


class JobEvent(StrEnum):
    COMPLETED = "completed"
    FAILED = "failed"
    STALLED = "stalled"


class BaseJobQueue(ABC):
    """
    Job-queue contract consumed by the ingestion pipeline.

    Queues are named channels (see QueueName). A handler is registered per
    ``(queue, job_type)``; the queue runs handlers on its workers, records
    the job lifecycle and notifies listeners. Handler exceptions mark the
    job failed and never propagate out of the worker.
    """

    @abstractmethod
    def enqueue(
        self,
        queue_name: QueueName | str,
        job_type: str,
        payload: dict[str, Any],
        *,
        max_attempts: int | None = None,
    ) -> IngestionJob:
        """
        Add a job to a queue.

        Raises:
            ValueError: If ``queue_name`` is not a known queue
        """
        pass

    @abstractmethod
    def get_job(self, queue_name: QueueName | str, job_id: str) -> IngestionJob | None:
        pass

    @abstractmethod
    def process(self, queue_name: QueueName | str, job_type: str, handler: JobHandler) -> None:
        """Register the handler that executes ``job_type`` jobs of a queue."""
        pass

    @abstractmethod
    def on(self, event: JobEvent | str, listener: JobListener) -> None:
        """Subscribe to job completion, failure or stall notifications."""
        pass

    @abstractmethod
    def update_progress(self, job: IngestionJob, progress: int) -> None:
        """Record stage progress (0-100); also counts as a worker heartbeat."""
        pass

    @abstractmethod
    def clean(self, queue_name: QueueName | str, grace: timedelta, state: JobState) -> list[str]:
        """Purge finished jobs in ``state`` that finished more than ``grace`` ago."""
        pass

    @abstractmethod
    def check_stalled(self, stall_after: timedelta) -> list[IngestionJob]:
        """Mark active jobs without a heartbeat for ``stall_after`` as stalled."""
        pass
