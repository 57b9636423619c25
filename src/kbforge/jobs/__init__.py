from kbforge.jobs.base import BaseJobQueue, JobEvent, JobHandler, JobListener
from kbforge.jobs.celery_queue import CeleryJobQueue, JobRecord, create_celery_app
from kbforge.jobs.in_memory import InMemoryJobQueue

__all__ = [
    "BaseJobQueue",
    "CeleryJobQueue",
    "InMemoryJobQueue",
    "JobEvent",
    "JobHandler",
    "JobListener",
    "JobRecord",
    "create_celery_app",
]
