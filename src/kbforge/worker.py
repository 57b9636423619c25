"""
Celery worker entry point.

Builds the persistent pipeline on a Celery-backed job queue so that a worker
process finds a handler for every ingestion stage.

Usage:
    celery -A kbforge.worker worker -Q document,webscraping,embedding,reindex,celery
    celery -A kbforge.worker beat   # stall detection and retention cleanup

Dependencies: celery, kbforge.config, kbforge.jobs, kbforge.pipeline
"""

import logging
import sys

from kbforge.config.settings import load_settings
from kbforge.jobs.celery_queue import CeleryJobQueue, create_celery_app
from kbforge.pipeline.factory import build_pipeline
from kbforge.pipeline.monitor import QueueMonitor

settings = load_settings()

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)]
)

celery_app = create_celery_app(settings)
queue = CeleryJobQueue.from_settings(settings, app=celery_app)
pipeline = build_pipeline(settings, queue)
monitor = QueueMonitor(queue, queue.config)
monitor.attach()


@celery_app.task(name="kbforge.monitor.check_stalled")
def check_stalled() -> int:
    """Mark active jobs without a recent heartbeat as stalled."""
    return monitor.check_stalled()


@celery_app.task(name="kbforge.monitor.clean")
def clean() -> dict[str, int]:
    completed, failed = monitor.clean()
    return {"completed_removed": completed, "failed_removed": failed}


# Housekeeping runs on the default "celery" queue
celery_app.conf.beat_schedule = {
    "check-stalled-jobs": {
        "task": "kbforge.monitor.check_stalled",
        "schedule": settings.STALL_INTERVAL_SECONDS,
    },
    "clean-finished-jobs": {
        "task": "kbforge.monitor.clean",
        "schedule": settings.CLEANUP_INTERVAL_SECONDS,
    },
}
