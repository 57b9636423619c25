"""
KBForge monitoring API.

Read-only HTTP surface over a running ingestion pipeline: job progress and
source status for dashboards and polling clients.
"""

import logging

from fastapi import FastAPI

from kbforge import __version__
from kbforge.api.routers import jobs_router, sources_router
from kbforge.pipeline.ingestion import IngestionPipeline

logger = logging.getLogger(__name__)


def create_app(pipeline: IngestionPipeline) -> FastAPI:
    """Build the FastAPI app serving ``pipeline``."""
    app = FastAPI(
        title="KBForge API",
        description="Knowledge-base ingestion monitoring API",
        version=__version__,
    )
    app.state.pipeline = pipeline

    app.include_router(jobs_router)
    app.include_router(sources_router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    logger.info("Monitoring API created")
    return app
