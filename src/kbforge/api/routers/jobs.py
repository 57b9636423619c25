"""Job progress API."""

from fastapi import APIRouter, Depends, HTTPException

from kbforge.api.deps import get_pipeline
from kbforge.entities.job import JobProgress
from kbforge.pipeline.ingestion import IngestionPipeline

router = APIRouter(prefix="/api/jobs", tags=["jobs"])


@router.get("/{queue_name}/{job_id}", response_model=JobProgress)
def get_job_progress(
    queue_name: str,
    job_id: str,
    pipeline: IngestionPipeline = Depends(get_pipeline),
):
    """Progress, timestamps and failure reason of one job."""
    try:
        progress = pipeline.get_job_progress(job_id, queue_name)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))

    if progress is None:
        raise HTTPException(status_code=404, detail=f"Job {job_id} not found in queue {queue_name}")
    return progress
