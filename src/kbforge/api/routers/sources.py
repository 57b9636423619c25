"""Source status API."""

from fastapi import APIRouter, Depends, HTTPException

from kbforge.api.deps import get_pipeline
from kbforge.entities.chunk import SourceType
from kbforge.entities.source import SourceRecord
from kbforge.pipeline.ingestion import IngestionPipeline

router = APIRouter(prefix="/api/sources", tags=["sources"])


@router.get("/{source_type}/{source_id}", response_model=SourceRecord)
def get_source_status(
    source_type: SourceType,
    source_id: str,
    pipeline: IngestionPipeline = Depends(get_pipeline),
):
    """Ingestion status of a document or website."""
    record = pipeline.repository.get_source(source_type, source_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"{source_type.value.capitalize()} {source_id} not found")
    return record
