from fastapi import Request

from kbforge.pipeline.ingestion import IngestionPipeline


def get_pipeline(request: Request) -> IngestionPipeline:
    """Dependency injection: the pipeline the app was created with."""
    return request.app.state.pipeline
