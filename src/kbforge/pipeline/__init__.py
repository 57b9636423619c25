from kbforge.pipeline.factory import build_pipeline
from kbforge.pipeline.ingestion import IngestionPipeline, failure_reason
from kbforge.pipeline.monitor import QueueMonitor

__all__ = ["IngestionPipeline", "QueueMonitor", "build_pipeline", "failure_reason"]
