"""Domain entities shared across chunking, jobs and the pipeline."""

from .chunk import Chunk, ChunkingConfig, PositionConfidence, SourceType, make_chunk_id
from .job import IngestionJob, JobProgress, JobState, JobType, QueueName
from .source import BotConfig, SourceRecord, SourceStatus

__all__ = [
    "Chunk",
    "ChunkingConfig",
    "PositionConfidence",
    "SourceType",
    "make_chunk_id",
    "IngestionJob",
    "JobProgress",
    "JobState",
    "JobType",
    "QueueName",
    "BotConfig",
    "SourceRecord",
    "SourceStatus",
]
