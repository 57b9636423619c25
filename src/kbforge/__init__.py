"""
KBForge - knowledge-base ingestion for multi-tenant chatbots.

Turns uploaded documents and scraped websites into overlapping,
strategy-aware chunks, embeds them and keeps each bot's vector store in
sync through a multi-stage background job pipeline.
"""

__version__ = "0.1.0"

# Chunking
from .chunking import (
    ChunkingStrategySelector,
    DocumentChunker,
    QualityWarning,
    RecursiveCharacterSplitter,
    analyze_optimal_chunk_size,
    get_strategy_config,
)

# Configuration
from .config import PipelineConfig, Settings, load_settings

# Entities
from .entities import (
    Chunk,
    ChunkingConfig,
    IngestionJob,
    JobProgress,
    JobState,
    QueueName,
    SourceRecord,
    SourceStatus,
    SourceType,
)

# Collaborators
from .embedder import BaseEmbedder, EmbedderFactory, MockEmbedder
from .extractor import BaseExtractor, ExtractionResult, FileExtractor, WebsiteExtractor
from .gateway import BaseEmbeddingGateway, EmbeddingGateway
from .jobs import BaseJobQueue, CeleryJobQueue, InMemoryJobQueue, JobEvent, create_celery_app
from .repository import BaseSourceRepository, InMemorySourceRepository, SQLSourceRepository
from .storage import ContentStore, InMemoryKV, SQLiteKV
from .vector_store import BaseVectorStore, ChromaVectorStore, InMemoryVectorStore

# Pipeline
from .pipeline import IngestionPipeline, QueueMonitor, build_pipeline

__all__ = [
    "__version__",
    # Chunking
    "ChunkingStrategySelector",
    "DocumentChunker",
    "QualityWarning",
    "RecursiveCharacterSplitter",
    "analyze_optimal_chunk_size",
    "get_strategy_config",
    # Configuration
    "PipelineConfig",
    "Settings",
    "load_settings",
    # Entities
    "Chunk",
    "ChunkingConfig",
    "IngestionJob",
    "JobProgress",
    "JobState",
    "QueueName",
    "SourceRecord",
    "SourceStatus",
    "SourceType",
    # Collaborators
    "BaseEmbedder",
    "EmbedderFactory",
    "MockEmbedder",
    "BaseExtractor",
    "ExtractionResult",
    "FileExtractor",
    "WebsiteExtractor",
    "BaseEmbeddingGateway",
    "EmbeddingGateway",
    "BaseJobQueue",
    "CeleryJobQueue",
    "InMemoryJobQueue",
    "create_celery_app",
    "JobEvent",
    "BaseSourceRepository",
    "InMemorySourceRepository",
    "SQLSourceRepository",
    "ContentStore",
    "InMemoryKV",
    "SQLiteKV",
    "BaseVectorStore",
    "ChromaVectorStore",
    "InMemoryVectorStore",
    # Pipeline
    "IngestionPipeline",
    "QueueMonitor",
    "build_pipeline",
]
