"""Wiring of the persistent ingestion stack from settings."""

from kbforge.config.settings import Settings
from kbforge.embedder.factory import EmbedderFactory
from kbforge.extractor import FileExtractor, WebsiteExtractor
from kbforge.gateway import EmbeddingGateway
from kbforge.jobs.base import BaseJobQueue
from kbforge.pipeline.ingestion import IngestionPipeline
from kbforge.repository import SQLSourceRepository
from kbforge.storage import ContentStore, SQLiteKV
from kbforge.vector_store import ChromaVectorStore


def build_pipeline(settings: Settings, queue: BaseJobQueue) -> IngestionPipeline:
    """
    Build the pipeline on the stores named in ``settings``.

    Sources and bots live in ``DATABASE_URL``, chunk sets in
    ``CONTENT_STORE_PATH`` and vectors in the Chroma directory
    ``CHROMA_DB_PATH``. Embedding providers are those the settings carry
    credentials for, plus the mock provider.
    """
    gateway = EmbeddingGateway(
        EmbedderFactory.from_settings(settings),
        ChromaVectorStore(persist_directory=settings.CHROMA_DB_PATH),
    )
    return IngestionPipeline(
        queue=queue,
        repository=SQLSourceRepository.from_url(settings.DATABASE_URL),
        gateway=gateway,
        content_store=ContentStore(SQLiteKV(db_path=settings.CONTENT_STORE_PATH)),
        document_extractor=FileExtractor(),
        website_extractor=WebsiteExtractor(),
        config=settings.pipeline_config(),
    )
