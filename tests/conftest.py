"""Pytest configuration and global fixtures for KBForge tests."""

import pytest

from kbforge.chunking import DocumentChunker
from kbforge.config import PipelineConfig
from kbforge.embedder import MockEmbedder
from kbforge.gateway import EmbeddingGateway
from kbforge.jobs import InMemoryJobQueue
from kbforge.pipeline import IngestionPipeline
from kbforge.repository import InMemorySourceRepository
from kbforge.storage import ContentStore, InMemoryKV
from kbforge.utils.retry import RetryConfig
from kbforge.vector_store import InMemoryVectorStore
from tests.utils.builders import FakeClock, StubExtractor, make_faq, make_prose


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def prose_text():
    """About 3,200 characters of plain narrative prose."""
    return make_prose(3200)


@pytest.fixture
def faq_text():
    return make_faq()


# ==================== Component Fixtures ====================

@pytest.fixture
def pipeline_config():
    return PipelineConfig(job_backoff_seconds=5.0)


@pytest.fixture
def queue(pipeline_config, clock):
    return InMemoryJobQueue(pipeline_config, clock=clock)


@pytest.fixture
def repository(clock):
    return InMemorySourceRepository(clock=clock)


@pytest.fixture
def vector_store():
    return InMemoryVectorStore()


@pytest.fixture
def embedder():
    return MockEmbedder(dimension=16)


@pytest.fixture
def gateway(embedder, vector_store):
    # No in-call retries so failures surface immediately
    return EmbeddingGateway(
        {"mock": embedder},
        vector_store,
        retry_config=RetryConfig(max_attempts=1, base_delay=0.0, max_delay=0.0, jitter=0.0),
    )


@pytest.fixture
def content_store():
    return ContentStore(InMemoryKV())


@pytest.fixture
def document_extractor(prose_text):
    return StubExtractor(prose_text, content_type="text/plain")


@pytest.fixture
def website_extractor(prose_text):
    return StubExtractor(prose_text, content_type="text/html")


@pytest.fixture
def pipeline(queue, repository, gateway, content_store, document_extractor, website_extractor, pipeline_config, clock):
    return IngestionPipeline(
        queue=queue,
        repository=repository,
        gateway=gateway,
        content_store=content_store,
        document_extractor=document_extractor,
        website_extractor=website_extractor,
        chunker=DocumentChunker(clock=clock),
        config=pipeline_config,
        clock=clock,
    )
