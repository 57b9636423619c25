"""Tests for build_pipeline."""

from kbforge.config import Settings
from kbforge.entities import JobState, QueueName, SourceRecord, SourceStatus, SourceType
from kbforge.jobs import InMemoryJobQueue
from kbforge.pipeline import build_pipeline
from kbforge.repository import SQLSourceRepository
from kbforge.vector_store import ChromaVectorStore
from tests.utils.builders import make_prose


class TestBuildPipeline:
    """A pipeline wired on the persistent stores from settings."""

    def test_file_is_ingested_into_persistent_stores(self, tmp_path):
        settings = Settings(
            DATABASE_URL=f"sqlite:///{tmp_path / 'kbforge.db'}",
            CONTENT_STORE_PATH=str(tmp_path / "content.db"),
            CHROMA_DB_PATH=str(tmp_path / "chroma"),
        )
        upload = tmp_path / "story.txt"
        upload.write_text(make_prose(1500), encoding="utf-8")
        queue = InMemoryJobQueue(settings.pipeline_config())

        pipeline = build_pipeline(settings, queue)
        assert isinstance(pipeline.repository, SQLSourceRepository)
        assert isinstance(pipeline.gateway.vector_store, ChromaVectorStore)

        pipeline.repository.add_bot("bot-1", "mock")
        pipeline.repository.add_source(SourceRecord(
            id="doc-1",
            bot_id="bot-1",
            source_type=SourceType.DOCUMENT,
            locator=str(upload),
        ))
        job = pipeline.submit_document("doc-1", "bot-1")
        queue.run_until_idle()

        assert job.state == JobState.COMPLETED
        embedding_job = queue.get_job(QueueName.EMBEDDING, job.result["embedding_job_id"])
        assert embedding_job.state == JobState.COMPLETED
        assert pipeline.gateway.vector_store.count("bot-1") == job.result["chunk_count"]

        reopened = SQLSourceRepository.from_url(settings.DATABASE_URL)
        assert reopened.get_source(SourceType.DOCUMENT, "doc-1").status == SourceStatus.COMPLETED
