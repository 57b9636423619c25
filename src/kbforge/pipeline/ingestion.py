"""
Ingestion pipeline: turn uploaded documents and scraped websites into
embedded knowledge-base chunks.

Stages, one job queue each:

    document    process-document     extract -> chunk -> store chunk set
    webscraping scrape-website       scrape  -> chunk -> store chunk set
    embedding   generate-embeddings  embed chunk set -> write vectors
    reindex     reindex-bot          clear bot vectors -> re-enqueue embedding

Source status transitions (the pipeline is their only writer):

    PENDING -> PROCESSING -> COMPLETED
                          -> FAILED

An embedding job for a source is only enqueued after its extraction stage
reached COMPLETED, so partially extracted content is never embedded.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable

from kbforge.chunking.chunker import DocumentChunker
from kbforge.config.pipeline import PipelineConfig
from kbforge.entities.chunk import Chunk, SourceType
from kbforge.entities.job import IngestionJob, JobProgress, JobType, QueueName
from kbforge.entities.source import SourceStatus
from kbforge.errors import (
    BotNotFoundError,
    ConfigurationError,
    KBForgeError,
    NotFoundError,
)
from kbforge.extractor.base import BaseExtractor
from kbforge.gateway.base import BaseEmbeddingGateway
from kbforge.jobs.base import BaseJobQueue
from kbforge.observability import trace_span
from kbforge.repository.base import BaseSourceRepository
from kbforge.storage.content_store import ContentStore

logger = logging.getLogger(__name__)


def failure_reason(error: Exception) -> str:
    """Human-readable reason recorded on jobs and source records."""
    if isinstance(error, KBForgeError):
        return error.message
    return str(error) or type(error).__name__


class IngestionPipeline:
    """
    Owns the four ingestion stages and their collaborators.

    Creating the pipeline registers its stage handlers on the job queue;
    several pipelines with separate queues can live in one process.

    Attributes:
        queue: Job queue carrying the four stage queues
        repository: Status sink for source and bot records
        gateway: Embedding generation and vector storage
        content_store: Persisted chunk sets, addressed by content_ref
        document_extractor: Extractor for uploaded files
        website_extractor: Extractor for website URLs
        chunker: Strategy-aware chunker
        config: Batch size and queue settings

    Example:
        >>> pipeline = IngestionPipeline(queue, repo, gateway, store, FileExtractor(), WebsiteExtractor())
        >>> job = pipeline.submit_document("doc-1", "bot-1")
        >>> queue.run_until_idle()
        >>> pipeline.get_job_progress(job.job_id, "document").state
        <JobState.COMPLETED: 'completed'>
    """

    def __init__(
        self,
        queue: BaseJobQueue,
        repository: BaseSourceRepository,
        gateway: BaseEmbeddingGateway,
        content_store: ContentStore,
        document_extractor: BaseExtractor,
        website_extractor: BaseExtractor,
        chunker: DocumentChunker | None = None,
        config: PipelineConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.queue = queue
        self.repository = repository
        self.gateway = gateway
        self.content_store = content_store
        self.document_extractor = document_extractor
        self.website_extractor = website_extractor
        self.chunker = chunker or DocumentChunker()
        self.config = config or PipelineConfig()
        self.clock = clock or (lambda: datetime.now(timezone.utc))

        queue.process(QueueName.DOCUMENT, JobType.PROCESS_DOCUMENT, self.process_document)
        queue.process(QueueName.WEBSCRAPING, JobType.SCRAPE_WEBSITE, self.scrape_website)
        queue.process(QueueName.EMBEDDING, JobType.GENERATE_EMBEDDINGS, self.generate_embeddings)
        queue.process(QueueName.REINDEX, JobType.REINDEX_BOT, self.reindex_bot)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit_document(
        self,
        document_id: str,
        bot_id: str,
        file_path: str | None = None,
        *,
        metadata: dict[str, Any] | None = None,
        strategy: str | None = None,
        adaptive: bool = False,
    ) -> IngestionJob:
        """
        Enqueue extraction of an uploaded document.

        Args:
            document_id: Source record id
            bot_id: Owning bot
            file_path: File to extract; defaults to the record's locator
            metadata: Caller metadata merged into every chunk
            strategy: Force a named chunking strategy
            adaptive: Use the adaptive chunk configuration
        """
        payload = {
            "document_id": document_id,
            "bot_id": bot_id,
            "file_path": file_path,
            "metadata": metadata or {},
            "strategy": strategy,
            "adaptive": adaptive,
        }
        return self.queue.enqueue(QueueName.DOCUMENT, JobType.PROCESS_DOCUMENT, payload)

    def submit_website(
        self,
        website_id: str,
        bot_id: str,
        url: str | None = None,
        *,
        metadata: dict[str, Any] | None = None,
        strategy: str | None = None,
        adaptive: bool = False,
    ) -> IngestionJob:
        """Enqueue scraping of a website; ``url`` defaults to the record's locator."""
        payload = {
            "website_id": website_id,
            "bot_id": bot_id,
            "url": url,
            "metadata": metadata or {},
            "strategy": strategy,
            "adaptive": adaptive,
        }
        return self.queue.enqueue(QueueName.WEBSCRAPING, JobType.SCRAPE_WEBSITE, payload)

    def submit_reindex(self, bot_id: str) -> IngestionJob:
        return self.queue.enqueue(QueueName.REINDEX, JobType.REINDEX_BOT, {"bot_id": bot_id})

    def get_job_progress(self, job_id: str, queue_name: QueueName | str) -> JobProgress | None:
        """
        Snapshot of a job for progress reporting.

        Returns:
            None when the queue holds no job with ``job_id``

        Raises:
            ValueError: If ``queue_name`` is not one of the pipeline queues
        """
        try:
            queue = QueueName(queue_name)
        except ValueError:
            raise ValueError(f"Queue {queue_name} not found") from None

        job = self.queue.get_job(queue, job_id)
        return JobProgress.from_job(job) if job else None

    # ------------------------------------------------------------------
    # Stage handlers
    # ------------------------------------------------------------------

    @trace_span("pipeline.process_document")
    def process_document(self, job: IngestionJob) -> dict[str, Any]:
        payload = job.payload
        return self._extract_and_chunk(
            job,
            SourceType.DOCUMENT,
            payload["document_id"],
            payload.get("file_path"),
            self.document_extractor,
        )

    @trace_span("pipeline.scrape_website")
    def scrape_website(self, job: IngestionJob) -> dict[str, Any]:
        payload = job.payload
        return self._extract_and_chunk(
            job,
            SourceType.WEBSITE,
            payload["website_id"],
            payload.get("url"),
            self.website_extractor,
        )

    def _extract_and_chunk(
        self,
        job: IngestionJob,
        source_type: SourceType,
        source_id: str,
        locator: str | None,
        extractor: BaseExtractor,
    ) -> dict[str, Any]:
        payload = job.payload
        bot_id = payload["bot_id"]

        record = self.repository.get_source(source_type, source_id)
        if record is None:
            raise NotFoundError(f"{source_type.value.capitalize()} not found: {source_id}")
        locator = locator or record.locator

        logger.info(f"[job {job.job_id}] Processing {source_type.value} {source_id} for bot {bot_id}")
        self.repository.update_status(source_type, source_id, SourceStatus.PROCESSING)
        self.queue.update_progress(job, 10)

        try:
            extraction = extractor.extract_text(locator)
            self.queue.update_progress(job, 40)

            chunks = self.chunker.chunk_document(
                extraction.text,
                source_id=source_id,
                source_type=source_type,
                content_type=extraction.content_type or record.content_type,
                metadata={**extraction.metadata, **payload.get("metadata", {}), "bot_id": bot_id},
                strategy=payload.get("strategy"),
                adaptive=payload.get("adaptive", False),
            )
            self.queue.update_progress(job, 70)

            content_ref = self.content_store.save(source_type, source_id, chunks)
            # Vectors of the replaced chunk set would otherwise outlive it
            self.gateway.delete_source_embeddings(bot_id, source_type.value, source_id)
            self.repository.update_status(
                source_type,
                source_id,
                SourceStatus.COMPLETED,
                content_ref=content_ref,
                last_scraped=self.clock() if source_type == SourceType.WEBSITE else None,
            )
            self.queue.update_progress(job, 90)

        except Exception as e:
            logger.error(f"[job {job.job_id}] Error processing {source_type.value} {source_id}: {e}")
            self.repository.update_status(
                source_type, source_id, SourceStatus.FAILED, error=failure_reason(e)
            )
            raise

        embedding_job = self._enqueue_embeddings(bot_id, source_type, source_id, chunks)

        logger.info(
            f"[job {job.job_id}] {source_type.value.capitalize()} {source_id} processed: "
            f"{len(chunks)} chunks, embedding job {embedding_job.job_id}"
        )
        return {
            "success": True,
            "chunk_count": len(chunks),
            "content_ref": content_ref,
            "embedding_job_id": embedding_job.job_id,
        }

    @trace_span("pipeline.generate_embeddings")
    def generate_embeddings(self, job: IngestionJob) -> dict[str, Any]:
        payload = job.payload
        bot_id = payload["bot_id"]
        source_type = SourceType(payload["source_type"])
        source_id = payload["source_id"]
        chunks = [Chunk.model_validate(item) for item in payload["chunks"]]

        logger.info(f"[job {job.job_id}] Generating embeddings for {len(chunks)} chunks of bot {bot_id}")

        try:
            bot_config = self.repository.get_bot_config(bot_id)
            if bot_config is None:
                raise ConfigurationError(
                    f"Bot configuration not found for bot {bot_id}",
                    details={"bot_id": bot_id},
                )

            def on_batch(done: int, total: int) -> None:
                self.queue.update_progress(job, 10 + (80 * done) // total)

            vectors = self.gateway.generate_embeddings(
                [chunk.content for chunk in chunks],
                bot_config.embedding_provider,
                self.config.embedding_batch_size,
                on_batch=on_batch,
            )
            count = self.gateway.store_embeddings(bot_id, chunks, vectors)

        except Exception as e:
            logger.error(f"[job {job.job_id}] Error generating embeddings for bot {bot_id}: {e}")
            self._mark_source(source_type, source_id, SourceStatus.FAILED, error=failure_reason(e))
            raise

        # A re-attempt that succeeds clears the failure left by the previous attempt
        self._mark_source(source_type, source_id, SourceStatus.COMPLETED)

        logger.info(f"[job {job.job_id}] Stored {count} embeddings for bot {bot_id}")
        return {"success": True, "embedding_count": count}

    @trace_span("pipeline.reindex_bot")
    def reindex_bot(self, job: IngestionJob) -> dict[str, Any]:
        bot_id = job.payload["bot_id"]

        if not self.repository.bot_exists(bot_id):
            raise BotNotFoundError(bot_id)

        logger.info(f"[bot {bot_id}] Reindexing knowledge base")

        # Clear before re-populating so repeated reindexing never duplicates vectors
        self.gateway.clear_embeddings(bot_id)
        self.queue.update_progress(job, 20)

        sources = [
            *self.repository.list_sources(bot_id, SourceType.DOCUMENT, SourceStatus.COMPLETED),
            *self.repository.list_sources(bot_id, SourceType.WEBSITE, SourceStatus.COMPLETED),
        ]

        enqueued = 0
        for n, source in enumerate(sources, start=1):
            if not source.content_ref:
                logger.warning(f"[bot {bot_id}] {source.source_type.value} {source.id} has no stored content, skipping")
                continue

            chunks = self.content_store.load(source.content_ref)
            self._enqueue_embeddings(bot_id, source.source_type, source.id, chunks)
            enqueued += 1
            self.queue.update_progress(job, 20 + (80 * n) // len(sources))

        logger.info(f"[bot {bot_id}] Reindex enqueued {enqueued} embedding jobs")
        return {"success": True, "jobs_enqueued": enqueued}

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _enqueue_embeddings(
        self,
        bot_id: str,
        source_type: SourceType,
        source_id: str,
        chunks: list[Chunk],
    ) -> IngestionJob:
        payload = {
            "bot_id": bot_id,
            "source_type": source_type.value,
            "source_id": source_id,
            "chunks": [chunk.model_dump(mode="json") for chunk in chunks],
        }
        return self.queue.enqueue(QueueName.EMBEDDING, JobType.GENERATE_EMBEDDINGS, payload)

    def _mark_source(
        self,
        source_type: SourceType,
        source_id: str,
        status: SourceStatus,
        error: str | None = None,
    ) -> None:
        if self.repository.get_source(source_type, source_id) is None:
            logger.warning(f"{source_type.value.capitalize()} {source_id} no longer exists, status not updated")
            return
        self.repository.update_status(source_type, source_id, status, error=error)
