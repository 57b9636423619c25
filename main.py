#!/usr/bin/env python3
"""
KBForge Demo Application

Ingests a local file end to end with the in-memory stack:
extraction -> chunking -> embedding -> vector store, then reindexes the bot
and prints job progress and chunk statistics.

Usage:
    python main.py path/to/file.md
    python main.py --serve        # monitoring API on port 8000
"""

import logging
import sys
from pathlib import Path

import uvicorn

from kbforge import (
    ContentStore,
    DocumentChunker,
    EmbeddingGateway,
    FileExtractor,
    InMemoryJobQueue,
    InMemoryKV,
    InMemorySourceRepository,
    InMemoryVectorStore,
    IngestionPipeline,
    MockEmbedder,
    QueueMonitor,
    SourceRecord,
    SourceType,
    WebsiteExtractor,
    load_settings,
)
from kbforge.api import create_app

settings = load_settings()

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger("main")

BOT_ID = "demo-bot"

SAMPLE_TEXT = """Q: What is KBForge?
A: A pipeline that turns documents and websites into searchable chatbot knowledge.

Q: How are documents split?
A: A strategy is chosen from the content shape, then text is split recursively with overlap.

Q: What happens when I reindex?
A: Stored embeddings are cleared and rebuilt from the already extracted chunks.
"""


def build_pipeline() -> tuple[IngestionPipeline, InMemoryJobQueue, InMemorySourceRepository, InMemoryVectorStore]:
    config = settings.pipeline_config()
    queue = InMemoryJobQueue(config)
    repository = InMemorySourceRepository()
    vector_store = InMemoryVectorStore()
    gateway = EmbeddingGateway({"mock": MockEmbedder(dimension=64)}, vector_store)

    pipeline = IngestionPipeline(
        queue=queue,
        repository=repository,
        gateway=gateway,
        content_store=ContentStore(InMemoryKV()),
        document_extractor=FileExtractor(),
        website_extractor=WebsiteExtractor(),
        chunker=DocumentChunker(),
        config=config,
    )
    QueueMonitor(queue, config).attach()
    return pipeline, queue, repository, vector_store


def serve() -> int:
    pipeline, queue, repository, _ = build_pipeline()
    repository.add_bot(BOT_ID, embedding_provider="mock")
    queue.start()
    try:
        uvicorn.run(create_app(pipeline), host="0.0.0.0", port=8000)
    finally:
        queue.stop()
    return 0


def main() -> int:
    if "--serve" in sys.argv[1:]:
        return serve()
    if len(sys.argv) > 1:
        path = Path(sys.argv[1])
    else:
        path = Path("demo_faq.txt")
        path.write_text(SAMPLE_TEXT, encoding="utf-8")
        logger.info(f"No file given, wrote sample FAQ to {path}")

    pipeline, queue, repository, vector_store = build_pipeline()
    repository.add_bot(BOT_ID, embedding_provider="mock")
    repository.add_source(SourceRecord(
        id="doc-1",
        bot_id=BOT_ID,
        source_type=SourceType.DOCUMENT,
        locator=str(path),
    ))

    job = pipeline.submit_document("doc-1", BOT_ID)
    queue.run_until_idle()

    progress = pipeline.get_job_progress(job.job_id, "document")
    record = repository.get_source(SourceType.DOCUMENT, "doc-1")
    print(f"\nDocument job: {progress.state} ({progress.progress}%)")
    print(f"Source status: {record.status}")
    if record.error:
        print(f"Error: {record.error}")
        return 1

    chunks = pipeline.content_store.load(record.content_ref)
    sizes = [c.char_count for c in chunks]
    print(f"Strategy: {chunks[0].strategy_name}")
    print(f"Chunks: {len(chunks)} (min={min(sizes)}, max={max(sizes)}, avg={sum(sizes) / len(sizes):.0f})")
    print(f"Embeddings stored: {vector_store.count(BOT_ID)}")

    reindex = pipeline.submit_reindex(BOT_ID)
    queue.run_until_idle()
    print(f"Reindex job: {pipeline.get_job_progress(reindex.job_id, 'reindex').state}")
    print(f"Embeddings after reindex: {vector_store.count(BOT_ID)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
