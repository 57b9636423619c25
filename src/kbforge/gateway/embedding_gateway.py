"""
Embedding gateway over embedding providers and a vector store.

Texts are sent to the bot's provider in fixed-size batches; each batch is
retried with exponential backoff on transient provider errors. Vectors are
written to the vector store under the bot's namespace with the chunk id as
record id, so writing the same chunk twice replaces it.
"""

import logging

from kbforge.embedder.base import BaseEmbedder
from kbforge.entities.chunk import Chunk
from kbforge.errors import ConfigurationError, GatewayError
from kbforge.gateway.base import BaseEmbeddingGateway, BatchProgressCallback
from kbforge.utils.performance import timer
from kbforge.utils.retry import RetryConfig, retry_with_backoff
from kbforge.vector_store.base import BaseVectorStore, VectorRecord

logger = logging.getLogger(__name__)


class EmbeddingGateway(BaseEmbeddingGateway):
    """
    Batching gateway used by the embedding and reindex stages.

    Attributes:
        embedders: Embedders by provider name ("openai", "cohere", "mock")
        vector_store: Target store, one namespace per bot
        retry_config: In-call retry policy for provider requests

    Example:
        >>> gateway = EmbeddingGateway({"mock": MockEmbedder()}, InMemoryVectorStore())
        >>> vectors = gateway.generate_embeddings(texts, "mock", batch_size=50)
        >>> gateway.store_embeddings("bot-1", chunks, vectors)
    """

    def __init__(
        self,
        embedders: dict[str, BaseEmbedder],
        vector_store: BaseVectorStore,
        retry_config: RetryConfig | None = None,
    ):
        self.embedders = embedders
        self.vector_store = vector_store
        self.retry_config = retry_config or RetryConfig()

    def _get_embedder(self, provider_name: str) -> BaseEmbedder:
        embedder = self.embedders.get(provider_name)
        if embedder is None:
            raise ConfigurationError(
                f"Embedding provider '{provider_name}' is not configured",
                details={"provider": provider_name, "available": sorted(self.embedders)},
            )
        return embedder

    def generate_embeddings(
        self,
        texts: list[str],
        provider_name: str,
        batch_size: int,
        on_batch: BatchProgressCallback | None = None,
    ) -> list[list[float]]:
        """
        Embed texts batch by batch.

        Raises:
            ConfigurationError: If ``provider_name`` has no embedder
            GatewayError: If a batch still fails after retries or the provider
                returned the wrong number of vectors
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")

        embedder = self._get_embedder(provider_name)
        if not texts:
            return []

        @retry_with_backoff(config=self.retry_config)
        def _embed_batch(batch: list[str]) -> list[list[float]]:
            return embedder.embed(batch)

        total = len(texts)
        total_batches = (total + batch_size - 1) // batch_size
        vectors: list[list[float]] = []

        logger.info(
            f"Generating {total} embeddings with '{provider_name}' "
            f"in {total_batches} batches (batch_size={batch_size})"
        )

        for start in range(0, total, batch_size):
            batch = texts[start:start + batch_size]
            batch_num = start // batch_size + 1

            try:
                with timer(f"Embedding batch {batch_num}/{total_batches} ({len(batch)} texts)"):
                    batch_vectors = _embed_batch(batch)
            except Exception as e:
                logger.error(f"Embedding batch {batch_num}/{total_batches} failed: {type(e).__name__}: {e}")
                raise GatewayError(
                    f"Embedding generation failed for batch {batch_num}",
                    details={"provider": provider_name, "batch_num": batch_num, "batch_size": len(batch)},
                    original_error=e,
                ) from e

            if len(batch_vectors) != len(batch):
                raise GatewayError(
                    f"Provider returned {len(batch_vectors)} vectors for {len(batch)} texts",
                    details={"provider": provider_name, "batch_num": batch_num},
                )

            vectors.extend(batch_vectors)
            if on_batch:
                on_batch(len(vectors), total)

        return vectors

    def store_embeddings(self, bot_id: str, chunks: list[Chunk], vectors: list[list[float]]) -> int:
        """
        Upsert one record per chunk into the bot's namespace.

        Raises:
            GatewayError: On a chunk/vector count mismatch or a vector store failure
        """
        if len(chunks) != len(vectors):
            raise GatewayError(
                f"Cannot store {len(vectors)} vectors for {len(chunks)} chunks",
                details={"bot_id": bot_id},
            )

        records = [
            VectorRecord(
                id=chunk.id,
                vector=vector,
                content=chunk.content,
                metadata={
                    **chunk.metadata,
                    "bot_id": bot_id,
                    "source_id": chunk.source_id,
                    "source_type": chunk.source_type.value,
                    "chunk_index": chunk.chunk_index,
                    "total_chunks": chunk.total_chunks,
                    "strategy_name": chunk.strategy_name,
                    "start_char": chunk.start_char,
                    "end_char": chunk.end_char,
                },
            )
            for chunk, vector in zip(chunks, vectors)
        ]

        try:
            written = self.vector_store.upsert(bot_id, records)
        except Exception as e:
            raise GatewayError(
                "Vector store write failed",
                details={"bot_id": bot_id, "record_count": len(records)},
                original_error=e,
            ) from e

        logger.info(f"[bot {bot_id}] Stored {written} embeddings")
        return written

    def clear_embeddings(self, bot_id: str) -> None:
        try:
            self.vector_store.delete_namespace(bot_id)
        except Exception as e:
            raise GatewayError(
                "Vector store clear failed",
                details={"bot_id": bot_id},
                original_error=e,
            ) from e
        logger.info(f"[bot {bot_id}] Cleared embeddings")

    def delete_source_embeddings(self, bot_id: str, source_type: str, source_id: str) -> int:
        try:
            removed = self.vector_store.delete_source(bot_id, source_type, source_id)
        except Exception as e:
            raise GatewayError(
                "Vector store delete failed",
                details={"bot_id": bot_id, "source_type": source_type, "source_id": source_id},
                original_error=e,
            ) from e
        if removed:
            logger.info(f"[bot {bot_id}] Removed {removed} stale embeddings of {source_type} {source_id}")
        return removed
