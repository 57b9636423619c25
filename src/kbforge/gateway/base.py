from abc import ABC, abstractmethod
from typing import Callable

from kbforge.entities.chunk import Chunk

# Called with (texts_embedded, texts_total) after every provider batch
BatchProgressCallback = Callable[[int, int], None]


class BaseEmbeddingGateway(ABC):
    """
    Contract between the pipeline and the embedding infrastructure.

    All three operations may fail; failures surface as exceptions and the
    calling stage fails with them.
    """

    @abstractmethod
    def generate_embeddings(
        self,
        texts: list[str],
        provider_name: str,
        batch_size: int,
        on_batch: BatchProgressCallback | None = None,
    ) -> list[list[float]]:
        """Embed ``texts`` in provider calls of at most ``batch_size`` texts."""
        pass

    @abstractmethod
    def store_embeddings(self, bot_id: str, chunks: list[Chunk], vectors: list[list[float]]) -> int:
        """Write one vector per chunk, keyed by bot and chunk id. Returns the count written."""
        pass

    @abstractmethod
    def clear_embeddings(self, bot_id: str) -> None:
        """Remove every stored vector of a bot."""
        pass

    @abstractmethod
    def delete_source_embeddings(self, bot_id: str, source_type: str, source_id: str) -> int:
        """Remove the stored vectors of one source. Returns the number removed."""
        pass
