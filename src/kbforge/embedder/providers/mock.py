"""Mock embedder for testing (no external API)."""

import hashlib
import random

from loguru import logger

from kbforge.embedder.base import BaseEmbedder


class MockEmbedder(BaseEmbedder):
    """Generates deterministic pseudo-random embeddings for testing.

    WARNING: This embedder is NOT suitable for production use.

    The same text always maps to the same unit vector, across processes.

    Attributes:
        dimension: Embedding vector dimension
        seed: Seed mixed into every text's digest
    """

    def __init__(self, dimension: int = 384, seed: int = 42):
        self._dimension = dimension
        self.seed = seed
        logger.warning(
            "Using MockEmbedder - NOT for production use! "
            "Configure the openai or cohere provider for real embeddings."
        )

    def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            raise ValueError("texts cannot be empty")

        logger.debug(f"Generating {len(texts)} mock embeddings")

        embeddings = []
        for text in texts:
            digest = hashlib.sha256(f"{self.seed}:{text}".encode("utf-8")).digest()
            rng = random.Random(int.from_bytes(digest[:8], "big"))

            vec = [rng.gauss(0, 1) for _ in range(self._dimension)]

            # Normalize to unit length
            magnitude = sum(x**2 for x in vec) ** 0.5
            if magnitude > 0:
                vec = [x / magnitude for x in vec]
            embeddings.append(vec)

        return embeddings

    @property
    def dimension(self) -> int:
        return self._dimension
