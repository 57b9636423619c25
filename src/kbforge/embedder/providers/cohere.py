"""Cohere embedding provider."""

import httpx
from loguru import logger

from kbforge.embedder.base import BaseEmbedder
from kbforge.embedder.http import post_json


class CohereEmbedder(BaseEmbedder):
    """
    Embedder for the Cohere ``/v1/embed`` endpoint.

    Chunks are embedded with ``input_type="search_document"``; queries
    embedded elsewhere should use ``search_query``.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "embed-english-v3.0",
        base_url: str = "https://api.cohere.ai/v1",
        input_type: str = "search_document",
        client: httpx.Client | None = None,
        timeout: float = 60.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.input_type = input_type
        self.client = client or httpx.Client(timeout=timeout)
        self._dimension = 1024

    def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            raise ValueError("texts cannot be empty")

        logger.debug(f"Requesting {len(texts)} Cohere embeddings (model={self.model})")
        data = post_json(
            self.client,
            f"{self.base_url}/embed",
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            payload={"texts": texts, "model": self.model, "input_type": self.input_type},
            provider="cohere",
        )

        vectors = data.get("embeddings", [])
        if vectors:
            self._dimension = len(vectors[0])
        return vectors

    @property
    def dimension(self) -> int:
        return self._dimension
