"""OpenAI-compatible embedding provider."""

import httpx
from loguru import logger

from kbforge.embedder.base import BaseEmbedder
from kbforge.embedder.http import post_json


class OpenAIEmbedder(BaseEmbedder):
    """
    Embedder for any API following the OpenAI embeddings format.

    Works with OpenAI, Azure OpenAI and local servers exposing an
    OpenAI-compatible ``/embeddings`` endpoint. Calls are synchronous httpx
    requests, matching the worker threads that issue them.

    Attributes:
        base_url: The API base URL (e.g., "https://api.openai.com/v1")
        api_key: API authentication key
        model: Model identifier (e.g., "text-embedding-3-small")
    """

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        base_url: str = "https://api.openai.com/v1",
        client: httpx.Client | None = None,
        timeout: float = 60.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.client = client or httpx.Client(timeout=timeout)
        self._dimension = 1536  # text-embedding-3-small, updated on first call

    def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            raise ValueError("texts cannot be empty")

        logger.debug(f"Requesting {len(texts)} OpenAI embeddings (model={self.model})")
        data = post_json(
            self.client,
            f"{self.base_url}/embeddings",
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            payload={"input": texts, "model": self.model},
            provider="openai",
        )

        # Sort by index to ensure correct order
        results = sorted(data.get("data", []), key=lambda x: x.get("index", 0))
        vectors = [item["embedding"] for item in results]

        if vectors:
            self._dimension = len(vectors[0])
        return vectors

    @property
    def dimension(self) -> int:
        return self._dimension
