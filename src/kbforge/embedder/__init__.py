from kbforge.embedder.base import BaseEmbedder
from kbforge.embedder.factory import EmbedderFactory
from kbforge.embedder.providers import CohereEmbedder, MockEmbedder, OpenAIEmbedder

__all__ = ["BaseEmbedder", "EmbedderFactory", "CohereEmbedder", "MockEmbedder", "OpenAIEmbedder"]
