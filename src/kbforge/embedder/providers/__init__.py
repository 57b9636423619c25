from kbforge.embedder.providers.cohere import CohereEmbedder
from kbforge.embedder.providers.mock import MockEmbedder
from kbforge.embedder.providers.openai import OpenAIEmbedder

__all__ = ["CohereEmbedder", "MockEmbedder", "OpenAIEmbedder"]
