from kbforge.vector_store.providers.chroma import ChromaVectorStore
from kbforge.vector_store.providers.in_memory import InMemoryVectorStore

__all__ = ["ChromaVectorStore", "InMemoryVectorStore"]
