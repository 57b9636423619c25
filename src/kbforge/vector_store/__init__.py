from kbforge.vector_store.base import BaseVectorStore, SearchHit, VectorRecord
from kbforge.vector_store.providers import ChromaVectorStore, InMemoryVectorStore

__all__ = ["BaseVectorStore", "SearchHit", "VectorRecord", "ChromaVectorStore", "InMemoryVectorStore"]
