from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field


class VectorRecord(BaseModel):
    """One embedded chunk as written to a vector store."""

    id: str
    vector: list[float]
    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class SearchHit(BaseModel):
    id: str
    content: str
    score: float
    metadata: dict[str, Any] = Field(default_factory=dict)


class BaseVectorStore(ABC):
    """
    Abstract base class for vector stores.

    Records are grouped in namespaces, one per bot. Within a namespace a
    record id is unique: writing an existing id replaces the record.
    """

    @abstractmethod
    def upsert(self, namespace: str, records: list[VectorRecord]) -> int:
        """Insert or replace records. Returns the number written."""
        pass

    @abstractmethod
    def delete_namespace(self, namespace: str) -> None:
        """Remove every record of a namespace. A missing namespace is a no-op."""
        pass

    @abstractmethod
    def delete_source(self, namespace: str, source_type: str, source_id: str) -> int:
        """
        Remove the records of one source, matched on their ``source_type``
        and ``source_id`` metadata. Returns the number removed.
        """
        pass

    @abstractmethod
    def count(self, namespace: str) -> int:
        pass

    @abstractmethod
    def search(self, namespace: str, query_vector: list[float], top_k: int = 4) -> list[SearchHit]:
        """Return the ``top_k`` most similar records, best first."""
        pass
