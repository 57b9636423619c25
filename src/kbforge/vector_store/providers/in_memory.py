import threading

from loguru import logger

from kbforge.utils.similarity import cosine_similarity
from kbforge.vector_store.base import BaseVectorStore, SearchHit, VectorRecord


class InMemoryVectorStore(BaseVectorStore):
    """
    Process-local vector store with brute-force cosine search.

    Not persistent; used by tests and the demo.
    """

    def __init__(self):
        self._namespaces: dict[str, dict[str, VectorRecord]] = {}
        self._lock = threading.Lock()

    def upsert(self, namespace: str, records: list[VectorRecord]) -> int:
        with self._lock:
            store = self._namespaces.setdefault(namespace, {})
            for record in records:
                store[record.id] = record
        logger.debug(f"Upserted {len(records)} vectors into namespace '{namespace}'")
        return len(records)

    def delete_namespace(self, namespace: str) -> None:
        with self._lock:
            removed = self._namespaces.pop(namespace, {})
        logger.debug(f"Deleted namespace '{namespace}' ({len(removed)} vectors)")

    def delete_source(self, namespace: str, source_type: str, source_id: str) -> int:
        with self._lock:
            store = self._namespaces.get(namespace, {})
            stale = [
                record_id for record_id, record in store.items()
                if record.metadata.get("source_id") == source_id
                and record.metadata.get("source_type") == source_type
            ]
            for record_id in stale:
                del store[record_id]
        logger.debug(f"Deleted {len(stale)} vectors of {source_type} {source_id} from namespace '{namespace}'")
        return len(stale)

    def count(self, namespace: str) -> int:
        return len(self._namespaces.get(namespace, {}))

    def get(self, namespace: str, record_id: str) -> VectorRecord | None:
        return self._namespaces.get(namespace, {}).get(record_id)

    def search(self, namespace: str, query_vector: list[float], top_k: int = 4) -> list[SearchHit]:
        with self._lock:
            records = list(self._namespaces.get(namespace, {}).values())

        scored = [(cosine_similarity(query_vector, r.vector), r) for r in records]
        scored.sort(key=lambda pair: pair[0], reverse=True)

        return [
            SearchHit(id=r.id, content=r.content, score=score, metadata=r.metadata)
            for score, r in scored[:top_k]
        ]
