import re

import chromadb
from chromadb.api import ClientAPI
from loguru import logger

from kbforge.vector_store.base import BaseVectorStore, SearchHit, VectorRecord


class ChromaVectorStore(BaseVectorStore):
    """
    Chroma vector store with one collection per bot namespace.

    Collections use cosine distance; search scores are ``1 - distance``.
    """

    def __init__(self, persist_directory: str = "./chroma_db", client: ClientAPI | None = None):
        self.persist_directory = persist_directory
        self._client: ClientAPI = client or chromadb.PersistentClient(path=persist_directory)

    @staticmethod
    def collection_name(namespace: str) -> str:
        # Chroma names: 3-63 chars of [a-zA-Z0-9._-], alphanumeric at both ends
        safe = re.sub(r"[^a-zA-Z0-9_-]", "_", namespace)
        return f"kb_{safe}"[:63].rstrip("_-") or "kb_default"

    def _collection(self, namespace: str):
        return self._client.get_or_create_collection(
            name=self.collection_name(namespace),
            metadata={"hnsw:space": "cosine"},
        )

    def upsert(self, namespace: str, records: list[VectorRecord]) -> int:
        if not records:
            return 0

        # Flatten metadata and convert non-primitives to str (Chroma limitation)
        metadatas = []
        for record in records:
            meta = {}
            for k, v in record.metadata.items():
                if isinstance(v, (str, int, float, bool)):
                    meta[k] = v
                elif v is not None:
                    meta[k] = str(v)
            metadatas.append(meta or None)

        self._collection(namespace).upsert(
            ids=[r.id for r in records],
            embeddings=[r.vector for r in records],
            documents=[r.content for r in records],
            metadatas=metadatas,
        )
        logger.debug(f"Upserted {len(records)} vectors into Chroma collection for '{namespace}'")
        return len(records)

    def delete_namespace(self, namespace: str) -> None:
        name = self.collection_name(namespace)
        # list_collections returns names on chromadb>=0.6 and Collection objects before
        existing = {getattr(c, "name", c) for c in self._client.list_collections()}
        if name in existing:
            self._client.delete_collection(name)
            logger.info(f"Deleted Chroma collection {name}")

    def delete_source(self, namespace: str, source_type: str, source_id: str) -> int:
        collection = self._collection(namespace)
        stale = collection.get(
            where={"$and": [{"source_id": source_id}, {"source_type": source_type}]},
        )["ids"]
        if stale:
            collection.delete(ids=stale)
            logger.debug(f"Deleted {len(stale)} vectors of {source_type} {source_id} from Chroma collection for '{namespace}'")
        return len(stale)

    def count(self, namespace: str) -> int:
        return self._collection(namespace).count()

    def search(self, namespace: str, query_vector: list[float], top_k: int = 4) -> list[SearchHit]:
        results = self._collection(namespace).query(
            query_embeddings=[query_vector],
            n_results=top_k,
            include=["documents", "metadatas", "distances"],
        )

        if not results["ids"] or not results["ids"][0]:
            return []

        hits = []
        for i, record_id in enumerate(results["ids"][0]):
            hits.append(SearchHit(
                id=record_id,
                content=results["documents"][0][i],
                score=1 - results["distances"][0][i],
                metadata=results["metadatas"][0][i] or {},
            ))
        return hits
