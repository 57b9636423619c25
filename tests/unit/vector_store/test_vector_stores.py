"""Tests for the vector stores."""

import uuid

import chromadb
import pytest

from kbforge.vector_store import ChromaVectorStore, InMemoryVectorStore, VectorRecord


@pytest.fixture(params=["memory", "chroma"])
def store(request):
    if request.param == "memory":
        return InMemoryVectorStore()
    return ChromaVectorStore(client=chromadb.EphemeralClient())


@pytest.fixture
def namespace():
    return f"bot-{uuid.uuid4().hex[:8]}"


def _records():
    return [
        VectorRecord(id="doc-1:faq:0", vector=[1.0, 0.0, 0.0], content="harbor", metadata={"chunk_index": 0}),
        VectorRecord(id="doc-1:faq:1", vector=[0.0, 1.0, 0.0], content="lighthouse", metadata={"chunk_index": 1}),
        VectorRecord(id="doc-1:faq:2", vector=[0.7, 0.7, 0.0], content="docks", metadata={"chunk_index": 2}),
    ]


class TestVectorStoreContract:
    """Behaviour shared by every vector store."""

    def test_upsert_and_count(self, store, namespace):
        assert store.upsert(namespace, _records()) == 3
        assert store.count(namespace) == 3

    def test_upsert_replaces_same_id(self, store, namespace):
        store.upsert(namespace, _records())
        store.upsert(namespace, _records())
        assert store.count(namespace) == 3

    def test_namespaces_are_isolated(self, store, namespace):
        other = f"{namespace}-other"
        store.upsert(namespace, _records())
        store.upsert(other, _records()[:1])

        store.delete_namespace(namespace)

        assert store.count(namespace) == 0
        assert store.count(other) == 1

    def test_delete_missing_namespace(self, store, namespace):
        store.delete_namespace(namespace)
        assert store.count(namespace) == 0

    def test_delete_source_removes_only_that_source(self, store, namespace):
        def record(record_id, source_type, source_id):
            return VectorRecord(
                id=record_id,
                vector=[1.0, 0.0, 0.0],
                content=record_id,
                metadata={"source_type": source_type, "source_id": source_id},
            )

        store.upsert(namespace, [
            record("doc-1:faq:0", "document", "doc-1"),
            record("doc-1:faq:1", "document", "doc-1"),
            record("doc-2:faq:0", "document", "doc-2"),
            record("site-doc-1", "website", "doc-1"),
        ])

        assert store.delete_source(namespace, "document", "doc-1") == 2
        assert store.count(namespace) == 2
        assert store.delete_source(namespace, "document", "doc-1") == 0

    def test_search_orders_by_similarity(self, store, namespace):
        store.upsert(namespace, _records())

        hits = store.search(namespace, [1.0, 0.1, 0.0], top_k=2)

        assert [h.id for h in hits] == ["doc-1:faq:0", "doc-1:faq:2"]
        assert hits[0].content == "harbor"
        assert hits[0].score > hits[1].score
        assert hits[0].metadata["chunk_index"] == 0


class TestInMemoryVectorStore:

    def test_get(self):
        store = InMemoryVectorStore()
        store.upsert("bot-1", _records())
        assert store.get("bot-1", "doc-1:faq:1").content == "lighthouse"
        assert store.get("bot-1", "missing") is None

    def test_search_empty_namespace(self):
        assert InMemoryVectorStore().search("bot-1", [1.0, 0.0]) == []


class TestChromaVectorStore:

    @pytest.mark.parametrize("namespace,expected", [
        ("bot-1", "kb_bot-1"),
        ("bot 1/with:odd", "kb_bot_1_with_odd"),
    ])
    def test_collection_name(self, namespace, expected):
        assert ChromaVectorStore.collection_name(namespace) == expected

    def test_collection_name_is_capped(self):
        assert len(ChromaVectorStore.collection_name("b" * 100)) == 63

    def test_non_primitive_metadata_is_stringified(self, namespace):
        store = ChromaVectorStore(client=chromadb.EphemeralClient())
        store.upsert(namespace, [
            VectorRecord(id="r1", vector=[1.0, 0.0], content="x", metadata={"tags": ["a"], "skip": None}),
        ])

        hit = store.search(namespace, [1.0, 0.0], top_k=1)[0]

        assert hit.metadata == {"tags": "['a']"}
