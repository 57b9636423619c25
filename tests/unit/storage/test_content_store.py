"""Tests for ContentStore."""

import pytest

from kbforge.errors import ContentError
from kbforge.storage import ContentStore, InMemoryKV, SQLiteKV
from tests.utils.builders import make_chunk


@pytest.fixture
def chunks():
    return [
        make_chunk("First part of the story.", index=0, total=2, title="Harbor"),
        make_chunk("Second part of the story.", index=1, total=2, title="Harbor"),
    ]


class TestContentStore:
    """Tests for saving and loading chunk sets."""

    def test_make_ref(self):
        assert ContentStore.make_ref("document", "doc-1") == "chunks/document/doc-1"
        assert ContentStore.make_ref("website", "site-1") == "chunks/website/site-1"

    def test_make_ref_rejects_unknown_type(self):
        with pytest.raises(ValueError):
            ContentStore.make_ref("video", "v-1")

    def test_round_trip(self, chunks):
        store = ContentStore(InMemoryKV())

        ref = store.save("document", "doc-1", chunks)

        assert ref == "chunks/document/doc-1"
        assert store.load(ref) == chunks

    def test_save_replaces_previous_set(self, chunks):
        store = ContentStore(InMemoryKV())
        store.save("document", "doc-1", chunks)

        ref = store.save("document", "doc-1", chunks[:1])

        assert len(store.load(ref)) == 1

    def test_load_missing_raises(self):
        store = ContentStore(InMemoryKV())
        with pytest.raises(ContentError, match="chunks/document/nope"):
            store.load("chunks/document/nope")

    def test_delete(self, chunks):
        store = ContentStore(InMemoryKV())
        ref = store.save("document", "doc-1", chunks)

        store.delete(ref)

        with pytest.raises(ContentError):
            store.load(ref)

    def test_sqlite_backend(self, chunks, tmp_path):
        with SQLiteKV(db_path=str(tmp_path / "content.db")) as kv:
            ref = ContentStore(kv).save("document", "doc-1", chunks)

        with SQLiteKV(db_path=str(tmp_path / "content.db")) as kv:
            loaded = ContentStore(kv).load(ref)

        assert [c.content for c in loaded] == [c.content for c in chunks]
        assert loaded[0].metadata == {"title": "Harbor"}
