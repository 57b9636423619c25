"""
Content store for extracted chunk sets.

The extraction stage saves the chunk sequence of a source here and records
the returned ``content_ref`` on the source record. Reindexing loads chunk
sets back by reference instead of extracting the source again.
"""

import json
import logging

from kbforge.entities.chunk import Chunk, SourceType
from kbforge.errors import ContentError
from kbforge.storage.kv.base import BaseKVStore

logger = logging.getLogger(__name__)

REF_PREFIX = "chunks"


class ContentStore:
    """
    Persist chunk sequences behind opaque references.

    References have the form ``chunks/<source_type>/<source_id>``; saving a
    source again replaces its previous chunk set.

    Example:
        >>> store = ContentStore(InMemoryKV())
        >>> ref = store.save("document", "doc-1", chunks)
        >>> store.load(ref) == chunks
        True
    """

    def __init__(self, kv: BaseKVStore):
        self.kv = kv

    @staticmethod
    def make_ref(source_type: SourceType | str, source_id: str) -> str:
        return f"{REF_PREFIX}/{SourceType(source_type).value}/{source_id}"

    def save(self, source_type: SourceType | str, source_id: str, chunks: list[Chunk]) -> str:
        """Store a chunk sequence and return its content reference."""
        ref = self.make_ref(source_type, source_id)
        payload = json.dumps([chunk.model_dump(mode="json") for chunk in chunks])
        self.kv.set(ref, payload)
        logger.debug(f"Saved {len(chunks)} chunks under {ref}")
        return ref

    def load(self, content_ref: str) -> list[Chunk]:
        """
        Load a chunk sequence by reference.

        Raises:
            ContentError: If nothing is stored under ``content_ref``
        """
        payload = self.kv.get(content_ref)
        if payload is None:
            raise ContentError(
                f"No stored chunk set for content reference: {content_ref}",
                details={"content_ref": content_ref},
            )
        return [Chunk.model_validate(item) for item in json.loads(payload)]

    def delete(self, content_ref: str) -> None:
        self.kv.delete([content_ref])
