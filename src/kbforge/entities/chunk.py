"""Chunk entity and the chunking configuration that produces it."""

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator


class SourceType(StrEnum):
    DOCUMENT = "document"
    WEBSITE = "website"


class PositionConfidence(StrEnum):
    """How a chunk's ``start_char``/``end_char`` were determined.

    Offsets are always approximate. ``LOCATED`` means the content was found
    at or after the expected cursor, ``FALLBACK`` means it was only found by
    searching the whole text (possibly an earlier duplicate), ``ESTIMATED``
    means it was not found and the cursor was used as-is.
    """
    LOCATED = "located"
    FALLBACK = "fallback"
    ESTIMATED = "estimated"


class ChunkingConfig(BaseModel):
    """
    Named, immutable chunking configuration.

    Attributes:
        name: Strategy name recorded on every chunk produced with this config
        target_chunk_size: Target maximum characters per chunk (before overlap)
        overlap_size: Characters of trailing context carried into the next chunk
        separators: Separators tried most-specific first; the last one is always ""
        retain_separator: Keep the separator attached to the chunk it introduces
    """

    name: str
    target_chunk_size: int = Field(..., gt=0)
    overlap_size: int = Field(default=0, ge=0)
    separators: tuple[str, ...] = ("\n\n", "\n", " ", "")
    retain_separator: bool = False

    model_config = {
        "frozen": True,
    }

    @field_validator("separators")
    @classmethod
    def _terminate_with_empty_separator(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        # The empty separator guarantees the split terminates
        if not value or value[-1] != "":
            return tuple(value) + ("",)
        return value

    @model_validator(mode="after")
    def _check_overlap(self) -> "ChunkingConfig":
        if self.overlap_size >= self.target_chunk_size:
            raise ValueError("overlap_size must be smaller than target_chunk_size")
        return self


class Chunk(BaseModel):
    """
    Immutable unit of retrievable text produced for one source.

    ``chunk_index`` values of one sequence form the contiguous range
    ``[0, total_chunks)``. ``start_char``/``end_char`` are best-effort
    offsets into the text that was chunked, see ``position_confidence``.
    """

    id: str
    content: str = Field(..., min_length=1)

    # Provenance
    source_id: str
    source_type: SourceType

    # Position within the sequence
    chunk_index: int = Field(..., ge=0)
    total_chunks: int = Field(..., ge=1)

    # Approximate offsets into the original text
    start_char: int = Field(default=0, ge=0)
    end_char: int = Field(default=0, ge=0)
    position_confidence: PositionConfidence = PositionConfidence.LOCATED

    strategy_name: str
    created_at: datetime

    # Caller-supplied metadata, preserved verbatim
    metadata: dict[str, Any] = Field(default_factory=dict)

    model_config = {
        "frozen": True,
    }

    @property
    def char_count(self) -> int:
        return len(self.content)

    def get_meta(self, key: str, default: Any = None) -> Any:
        return self.metadata.get(key, default)


def make_chunk_id(source_id: str, strategy_name: str, chunk_index: int) -> str:
    """Build the stable chunk id for ``(source_id, chunk_index)`` under a strategy."""
    return f"{source_id}:{strategy_name}:{chunk_index}"
