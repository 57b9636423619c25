"""Document chunker: strategy-aware splitting with provenance and quality checks."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

from loguru import logger

from kbforge.chunking.splitter import RecursiveCharacterSplitter
from kbforge.chunking.strategy import (
    ChunkingStrategySelector,
    analyze_optimal_chunk_size,
    get_strategy_config,
)
from kbforge.entities.chunk import (
    Chunk,
    ChunkingConfig,
    PositionConfidence,
    SourceType,
    make_chunk_id,
)
from kbforge.errors import ContentError
from kbforge.observability import trace_span

# Quality thresholds
SMALL_CHUNK_CHARS = 50
SMALL_CHUNK_RATIO = 0.2
MIN_COVERAGE_RATIO = 0.8


@dataclass(frozen=True)
class QualityWarning:
    """A chunk-quality heuristic that tripped. Informational, never fatal."""

    code: str
    message: str


def validate_chunks(chunks: list[Chunk], original_text: str) -> list[QualityWarning]:
    """Run quality heuristics over a chunk sequence.

    Args:
        chunks: Chunks produced from ``original_text``
        original_text: The text that was chunked

    Returns:
        Warnings for empty chunks, too many small chunks and low coverage

    Raises:
        ContentError: If ``chunks`` is empty
    """
    if not chunks:
        raise ContentError("No chunks generated from content")

    warnings: list[QualityWarning] = []

    empty = [c for c in chunks if not c.content.strip()]
    if empty:
        warnings.append(QualityWarning("empty_chunks", f"Found {len(empty)} empty chunks"))

    small = [c for c in chunks if len(c.content) < SMALL_CHUNK_CHARS]
    if len(small) > len(chunks) * SMALL_CHUNK_RATIO:
        warnings.append(QualityWarning(
            "small_chunks",
            f"High number of small chunks detected: {len(small)}/{len(chunks)}",
        ))

    total = sum(len(c.content) for c in chunks)
    ratio = total / len(original_text) if original_text else 0.0
    if ratio < MIN_COVERAGE_RATIO:
        warnings.append(QualityWarning(
            "content_loss",
            f"Significant content loss detected. Coverage ratio: {ratio:.2f}",
        ))

    for warning in warnings:
        logger.warning(f"Chunk quality: {warning.message}")

    return warnings


class DocumentChunker:
    """Split source text into overlapping, provenance-tagged chunks.

    The chunker is a pure function of its inputs apart from the clock used
    for ``created_at``; it holds no mutable state and is safe to share
    between workers.

    Attributes:
        selector: Strategy selector used by :meth:`chunk_document`
        clock: Returns the timestamp stamped on generated chunks

    Example:
        >>> chunker = DocumentChunker()
        >>> chunks = chunker.chunk_document(text, source_id="doc-1", source_type="document")
        >>> chunks[0].strategy_name
        'conversational'
    """

    def __init__(
        self,
        selector: ChunkingStrategySelector | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.selector = selector or ChunkingStrategySelector()
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    @trace_span("chunker.chunk")
    def chunk(
        self,
        text: str,
        config: ChunkingConfig,
        *,
        source_id: str,
        source_type: SourceType | str,
        metadata: dict[str, Any] | None = None,
    ) -> list[Chunk]:
        """Chunk ``text`` with an explicit configuration.

        Args:
            text: Text to split
            config: Chunking configuration; its name becomes ``strategy_name``
            source_id: Provenance id, also the chunk-id prefix
            source_type: "document" or "website"
            metadata: Caller metadata merged into every chunk

        Returns:
            Chunks with contiguous ``chunk_index`` values in ``[0, total_chunks)``

        Raises:
            ContentError: If the text is empty or produced no chunks
        """
        if not text or not text.strip():
            raise ContentError(
                "Cannot chunk empty content",
                details={"source_id": source_id},
            )

        splitter = RecursiveCharacterSplitter.from_config(config)
        pieces = splitter.split_text(text)
        if not pieces:
            raise ContentError("No chunks generated from content", details={"source_id": source_id})

        created_at = self.clock()
        source_type = SourceType(source_type)
        total = len(pieces)
        positions = locate_chunks(text, pieces, config.overlap_size)

        chunks = [
            Chunk(
                id=make_chunk_id(source_id, config.name, index),
                content=content,
                source_id=source_id,
                source_type=source_type,
                chunk_index=index,
                total_chunks=total,
                start_char=start,
                end_char=start + len(content),
                position_confidence=confidence,
                strategy_name=config.name,
                created_at=created_at,
                metadata={"char_count": len(content), **(metadata or {})},
            )
            for index, (content, (start, confidence)) in enumerate(zip(pieces, positions))
        ]

        validate_chunks(chunks, text)

        logger.info(
            f"Chunked source {source_id} with strategy '{config.name}': "
            f"{total} chunks (avg size: {sum(c.char_count for c in chunks) / total:.0f})"
        )
        return chunks

    def chunk_document(
        self,
        text: str,
        *,
        source_id: str,
        source_type: SourceType | str,
        content_type: str | None = None,
        metadata: dict[str, Any] | None = None,
        strategy: str | None = None,
        adaptive: bool = False,
    ) -> list[Chunk]:
        """Chunk ``text`` with an automatically chosen configuration.

        Args:
            text: Text to split
            source_id: Provenance id
            source_type: "document" or "website"
            content_type: Content-type hint passed to the selector
            metadata: Caller metadata merged into every chunk
            strategy: Force a named strategy instead of selecting one
            adaptive: Use :func:`analyze_optimal_chunk_size` instead of the strategy table

        Returns:
            Ordered chunk sequence
        """
        if adaptive:
            config = analyze_optimal_chunk_size(text)
        elif strategy:
            config = get_strategy_config(strategy)
        else:
            config = self.selector.select_config(text, content_type)

        logger.info(
            f"Chunking source {source_id} with strategy: {config.name} "
            f"(length={len(text)}, size={config.target_chunk_size}, overlap={config.overlap_size})"
        )
        return self.chunk(
            text,
            config,
            source_id=source_id,
            source_type=source_type,
            metadata=metadata,
        )

    def chunk_with_strategy(
        self,
        text: str,
        strategy_name: str,
        *,
        source_id: str,
        source_type: SourceType | str,
        metadata: dict[str, Any] | None = None,
    ) -> list[Chunk]:
        """Chunk ``text`` with a named strategy; unknown names use the default config."""
        return self.chunk(
            text,
            get_strategy_config(strategy_name),
            source_id=source_id,
            source_type=source_type,
            metadata=metadata,
        )

    def rechunk_with_strategy(self, existing_chunks: list[Chunk], new_strategy: str) -> list[Chunk]:
        """Re-chunk a previously chunked source under another strategy.

        The original text is approximated by joining the existing chunks in
        ``chunk_index`` order with a single space. Original separators and
        overlap duplication are not undone, so the result is lossy.

        Args:
            existing_chunks: A complete chunk sequence of one source
            new_strategy: Strategy name for the new sequence

        Returns:
            A new chunk sequence in the new strategy's id namespace

        Raises:
            ContentError: If ``existing_chunks`` is empty
        """
        if not existing_chunks:
            raise ContentError("No chunks to re-chunk")

        ordered = sorted(existing_chunks, key=lambda c: c.chunk_index)
        reconstructed = " ".join(c.content for c in ordered)
        first = ordered[0]

        return self.chunk_with_strategy(
            reconstructed,
            new_strategy,
            source_id=first.source_id,
            source_type=first.source_type,
            metadata=first.metadata,
        )


def locate_chunks(
    text: str,
    pieces: list[str],
    overlap_size: int,
) -> list[tuple[int, PositionConfidence]]:
    """Find best-effort start offsets of consecutive chunks in ``text``.

    The search for each chunk starts ``overlap_size`` characters before the
    previous chunk's end, the earliest place an overlapping chunk can begin.
    Near-duplicate text can still make the search land on the wrong
    occurrence, so the offsets are approximate.
    """
    positions: list[tuple[int, PositionConfidence]] = []
    previous_end = 0

    for content in pieces:
        cursor = max(0, previous_end - overlap_size)
        start = text.find(content, cursor)
        confidence = PositionConfidence.LOCATED

        if start == -1:
            start = text.find(content)
            confidence = PositionConfidence.FALLBACK
        if start == -1:
            start = cursor
            confidence = PositionConfidence.ESTIMATED

        positions.append((start, confidence))
        previous_end = start + len(content)

    return positions
