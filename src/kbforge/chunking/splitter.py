"""Recursive character-based text splitter with semantic awareness.

The splitter works on character spans of the original text, so every chunk
it returns is an exact substring of the input. Splitting tries separators
in order of semantic significance, re-splits oversized pieces with the next
separator, and only cuts at arbitrary characters when the empty separator
is reached.
"""

from loguru import logger

from kbforge.entities.chunk import ChunkingConfig

Span = tuple[int, int]


class RecursiveCharacterSplitter:
    """Recursively splits text using a hierarchy of separators.

    Splitting happens in two passes:
    1. Separator cascade: split on the first separator present in the text,
       merge adjacent pieces while they fit in ``chunk_size`` and recurse
       into any piece that is still too large with the remaining separators.
    2. Overlap: every chunk after the first is extended backwards into the
       tail of the previous segment by at most ``chunk_overlap`` characters,
       starting at a word boundary when one exists.

    Attributes:
        chunk_size: Target maximum characters per segment (before overlap)
        chunk_overlap: Characters of trailing context shared between chunks
        separators: Separator strings in order of preference
        keep_separator: Keep the separator at the start of the piece it introduces
    """

    DEFAULT_SEPARATORS = ("\n\n", "\n", " ", "")

    def __init__(
        self,
        chunk_size: int = 1000,
        chunk_overlap: int = 200,
        separators: tuple[str, ...] | list[str] | None = None,
        keep_separator: bool = False,
    ):
        """Initialize the recursive character splitter.

        Args:
            chunk_size: Target maximum characters per segment
            chunk_overlap: Characters to overlap between chunks
            separators: Custom separator list (uses defaults if None)
            keep_separator: Whether to keep separators in chunks

        Raises:
            ValueError: If chunk_size <= 0 or overlap >= chunk_size
        """
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if chunk_overlap < 0 or chunk_overlap >= chunk_size:
            raise ValueError("overlap must be in [0, chunk_size)")

        separators = tuple(separators) if separators else self.DEFAULT_SEPARATORS
        if separators[-1] != "":
            separators = separators + ("",)

        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.separators = separators
        self.keep_separator = keep_separator

    @classmethod
    def from_config(cls, config: ChunkingConfig) -> "RecursiveCharacterSplitter":
        return cls(
            chunk_size=config.target_chunk_size,
            chunk_overlap=config.overlap_size,
            separators=config.separators,
            keep_separator=config.retain_separator,
        )

    def split_text(self, text: str) -> list[str]:
        """Split text into overlapping chunks.

        Args:
            text: Text to split

        Returns:
            Non-empty, whitespace-trimmed chunks in document order
        """
        return [text[start:end] for start, end in self.split_spans(text)]

    def split_spans(self, text: str) -> list[Span]:
        """Split text and return ``(start, end)`` spans of the chunks."""
        if not text:
            return []

        segments = self._split_recursive(text, 0, len(text), self.separators)
        segments = [span for span in (self._strip(text, s) for s in segments) if span[1] > span[0]]

        logger.debug(
            f"Split {len(text)} chars into {len(segments)} segments "
            f"(size={self.chunk_size}, overlap={self.chunk_overlap})"
        )
        return self._apply_overlap(text, segments)

    def _split_recursive(self, text: str, start: int, end: int, separators: tuple[str, ...]) -> list[Span]:
        """Recursively split ``text[start:end]`` using a hierarchy of separators."""
        separator = ""
        remaining: tuple[str, ...] = ()
        for i, candidate in enumerate(separators):
            if candidate == "":
                break
            if text.find(candidate, start, end) != -1:
                separator = candidate
                remaining = separators[i + 1:]
                break

        if separator == "":
            return self._split_by_character(start, end)

        results: list[Span] = []
        current: list[Span] = []

        for piece in self._split_by_separator(text, start, end, separator):
            piece_start, piece_end = piece

            # A single piece that is too large is split with the next separators
            if piece_end - piece_start > self.chunk_size:
                if current:
                    results.append((current[0][0], current[-1][1]))
                    current = []
                results.extend(self._split_recursive(text, piece_start, piece_end, remaining))
                continue

            # Merged span covers the original text, interior separators included
            if current and piece_end - current[0][0] > self.chunk_size:
                results.append((current[0][0], current[-1][1]))
                current = []

            current.append(piece)

        if current:
            results.append((current[0][0], current[-1][1]))

        return results

    def _split_by_separator(self, text: str, start: int, end: int, separator: str) -> list[Span]:
        """Split a span on a separator, dropping empty pieces.

        With ``keep_separator`` the separator stays at the start of the piece
        it introduces; otherwise it is excluded from both neighbours.
        """
        spans: list[Span] = []
        piece_start = start
        index = text.find(separator, start, end)

        while index != -1:
            if index > piece_start:
                spans.append((piece_start, index))
            if self.keep_separator:
                piece_start = index
                index = text.find(separator, index + len(separator), end)
            else:
                piece_start = index + len(separator)
                index = text.find(separator, piece_start, end)

        if end > piece_start:
            spans.append((piece_start, end))
        return spans

    def _split_by_character(self, start: int, end: int) -> list[Span]:
        """Split a span by character count when no separator applies."""
        return [(pos, min(pos + self.chunk_size, end)) for pos in range(start, end, self.chunk_size)]

    @staticmethod
    def _strip(text: str, span: Span) -> Span:
        start, end = span
        while start < end and text[start].isspace():
            start += 1
        while end > start and text[end - 1].isspace():
            end -= 1
        return start, end

    def _apply_overlap(self, text: str, segments: list[Span]) -> list[Span]:
        """Extend each segment backwards into the tail of the previous one."""
        if self.chunk_overlap == 0 or len(segments) < 2:
            return segments

        chunks = [segments[0]]
        for previous, segment in zip(segments, segments[1:]):
            prev_start, prev_end = previous
            lower = max(
                prev_start,
                prev_end - self.chunk_overlap,
                segment[1] - (self.chunk_size + self.chunk_overlap),
            )
            start = self._snap_to_word(text, lower, prev_start, prev_end)
            chunks.append((start, segment[1]) if start < prev_end else segment)
        return chunks

    @staticmethod
    def _snap_to_word(text: str, start: int, lower_bound: int, limit: int) -> int:
        """Move ``start`` forward to the next word boundary before ``limit``.

        Falls back to the raw position when the overlap window holds no
        whitespace, e.g. after a character-level split.
        """
        raw = start
        if start > lower_bound and not text[start - 1].isspace():
            while start < limit and not text[start].isspace():
                start += 1
        while start < limit and text[start].isspace():
            start += 1
        if start >= limit:
            start = raw
            while start < limit and text[start].isspace():
                start += 1
        return start
