"""Tests for RecursiveCharacterSplitter."""

import pytest

from kbforge.chunking.splitter import RecursiveCharacterSplitter
from kbforge.chunking.strategy import get_strategy_config
from tests.utils.builders import make_prose


class TestSplitterInit:
    """Tests for splitter construction."""

    def test_defaults(self):
        splitter = RecursiveCharacterSplitter()
        assert splitter.chunk_size == 1000
        assert splitter.chunk_overlap == 200
        assert splitter.separators == ("\n\n", "\n", " ", "")

    def test_empty_separator_is_appended(self):
        splitter = RecursiveCharacterSplitter(chunk_size=10, chunk_overlap=0, separators=["\n"])
        assert splitter.separators == ("\n", "")

    @pytest.mark.parametrize("size,overlap", [(0, 0), (-5, 0), (100, 100), (100, -1)])
    def test_invalid_sizes(self, size, overlap):
        with pytest.raises(ValueError):
            RecursiveCharacterSplitter(chunk_size=size, chunk_overlap=overlap)

    def test_from_config(self):
        splitter = RecursiveCharacterSplitter.from_config(get_strategy_config("faq"))
        assert splitter.chunk_size == 600
        assert splitter.chunk_overlap == 100
        assert splitter.keep_separator is True


class TestSplitText:
    """Tests for split_text."""

    def test_empty_text(self):
        assert RecursiveCharacterSplitter().split_text("") == []

    def test_short_text_is_single_chunk(self):
        """Text within chunk_size is returned as-is."""
        splitter = RecursiveCharacterSplitter(chunk_size=100, chunk_overlap=10)
        assert splitter.split_text("Hello world.") == ["Hello world."]

    def test_whitespace_only_text(self):
        assert RecursiveCharacterSplitter(chunk_size=10, chunk_overlap=0).split_text("   \n\n  ") == []

    def test_paragraphs_are_merged_up_to_size(self):
        """Adjacent paragraphs share a chunk while they fit."""
        text = "aaaa\n\nbbbb\n\ncccc"
        splitter = RecursiveCharacterSplitter(chunk_size=10, chunk_overlap=0)

        assert splitter.split_text(text) == ["aaaa\n\nbbbb", "cccc"]

    def test_oversized_piece_uses_next_separator(self):
        """A paragraph larger than chunk_size is split on words."""
        text = "short\n\n" + " ".join(["word"] * 20)
        splitter = RecursiveCharacterSplitter(chunk_size=20, chunk_overlap=0)

        chunks = splitter.split_text(text)

        assert chunks[0] == "short"
        assert all(len(c) <= 20 for c in chunks)
        assert " ".join(chunks[1:]).split() == ["word"] * 20

    def test_character_fallback(self):
        """Text without separators is cut at chunk_size."""
        splitter = RecursiveCharacterSplitter(chunk_size=1000, chunk_overlap=0)

        chunks = splitter.split_text("x" * 2500)

        assert [len(c) for c in chunks] == [1000, 1000, 500]

    def test_character_fallback_with_overlap(self):
        """Overlap never pushes a chunk beyond chunk_size + overlap."""
        splitter = RecursiveCharacterSplitter(chunk_size=1000, chunk_overlap=200)

        chunks = splitter.split_text("x" * 2500)

        assert len(chunks) == 3
        assert all(len(c) <= 1200 for c in chunks)
        assert len(chunks[1]) == 1200

    def test_chunks_are_substrings(self):
        text = make_prose(3000)
        splitter = RecursiveCharacterSplitter(chunk_size=500, chunk_overlap=80, separators=[". ", " "])

        for chunk in splitter.split_text(text):
            assert chunk in text
            assert chunk == chunk.strip()
            assert chunk

    def test_keep_separator_starts_piece(self):
        """Kept separators stay at the start of the piece they introduce."""
        text = "intro\nQ: one?\nA: yes\nQ: two?\nA: no"
        splitter = RecursiveCharacterSplitter(
            chunk_size=15, chunk_overlap=0, separators=["\nQ:", "\n"], keep_separator=True
        )

        chunks = splitter.split_text(text)

        assert chunks[0] == "intro"
        assert all(c.startswith(("Q:", "A:")) for c in chunks[1:])

    def test_dropped_separator(self):
        splitter = RecursiveCharacterSplitter(chunk_size=5, chunk_overlap=0, separators=[";"])
        assert splitter.split_text("abc;def;ghi") == ["abc", "def", "ghi"]


class TestOverlap:
    """Tests for the overlap pass."""

    def test_overlap_starts_at_word_boundary(self):
        text = " ".join(f"w{i:02d}" for i in range(40))
        splitter = RecursiveCharacterSplitter(chunk_size=40, chunk_overlap=10)

        chunks = splitter.split_text(text)

        assert len(chunks) > 1
        for chunk in chunks:
            assert chunk.split()[0].startswith("w")
            assert len(chunk.split()[0]) == 3

    def test_overlap_is_bounded(self):
        text = make_prose(2000)
        splitter = RecursiveCharacterSplitter(chunk_size=300, chunk_overlap=60)

        spans = splitter.split_spans(text)

        for (prev_start, prev_end), (start, end) in zip(spans, spans[1:]):
            assert start > prev_start
            assert prev_end - start <= 60
            assert end - start <= 360

    def test_no_overlap(self):
        text = make_prose(2000)
        splitter = RecursiveCharacterSplitter(chunk_size=300, chunk_overlap=0)

        spans = splitter.split_spans(text)

        for (_, prev_end), (start, _) in zip(spans, spans[1:]):
            assert start >= prev_end
