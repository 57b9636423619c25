"""Tests for chunking strategy selection and adaptive sizing."""

import pytest

from kbforge.chunking.strategy import (
    DEFAULT_CONFIG,
    STRATEGIES,
    ChunkingStrategySelector,
    analyze_optimal_chunk_size,
    get_strategy_config,
)
from kbforge.entities.chunk import ChunkingConfig
from tests.utils.builders import make_faq, make_prose


@pytest.fixture
def selector():
    return ChunkingStrategySelector()


class TestStrategySelection:
    """Tests for ChunkingStrategySelector."""

    def test_fenced_code_selects_code(self, selector):
        """A fenced code block wins over everything else."""
        text = "Q: How do I start?\nA: Run this:\n```\nstart()\n```"
        assert selector.select_strategy(text) == "code"

    @pytest.mark.parametrize("text", [
        "Helper below.\ndef parse(value):\n    return value",
        "function render(node) { return node; }",
        "class Parser(Base):\n    pass",
        "import os\nprint(os.getcwd())",
        "from pathlib import Path\nPath('.')",
        "#include <stdio.h>\nint main() {}",
    ])
    def test_code_markers(self, selector, text):
        """Common source-code markers select the code strategy."""
        assert selector.select_strategy(text) == "code"

    def test_prose_mentioning_class_is_not_code(self, selector):
        """The word 'class' inside prose does not count as a definition."""
        text = "The class met every Tuesday to discuss poetry and painting."
        assert selector.select_strategy(text) == "conversational"

    def test_faq_markers(self, selector):
        assert selector.select_strategy(make_faq()) == "faq"

    def test_question_answer_markers(self, selector):
        """Question:/Answer: pairs are treated as FAQ content."""
        text = "Question: Is parking free?\nAnswer: Yes, for two hours."
        assert selector.select_strategy(text) == "faq"

    def test_markdown_header_selects_technical(self, selector):
        text = "# Installation\n\nDownload the package and unpack it."
        assert selector.select_strategy(text) == "technical"

    def test_bold_text_selects_technical(self, selector):
        assert selector.select_strategy("Remember: **never** share your key.") == "technical"

    def test_api_vocabulary_selects_technical(self, selector):
        """Two distinct technical terms are enough."""
        text = "Send a POST request to the API with a JSON body."
        assert selector.select_strategy(text) == "technical"

    def test_single_technical_term_is_not_enough(self, selector):
        text = "The API was down for a few minutes this morning."
        assert selector.select_strategy(text) == "conversational"

    def test_html_hint_selects_web(self, selector):
        assert selector.select_strategy(make_prose(500), "text/html") == "web"

    def test_hint_does_not_override_content_rules(self, selector):
        """Content-based rules are checked before the content-type hint."""
        assert selector.select_strategy(make_faq(), "text/html") == "faq"

    def test_plain_prose_is_conversational(self, selector):
        assert selector.select_strategy(make_prose(1000)) == "conversational"
        assert selector.select_strategy(make_prose(1000), "text/plain") == "conversational"

    def test_select_config_returns_named_config(self, selector):
        config = selector.select_config(make_faq())
        assert config is STRATEGIES["faq"]


class TestStrategyConfigs:
    """Tests for the fixed strategy table."""

    @pytest.mark.parametrize("name,size,overlap", [
        ("technical", 1500, 300),
        ("conversational", 800, 150),
        ("code", 2000, 400),
        ("faq", 600, 100),
        ("web", 1200, 240),
    ])
    def test_sizes(self, name, size, overlap):
        config = get_strategy_config(name)
        assert config.name == name
        assert config.target_chunk_size == size
        assert config.overlap_size == overlap

    def test_every_config_ends_with_empty_separator(self):
        for config in [*STRATEGIES.values(), DEFAULT_CONFIG]:
            assert config.separators[-1] == ""

    def test_unknown_name_falls_back_to_default(self):
        config = get_strategy_config("legal")
        assert config is DEFAULT_CONFIG
        assert (config.target_chunk_size, config.overlap_size) == (1000, 200)

    def test_config_appends_empty_separator(self):
        config = ChunkingConfig(name="custom", target_chunk_size=100, separators=("\n",))
        assert config.separators == ("\n", "")

    def test_overlap_must_be_smaller_than_size(self):
        with pytest.raises(ValueError):
            ChunkingConfig(name="bad", target_chunk_size=100, overlap_size=100)


class TestAdaptiveChunkSize:
    """Tests for analyze_optimal_chunk_size."""

    def test_small_document(self):
        """Short texts stay in the 400-800 band with 15% overlap."""
        config = analyze_optimal_chunk_size("Short sentence here. " * 10)

        assert config.name == "adaptive"
        assert 400 <= config.target_chunk_size <= 800
        assert config.overlap_size == int(config.target_chunk_size * 0.15)

    def test_medium_document(self):
        text = "\n\n".join([make_prose(400)] * 20)
        assert 5000 <= len(text) < 20000

        config = analyze_optimal_chunk_size(text)

        assert 600 <= config.target_chunk_size <= 1200
        assert config.overlap_size == int(config.target_chunk_size * 0.2)

    def test_large_document_is_capped(self):
        """Very long paragraphs are clamped to the upper bound."""
        config = analyze_optimal_chunk_size(make_prose(25000))

        assert config.target_chunk_size == 1500
        assert config.overlap_size == int(1500 * 0.25)
