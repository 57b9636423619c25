"""Content-aware chunking strategy selection.

Different content shapes have different natural break points: code fences,
Q/A markers, markdown headers, paragraph breaks. The selector inspects the
text (and an optional content-type hint) and picks one of a fixed set of
named configurations. An adaptive configuration derived from corpus
statistics is available as an alternative source.
"""

import re
from typing import Callable

from loguru import logger

from kbforge.entities.chunk import ChunkingConfig


CODE = "code"
FAQ = "faq"
TECHNICAL = "technical"
WEB = "web"
CONVERSATIONAL = "conversational"
DEFAULT = "default"
ADAPTIVE = "adaptive"


STRATEGIES: dict[str, ChunkingConfig] = {
    TECHNICAL: ChunkingConfig(
        name=TECHNICAL,
        target_chunk_size=1500,
        overlap_size=300,
        separators=("\n## ", "\n### ", "\n\n", "\n", " ", ""),
        retain_separator=True,
    ),
    CONVERSATIONAL: ChunkingConfig(
        name=CONVERSATIONAL,
        target_chunk_size=800,
        overlap_size=150,
        separators=("\n\n", ". ", "! ", "? ", "\n", " ", ""),
        retain_separator=False,
    ),
    CODE: ChunkingConfig(
        name=CODE,
        target_chunk_size=2000,
        overlap_size=400,
        separators=("\n```", "\n\n", "\nclass ", "\nfunction ", "\ndef ", "\n", " ", ""),
        retain_separator=True,
    ),
    FAQ: ChunkingConfig(
        name=FAQ,
        target_chunk_size=600,
        overlap_size=100,
        separators=("\nQ:", "\nA:", "\n\n", "\n", " ", ""),
        retain_separator=True,
    ),
    WEB: ChunkingConfig(
        name=WEB,
        target_chunk_size=1200,
        overlap_size=240,
        separators=("\n\n", "\n", ". ", " ", ""),
        retain_separator=False,
    ),
}

DEFAULT_CONFIG = ChunkingConfig(
    name=DEFAULT,
    target_chunk_size=1000,
    overlap_size=200,
    separators=("\n\n", "\n", " ", ""),
    retain_separator=False,
)


_CODE_PATTERNS = [
    re.compile(r"```[\s\S]*?```"),                                  # Fenced code blocks
    re.compile(r"\bfunction\s+\w+\s*\("),                           # JS function definitions
    re.compile(r"^\s*class\s+\w+\s*(?:\([^)\n]*\))?\s*[:{]", re.M),  # Class definitions
    re.compile(r"\bdef\s+\w+\s*\("),                                # Python function definitions
    re.compile(r"^\s*(?:import\s+[\w.]+|from\s+[\w.]+\s+import\s+\w+)", re.M),
    re.compile(r"#include\s*<[\w./]+>"),                            # C/C++ includes
]

_FAQ_PATTERNS = [
    re.compile(r"Q:\s*.*?\n.*?A:\s*", re.I),
    re.compile(r"Question:\s*.*?\n.*?Answer:\s*", re.I),
    re.compile(r"\d+\.\s*.*?\?.*?\n.*?Answer:", re.I),
]

_MARKDOWN_PATTERNS = [
    re.compile(r"^#{1,6}\s+\S", re.M),  # Markdown headers
    re.compile(r"\*\*[^*\n]+\*\*"),     # Bold text
]

_TECH_VOCABULARY = re.compile(r"\b(?:APIs?|SDKs?|REST(?:ful)?|GraphQL|JSON|XML|GET|POST|PUT|DELETE|PATCH)\b")

# Distinct technical terms needed before prose counts as technical
MIN_TECH_TERMS = 2


def has_code_patterns(text: str) -> bool:
    return any(pattern.search(text) for pattern in _CODE_PATTERNS)


def has_faq_patterns(text: str) -> bool:
    return any(pattern.search(text) for pattern in _FAQ_PATTERNS)


def has_technical_patterns(text: str) -> bool:
    if any(pattern.search(text) for pattern in _MARKDOWN_PATTERNS):
        return True
    terms = {match.group(0).upper() for match in _TECH_VOCABULARY.finditer(text)}
    return len(terms) >= MIN_TECH_TERMS


def _is_web_hint(_text: str, hint: str | None) -> bool:
    if not hint:
        return False
    hint = hint.lower()
    return "html" in hint or "web" in hint


Rule = tuple[Callable[[str, str | None], bool], str]


class ChunkingStrategySelector:
    """Pick a named chunking strategy for a text.

    Rules are evaluated top-down and the first match wins. Later rules are
    deliberately more general, so the order must not change:
    code, faq, technical, web (content-type hint only), conversational.

    Example:
        >>> selector = ChunkingStrategySelector()
        >>> selector.select_strategy("Q: What is X?\\nA: It is Y.")
        'faq'
    """

    RULES: list[Rule] = [
        (lambda text, _hint: has_code_patterns(text), CODE),
        (lambda text, _hint: has_faq_patterns(text), FAQ),
        (lambda text, _hint: has_technical_patterns(text), TECHNICAL),
        (_is_web_hint, WEB),
    ]
    FALLBACK = CONVERSATIONAL

    def select_strategy(self, text: str, content_type_hint: str | None = None) -> str:
        """Return the strategy name for ``text``.

        Args:
            text: Full text to inspect
            content_type_hint: Declared content type, e.g. "text/html"

        Returns:
            One of "code", "faq", "technical", "web", "conversational"
        """
        for predicate, name in self.RULES:
            if predicate(text, content_type_hint):
                logger.debug(f"Selected chunking strategy '{name}' (hint={content_type_hint})")
                return name
        return self.FALLBACK

    def select_config(self, text: str, content_type_hint: str | None = None) -> ChunkingConfig:
        return get_strategy_config(self.select_strategy(text, content_type_hint))


def get_strategy_config(name: str) -> ChunkingConfig:
    """Return the fixed configuration for a strategy name.

    Unmapped names fall back to the default configuration.
    """
    config = STRATEGIES.get(name)
    if config is None:
        logger.warning(f"Unknown chunking strategy '{name}', using default configuration")
        return DEFAULT_CONFIG
    return config


def average_sentence_length(text: str) -> int:
    sentences = [s for s in re.split(r"[.!?]+", text) if s.strip()]
    if not sentences:
        return 100
    return sum(len(s) for s in sentences) // len(sentences)


def average_paragraph_length(text: str) -> int:
    paragraphs = [p for p in re.split(r"\n\s*\n", text) if p.strip()]
    if not paragraphs:
        return 300
    return sum(len(p) for p in paragraphs) // len(paragraphs)


def analyze_optimal_chunk_size(text: str) -> ChunkingConfig:
    """Derive a chunking configuration from corpus statistics.

    Target size scales with the mean paragraph length (and never drops below
    three mean sentences), clamped to a band that depends on the document
    length bucket. Overlap is 15%, 20% or 25% of the target for small,
    medium and large documents.

    Args:
        text: Full text to analyze

    Returns:
        ChunkingConfig named "adaptive"
    """
    length = len(text)
    sentence_len = average_sentence_length(text)
    paragraph_len = average_paragraph_length(text)

    if length < 5000:
        lower, upper, factor, ratio = 400, 800, 2, 0.15
    elif length < 20000:
        lower, upper, factor, ratio = 600, 1200, 3, 0.2
    else:
        lower, upper, factor, ratio = 800, 1500, 4, 0.25

    size = min(upper, max(lower, paragraph_len * factor, sentence_len * 3))
    overlap = int(size * ratio)

    logger.debug(
        f"Adaptive chunk size: length={length}, avg_sentence={sentence_len}, "
        f"avg_paragraph={paragraph_len} -> size={size}, overlap={overlap}"
    )

    return ChunkingConfig(
        name=ADAPTIVE,
        target_chunk_size=size,
        overlap_size=overlap,
        separators=("\n\n", "\n", ". ", " ", ""),
        retain_separator=False,
    )
