"""Content-aware text chunking."""

from .chunker import DocumentChunker, QualityWarning, locate_chunks, validate_chunks
from .splitter import RecursiveCharacterSplitter
from .strategy import (
    DEFAULT_CONFIG,
    STRATEGIES,
    ChunkingStrategySelector,
    analyze_optimal_chunk_size,
    get_strategy_config,
)

__all__ = [
    "DocumentChunker",
    "QualityWarning",
    "locate_chunks",
    "validate_chunks",
    "RecursiveCharacterSplitter",
    "DEFAULT_CONFIG",
    "STRATEGIES",
    "ChunkingStrategySelector",
    "analyze_optimal_chunk_size",
    "get_strategy_config",
]
