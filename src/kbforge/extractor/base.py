"""Extractor interface: turn a source locator into plain text."""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field


class ExtractionResult(BaseModel):
    """
    Text produced by an extractor.

    Attributes:
        text: Extracted plain text, may be empty
        content_type: MIME-style hint for strategy selection (e.g. "text/html")
        metadata: Extractor-specific facts (filename, title, page count, ...)
    """

    text: str
    content_type: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class BaseExtractor(ABC):
    """Abstract base class for source extractors."""

    @abstractmethod
    def extract_text(self, locator: str) -> ExtractionResult:
        """
        Extract text from a file path or URL.

        Raises:
            ExtractionError: If the source cannot be read or parsed
        """
        pass
