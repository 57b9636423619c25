"""Source extractors: documents and websites to plain text."""

from kbforge.extractor.base import BaseExtractor, ExtractionResult
from kbforge.extractor.html import html_to_text
from kbforge.extractor.providers import FileExtractor, WebsiteExtractor

__all__ = ["BaseExtractor", "ExtractionResult", "FileExtractor", "WebsiteExtractor", "html_to_text"]
