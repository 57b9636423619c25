from kbforge.extractor.providers.file import FileExtractor
from kbforge.extractor.providers.website import WebsiteExtractor

__all__ = ["FileExtractor", "WebsiteExtractor"]
