"""Extractor for uploaded document files."""

from pathlib import Path

import chardet
from docx import Document as DocxDocument
from loguru import logger
from pypdf import PdfReader

from kbforge.errors import ExtractionError
from kbforge.extractor.base import BaseExtractor, ExtractionResult
from kbforge.extractor.html import html_to_text
from kbforge.utils.performance import timed


class FileExtractor(BaseExtractor):
    """
    Extract text from local document files.

    Supported formats: plain text, markdown, HTML, PDF (pypdf) and DOCX
    (python-docx). The format is chosen by file extension.

    Example:
        >>> result = FileExtractor().extract_text("uploads/handbook.pdf")
        >>> result.metadata["total_pages"]
        12
    """

    CONTENT_TYPES = {
        ".txt": "text/plain",
        ".md": "text/markdown",
        ".markdown": "text/markdown",
        ".html": "text/html",
        ".htm": "text/html",
        ".pdf": "application/pdf",
        ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    }

    def __init__(self, encoding: str = "utf-8", include_tables: bool = True, auto_detect_encoding: bool = True):
        self.encoding = encoding
        self.include_tables = include_tables
        self.auto_detect_encoding = auto_detect_encoding

    @timed("File extraction")
    def extract_text(self, locator: str) -> ExtractionResult:
        path = Path(locator)

        if not path.is_file():
            raise ExtractionError(f"File not found: {path}", locator=locator)

        suffix = path.suffix.lower()
        content_type = self.CONTENT_TYPES.get(suffix)
        if content_type is None:
            raise ExtractionError(
                f"Unsupported file type: {suffix or '<none>'}",
                locator=locator,
                details={"supported": sorted(self.CONTENT_TYPES)},
            )

        logger.info(f"Extracting text from {path} ({content_type})")
        metadata = {"filename": path.name, "extension": suffix}

        try:
            if suffix == ".pdf":
                text = self._read_pdf(path, metadata)
            elif suffix == ".docx":
                text = self._read_docx(path, metadata)
            elif content_type == "text/html":
                text, title = html_to_text(path.read_text(encoding=self.encoding, errors="ignore"))
                metadata["title"] = title
            else:
                text = self._read_text(path, metadata)
        except Exception as e:
            logger.error(f"Failed to extract {path}: {e}")
            raise ExtractionError(
                f"Failed to extract text from {path.name}: {e}",
                locator=locator,
                original_error=e,
            ) from e

        if not text.strip():
            logger.warning(f"No text content extracted from {path}")

        logger.info(f"Extracted {len(text)} characters from {path.name}")
        return ExtractionResult(text=text, content_type=content_type, metadata=metadata)

    def _read_pdf(self, path: Path, metadata: dict) -> str:
        with open(path, "rb") as file:
            reader = PdfReader(file)
            pages = []
            for page_num, page in enumerate(reader.pages):
                try:
                    text = page.extract_text()
                except Exception as e:
                    logger.warning(f"Failed to extract page {page_num} of {path.name}: {e}")
                    continue
                if text and text.strip():
                    pages.append(text)

            metadata["total_pages"] = len(reader.pages)
        return "\n\n".join(pages)

    def _read_docx(self, path: Path, metadata: dict) -> str:
        doc = DocxDocument(str(path))
        blocks = [p.text for p in doc.paragraphs if p.text.strip()]
        metadata["paragraphs"] = len(blocks)

        if self.include_tables:
            for table in doc.tables:
                rows = [" | ".join(cell.text.strip() for cell in row.cells) for row in table.rows]
                rows = [row for row in rows if row.replace("|", "").strip()]
                if rows:
                    blocks.append("\n".join(rows))
            metadata["tables"] = len(doc.tables)

        return "\n\n".join(blocks)

    def _read_text(self, path: Path, metadata: dict) -> str:
        raw = path.read_bytes()
        try:
            text = raw.decode(self.encoding)
            metadata["encoding"] = self.encoding
            return text
        except UnicodeDecodeError:
            if not self.auto_detect_encoding:
                raise

        detected = chardet.detect(raw)
        encoding = detected["encoding"] or self.encoding
        logger.debug(f"Detected encoding for {path.name}: {encoding} (confidence: {detected['confidence']:.2f})")
        metadata["encoding"] = encoding
        return raw.decode(encoding, errors="replace")
