"""Extractor for websites: fetch a URL and clean its HTML."""

from urllib.parse import urlparse

import httpx
from loguru import logger

from kbforge.errors import ExtractionError
from kbforge.extractor.base import BaseExtractor, ExtractionResult
from kbforge.extractor.html import html_to_text
from kbforge.utils.performance import timed


class WebsiteExtractor(BaseExtractor):
    """
    Scrape the readable text of a single web page.

    Non-HTML responses are accepted as plain text. Network failures and HTTP
    error statuses raise ExtractionError.

    Attributes:
        client: httpx client used for requests (injectable for tests)
        max_bytes: Responses larger than this are rejected
    """

    DEFAULT_USER_AGENT = "kbforge-scraper/0.1"

    def __init__(
        self,
        client: httpx.Client | None = None,
        timeout: float = 30.0,
        user_agent: str = DEFAULT_USER_AGENT,
        max_bytes: int = 10 * 1024 * 1024,
    ):
        self.client = client or httpx.Client(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": user_agent},
        )
        self.max_bytes = max_bytes

    @timed("Website scrape")
    def extract_text(self, locator: str) -> ExtractionResult:
        parsed = urlparse(locator)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ExtractionError(f"Invalid website URL: {locator}", locator=locator)

        logger.info(f"Scraping {locator}")

        try:
            resp = self.client.get(locator)
        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch {locator}: {e}")
            raise ExtractionError(f"Failed to fetch {locator}: {e}", locator=locator, original_error=e) from e

        if resp.status_code >= 400:
            raise ExtractionError(
                f"Fetching {locator} returned HTTP {resp.status_code}",
                locator=locator,
                details={"status_code": resp.status_code},
            )

        if len(resp.content) > self.max_bytes:
            raise ExtractionError(
                f"Page too large: {len(resp.content)} bytes",
                locator=locator,
                details={"max_bytes": self.max_bytes},
            )

        content_type = resp.headers.get("content-type", "text/html").split(";")[0].strip().lower()
        metadata = {"url": str(resp.url), "status_code": resp.status_code, "domain": parsed.netloc}

        if "html" in content_type:
            text, title = html_to_text(resp.text)
            metadata["title"] = title
        else:
            text = resp.text

        if not text.strip():
            logger.warning(f"No text content extracted from {locator}")

        logger.info(f"Scraped {len(text)} characters from {locator}")
        return ExtractionResult(text=text, content_type=content_type, metadata=metadata)
