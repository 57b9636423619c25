"""Tests for WebsiteExtractor over a mocked transport."""

import httpx
import pytest

from kbforge.errors import ExtractionError
from kbforge.extractor import WebsiteExtractor


def _extractor(handler, **kwargs):
    return WebsiteExtractor(client=httpx.Client(transport=httpx.MockTransport(handler)), **kwargs)


class TestWebsiteExtractor:
    """Tests for WebsiteExtractor."""

    def test_html_page(self):
        def handler(request):
            return httpx.Response(
                200,
                headers={"content-type": "text/html; charset=utf-8"},
                text="<html><head><title>Tides</title></head><body><h1>Tides</h1><p>High at noon.</p></body></html>",
            )

        result = _extractor(handler).extract_text("https://harbor.example/tides")

        assert result.text == "# Tides\n\nHigh at noon."
        assert result.content_type == "text/html"
        assert result.metadata == {
            "url": "https://harbor.example/tides",
            "status_code": 200,
            "domain": "harbor.example",
            "title": "Tides",
        }

    def test_plain_text_page(self):
        def handler(request):
            return httpx.Response(200, headers={"content-type": "text/plain"}, text="Just text.")

        result = _extractor(handler).extract_text("http://harbor.example/robots.txt")

        assert result.text == "Just text."
        assert result.content_type == "text/plain"
        assert "title" not in result.metadata

    @pytest.mark.parametrize("url", ["ftp://harbor.example", "harbor.example", "https://", ""])
    def test_invalid_url(self, url):
        with pytest.raises(ExtractionError, match="Invalid website URL"):
            _extractor(lambda r: httpx.Response(200)).extract_text(url)

    def test_http_error_status(self):
        with pytest.raises(ExtractionError, match="HTTP 404") as exc_info:
            _extractor(lambda r: httpx.Response(404)).extract_text("https://harbor.example/missing")
        assert exc_info.value.details["status_code"] == 404

    def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        with pytest.raises(ExtractionError, match="Failed to fetch") as exc_info:
            _extractor(handler).extract_text("https://harbor.example")
        assert isinstance(exc_info.value.original_error, httpx.ConnectError)

    def test_page_too_large(self):
        def handler(request):
            return httpx.Response(200, headers={"content-type": "text/html"}, text="x" * 2000)

        with pytest.raises(ExtractionError, match="Page too large"):
            _extractor(handler, max_bytes=1000).extract_text("https://harbor.example")
