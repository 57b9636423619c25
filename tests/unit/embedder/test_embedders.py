"""Tests for embedding providers and the embedder factory."""

import json

import httpx
import pytest

from kbforge.config import Settings
from kbforge.embedder import (
    BaseEmbedder,
    CohereEmbedder,
    EmbedderFactory,
    MockEmbedder,
    OpenAIEmbedder,
)
from kbforge.errors import (
    AuthenticationError,
    ConfigurationError,
    RateLimitError,
    ServiceUnavailableError,
    TimeoutError,
    TransientError,
)


def _client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


class TestMockEmbedder:
    """Tests for MockEmbedder."""

    def test_dimension(self):
        embedder = MockEmbedder(dimension=8)
        vectors = embedder.embed(["a", "b"])
        assert embedder.dimension == 8
        assert [len(v) for v in vectors] == [8, 8]

    def test_deterministic(self):
        assert MockEmbedder(dimension=8).embed(["hello"]) == MockEmbedder(dimension=8).embed(["hello"])

    def test_different_texts_differ(self):
        first, second = MockEmbedder(dimension=8).embed(["hello", "world"])
        assert first != second

    def test_seed_changes_vectors(self):
        assert MockEmbedder(8, seed=1).embed(["x"]) != MockEmbedder(8, seed=2).embed(["x"])

    def test_unit_length(self):
        vector = MockEmbedder(dimension=32).embed(["normalize me"])[0]
        assert sum(x * x for x in vector) == pytest.approx(1.0)

    def test_empty_input(self):
        with pytest.raises(ValueError):
            MockEmbedder().embed([])


class TestOpenAIEmbedder:
    """Tests for OpenAIEmbedder over a mocked transport."""

    def test_request_and_ordering(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"data": [
                {"index": 1, "embedding": [0.0, 1.0]},
                {"index": 0, "embedding": [1.0, 0.0]},
            ]})

        embedder = OpenAIEmbedder(api_key="sk-test", base_url="http://llm.local/v1/", client=_client(handler))

        vectors = embedder.embed(["first", "second"])

        assert vectors == [[1.0, 0.0], [0.0, 1.0]]
        assert seen["url"] == "http://llm.local/v1/embeddings"
        assert seen["auth"] == "Bearer sk-test"
        assert seen["body"] == {"input": ["first", "second"], "model": "text-embedding-3-small"}
        assert embedder.dimension == 2

    def test_rate_limit(self):
        def handler(request):
            return httpx.Response(429, headers={"Retry-After": "3"}, text="slow down")

        embedder = OpenAIEmbedder(api_key="sk-test", client=_client(handler))

        with pytest.raises(RateLimitError) as exc_info:
            embedder.embed(["text"])
        assert exc_info.value.retry_after == 3.0
        assert exc_info.value.details["provider"] == "openai"

    def test_auth_failure(self):
        embedder = OpenAIEmbedder(api_key="bad", client=_client(lambda r: httpx.Response(401)))
        with pytest.raises(AuthenticationError):
            embedder.embed(["text"])

    def test_server_error(self):
        embedder = OpenAIEmbedder(api_key="sk", client=_client(lambda r: httpx.Response(500)))
        with pytest.raises(TransientError):
            embedder.embed(["text"])

    def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        embedder = OpenAIEmbedder(api_key="sk", client=_client(handler))
        with pytest.raises(TransientError):
            embedder.embed(["text"])

    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("too slow", request=request)

        embedder = OpenAIEmbedder(api_key="sk", client=_client(handler))
        with pytest.raises(TimeoutError):
            embedder.embed(["text"])

    def test_empty_input(self):
        with pytest.raises(ValueError):
            OpenAIEmbedder(api_key="sk").embed([])


class TestCohereEmbedder:
    """Tests for CohereEmbedder over a mocked transport."""

    def test_request(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"embeddings": [[0.1, 0.2, 0.3]]})

        embedder = CohereEmbedder(api_key="co-test", client=_client(handler))

        assert embedder.embed(["hello"]) == [[0.1, 0.2, 0.3]]
        assert seen["url"] == "https://api.cohere.ai/v1/embed"
        assert seen["body"] == {
            "texts": ["hello"],
            "model": "embed-english-v3.0",
            "input_type": "search_document",
        }
        assert embedder.dimension == 3

    def test_unavailable(self):
        embedder = CohereEmbedder(api_key="co", client=_client(lambda r: httpx.Response(503)))
        with pytest.raises(ServiceUnavailableError) as exc_info:
            embedder.embed(["hello"])
        assert exc_info.value.details["status_code"] == 503


class TestEmbedderFactory:
    """Tests for EmbedderFactory."""

    def test_create_mock(self):
        embedder = EmbedderFactory.create("mock", dimension=12)
        assert isinstance(embedder, MockEmbedder)
        assert embedder.dimension == 12

    def test_unknown_provider(self):
        with pytest.raises(ConfigurationError, match="Unknown embedding provider"):
            EmbedderFactory.create("word2vec")

    def test_register(self, monkeypatch):
        monkeypatch.setattr(EmbedderFactory, "_registry", dict(EmbedderFactory._registry))

        class ConstantEmbedder(BaseEmbedder):
            def embed(self, texts):
                return [[1.0] for _ in texts]

            @property
            def dimension(self):
                return 1

        EmbedderFactory.register("constant", ConstantEmbedder)

        assert "constant" in EmbedderFactory.list_types()
        assert EmbedderFactory.create("constant").embed(["a"]) == [[1.0]]

    def test_register_rejects_non_embedder(self):
        with pytest.raises(TypeError):
            EmbedderFactory.register("bad", dict)

    def test_from_settings(self):
        embedders = EmbedderFactory.from_settings(Settings(OPENAI_API_KEY="sk-test"))

        assert set(embedders) == {"mock", "openai"}
        assert embedders["openai"].api_key == "sk-test"

    def test_from_settings_without_keys(self):
        assert set(EmbedderFactory.from_settings(Settings())) == {"mock"}
