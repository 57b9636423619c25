"""Embedder factory for creating embedder instances."""

from typing import Any

from loguru import logger

from kbforge.config.settings import Settings
from kbforge.embedder.base import BaseEmbedder
from kbforge.embedder.providers import CohereEmbedder, MockEmbedder, OpenAIEmbedder
from kbforge.errors import ConfigurationError


class EmbedderFactory:
    """Factory for creating embedder instances by provider name.

    Provider names are the values stored in a bot's embedding configuration.
    """

    _registry: dict[str, type[BaseEmbedder]] = {
        "openai": OpenAIEmbedder,
        "cohere": CohereEmbedder,
        "mock": MockEmbedder,
    }

    @classmethod
    def create(cls, provider: str, **params: Any) -> BaseEmbedder:
        """Create an embedder instance by provider name.

        Raises:
            ConfigurationError: If the provider is not registered
        """
        if provider not in cls._registry:
            available = ", ".join(cls._registry.keys())
            raise ConfigurationError(
                f"Unknown embedding provider: '{provider}'. Available providers: {available}",
                details={"provider": provider},
            )

        embedder_class = cls._registry[provider]
        logger.debug(f"Creating {embedder_class.__name__}")
        return embedder_class(**params)

    @classmethod
    def register(cls, provider: str, embedder_class: type[BaseEmbedder]) -> None:
        if not issubclass(embedder_class, BaseEmbedder):
            raise TypeError(f"{embedder_class.__name__} must be a subclass of BaseEmbedder")

        cls._registry[provider] = embedder_class
        logger.info(f"Registered embedding provider '{provider}': {embedder_class.__name__}")

    @classmethod
    def list_types(cls) -> list[str]:
        return list(cls._registry.keys())

    @classmethod
    def from_settings(cls, settings: Settings) -> dict[str, BaseEmbedder]:
        """Build every provider the settings carry credentials for.

        The mock provider is always available.
        """
        embedders: dict[str, BaseEmbedder] = {"mock": cls.create("mock")}
        if settings.OPENAI_API_KEY:
            embedders["openai"] = cls.create(
                "openai",
                api_key=settings.OPENAI_API_KEY,
                model=settings.OPENAI_EMBEDDING_MODEL,
                base_url=settings.OPENAI_BASE_URL,
            )
        if settings.COHERE_API_KEY:
            embedders["cohere"] = cls.create("cohere", api_key=settings.COHERE_API_KEY)
        return embedders
