from kbforge.gateway.base import BaseEmbeddingGateway, BatchProgressCallback
from kbforge.gateway.embedding_gateway import EmbeddingGateway

__all__ = ["BaseEmbeddingGateway", "BatchProgressCallback", "EmbeddingGateway"]
