"""
Embedding providers and factories.
"""

from freshmarket_assistant.config import Settings, settings
from freshmarket_assistant.embeddings.base import BaseEmbeddingsClient, EmbeddingProvider
from freshmarket_assistant.embeddings.client import EmbeddingsClient
from freshmarket_assistant.embeddings.local import LocalEmbeddingsClient


def get_embeddings_client(config: Settings | None = None) -> BaseEmbeddingsClient:
    """
    Factory to obtain the configured embedding provider.
    """
    config = config or settings
    backend = config.embedding_backend.lower()
    if backend == "openai":
        return EmbeddingsClient(
            model=config.embedding_model_name,
            batch_size=config.embed_batch_size,
            timeout_sec=config.embedding_timeout_sec,
            api_key=config.openai_api_key.get_secret_value() if config.openai_api_key else None,
            base_url=config.openai_base_url,
        )
    if backend == "local":
        return LocalEmbeddingsClient(
            model=config.local_embedding_model,
            batch_size=config.embed_batch_size,
            timeout_sec=config.embedding_timeout_sec,
            load_timeout_sec=config.embedding_load_timeout_sec,
        )
    raise ValueError(f"Unsupported embedding backend: {backend}")


__all__ = [
    "BaseEmbeddingsClient",
    "EmbeddingProvider",
    "EmbeddingsClient",
    "LocalEmbeddingsClient",
    "get_embeddings_client",
]
