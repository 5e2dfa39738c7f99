"""
OpenAI embeddings client.
"""

from __future__ import annotations

from typing import Any, List

from openai import AsyncOpenAI

from freshmarket_assistant.config import settings
from freshmarket_assistant.embeddings.base import BaseEmbeddingsClient

DEFAULT_EMBEDDING_MODEL = settings.embedding_model_name
DEFAULT_EMBED_BATCH_SIZE = settings.embed_batch_size


class EmbeddingsClient(BaseEmbeddingsClient):
    def __init__(
        self,
        model: str = DEFAULT_EMBEDDING_MODEL,
        batch_size: int = DEFAULT_EMBED_BATCH_SIZE,
        timeout_sec: float | None = settings.embedding_timeout_sec,
        client: AsyncOpenAI | None = None,
        api_key: str | None = None,
        base_url: str | None = None,
    ) -> None:
        super().__init__(model, batch_size, timeout_sec, load_timeout_sec=timeout_sec)
        self._client = client
        self._api_key = api_key or (settings.openai_api_key.get_secret_value() if settings.openai_api_key else None)
        self._base_url = base_url or settings.openai_base_url

    async def _load_backend(self) -> AsyncOpenAI:
        if self._client is not None:
            return self._client
        return AsyncOpenAI(api_key=self._api_key, base_url=self._base_url, timeout=self.timeout_sec)

    async def _embed_batch(self, backend: Any, texts: List[str]) -> List[List[float]]:
        response = await backend.embeddings.create(model=self.model, input=texts)
        return [item.embedding for item in sorted(response.data, key=lambda item: item.index)]


__all__ = ["EmbeddingsClient", "DEFAULT_EMBEDDING_MODEL", "DEFAULT_EMBED_BATCH_SIZE"]
