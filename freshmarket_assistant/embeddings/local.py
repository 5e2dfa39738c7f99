"""
On-device embeddings via sentence-transformers (install the ``local`` extra).
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, List

from freshmarket_assistant.config import settings
from freshmarket_assistant.embeddings.base import BaseEmbeddingsClient

DEFAULT_LOCAL_MODEL = settings.local_embedding_model

logger = logging.getLogger(__name__)


class LocalEmbeddingsClient(BaseEmbeddingsClient):
    def __init__(
        self,
        model: str = DEFAULT_LOCAL_MODEL,
        batch_size: int = settings.embed_batch_size,
        timeout_sec: float | None = settings.embedding_timeout_sec,
        load_timeout_sec: float | None = settings.embedding_load_timeout_sec,
    ) -> None:
        super().__init__(model, batch_size, timeout_sec, load_timeout_sec)

    def _load_model(self) -> Any:
        from sentence_transformers import SentenceTransformer

        logger.info("Loading sentence-transformers model", extra={"model": self.model})
        return SentenceTransformer(self.model)

    async def _load_backend(self) -> Any:
        # weights may be downloaded on first load
        return await asyncio.to_thread(self._load_model)

    async def _embed_batch(self, backend: Any, texts: List[str]) -> List[List[float]]:
        vectors = await asyncio.to_thread(
            backend.encode,
            texts,
            batch_size=self.batch_size,
            show_progress_bar=False,
            convert_to_numpy=True,
            normalize_embeddings=True,
        )
        return vectors.tolist()


__all__ = ["LocalEmbeddingsClient", "DEFAULT_LOCAL_MODEL"]
