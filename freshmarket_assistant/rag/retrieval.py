"""
Retrieval service: embed the user's utterance and fetch the nearest products.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List

from freshmarket_assistant.config import settings
from freshmarket_assistant.embeddings.base import EmbeddingProvider
from freshmarket_assistant.models.schemas import ProductRecord
from freshmarket_assistant.vector_store.base import ScoredProduct, VectorStore

DEFAULT_TOP_K = settings.retrieval_top_k

logger = logging.getLogger(__name__)


def normalize_query(text: str) -> str:
    """Trim and collapse whitespace/newlines."""
    return " ".join(text.strip().split())


class RetrievalService:
    def __init__(
        self,
        vector_store: VectorStore,
        embeddings_client: EmbeddingProvider,
        top_k: int = DEFAULT_TOP_K,
        logger_: logging.Logger | None = None,
    ) -> None:
        self.vector_store = vector_store
        self.embeddings_client = embeddings_client
        self.top_k = top_k
        self.logger = logger_ or logger

    async def retrieve(self, query: str, k: int | None = None) -> List[ProductRecord]:
        """Top-k products for ``query``, most similar first."""
        return [hit.record for hit in await self.retrieve_scored(query, k)]

    async def retrieve_scored(self, query: str, k: int | None = None) -> List[ScoredProduct]:
        k = self.top_k if k is None else k
        if k <= 0:
            raise ValueError(f"k must be a positive integer, got {k}")

        query = normalize_query(query)
        if not query:
            return []

        info = await asyncio.to_thread(self.vector_store.open)
        if info is None:
            self.logger.warning("Product index absent, answering without product context")
            return []

        embedding = await self.embeddings_client.embed_text(query)
        hits = await asyncio.to_thread(self.vector_store.search, embedding, k)
        self.logger.info(
            "Retrieved products",
            extra={
                "requested": k,
                "returned": len(hits),
                "top_score": round(hits[0].score, 3) if hits else None,
                "results": [{"id": h.record.id, "score": round(h.score, 3)} for h in hits],
            },
        )
        return hits


__all__ = ["RetrievalService", "normalize_query", "DEFAULT_TOP_K"]
