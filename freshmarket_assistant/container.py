"""
Process-lifetime services, built once at startup and shared by all requests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from freshmarket_assistant.config import Settings, settings
from freshmarket_assistant.embeddings import get_embeddings_client
from freshmarket_assistant.embeddings.base import BaseEmbeddingsClient
from freshmarket_assistant.errors import EmbeddingUnavailable
from freshmarket_assistant.indexing.pipeline import CatalogSyncService
from freshmarket_assistant.llm.client import LLMClient
from freshmarket_assistant.rag.context import ContextAssembler
from freshmarket_assistant.rag.pipeline import ChatService
from freshmarket_assistant.rag.retrieval import RetrievalService
from freshmarket_assistant.vector_store import get_vector_store
from freshmarket_assistant.vector_store.base import VectorStore

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    settings: Settings
    embeddings: BaseEmbeddingsClient
    vector_store: VectorStore
    llm_client: LLMClient
    retrieval: RetrievalService
    assembler: ContextAssembler
    chat: ChatService

    def sync_service(self, show_progress: bool = False) -> CatalogSyncService:
        return CatalogSyncService(
            self.vector_store,
            self.embeddings,
            embed_batch=self.settings.embed_batch_size,
            default_category=self.settings.default_category,
            show_progress=show_progress,
        )

    async def warmup(self) -> bool:
        """Load the embedding model up front; False means the service runs degraded."""
        try:
            await self.embeddings.ensure_loaded()
        except EmbeddingUnavailable:
            logger.error("Embedding model unavailable at startup", extra={"model": self.embeddings.model})
            return False
        return True


def build_services(config: Settings | None = None) -> ServiceContainer:
    config = config or settings
    embeddings = get_embeddings_client(config)
    vector_store = get_vector_store(config)
    llm_client = LLMClient(
        model=config.llm_model_name,
        temperature=config.llm_temperature,
        timeout_sec=config.llm_timeout_sec,
        api_key=config.openai_api_key.get_secret_value() if config.openai_api_key else None,
        base_url=config.openai_base_url,
    )
    retrieval = RetrievalService(vector_store, embeddings, top_k=config.retrieval_top_k)
    assembler = ContextAssembler(max_turns=config.max_history_turns, max_chars=config.max_history_chars)
    chat = ChatService(retrieval, assembler, llm_client, quantity_followup=config.quantity_followup_retrieval)
    return ServiceContainer(
        settings=config,
        embeddings=embeddings,
        vector_store=vector_store,
        llm_client=llm_client,
        retrieval=retrieval,
        assembler=assembler,
        chat=chat,
    )


__all__ = ["ServiceContainer", "build_services"]
