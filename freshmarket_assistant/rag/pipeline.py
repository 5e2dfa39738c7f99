"""
Chat pipeline: retrieve products for the user's message, assemble the context, stream the reply.
"""

from __future__ import annotations

import logging
from typing import AsyncGenerator, List, Sequence

from freshmarket_assistant.config import settings
from freshmarket_assistant.llm.client import LLMClient
from freshmarket_assistant.models.schemas import ChatRequest, ChatTurn
from freshmarket_assistant.rag.context import ContextAssembler, is_quantity_expression, last_product_turn
from freshmarket_assistant.rag.retrieval import RetrievalService, normalize_query

logger = logging.getLogger(__name__)


class ChatService:
    """Chat turn orchestration over retrieval and the streamed reply."""

    def __init__(
        self,
        retrieval: RetrievalService,
        assembler: ContextAssembler,
        llm_client: LLMClient,
        quantity_followup: bool = settings.quantity_followup_retrieval,
        logger_: logging.Logger | None = None,
    ) -> None:
        self.retrieval = retrieval
        self.assembler = assembler
        self.llm_client = llm_client
        self.quantity_followup = quantity_followup
        self.logger = logger_ or logger

    def retrieval_query(self, message: str, history: Sequence[ChatTurn]) -> str:
        """
        Text to search products with. A bare amount ("2 kg") carries no product
        name, so the last user turn that named something is searched along with
        it; earlier bare amounts are skipped.
        """
        if self.quantity_followup and is_quantity_expression(message):
            previous = last_product_turn(history)
            if previous is not None:
                return f"{normalize_query(previous.content)} {message}"
        return message

    async def build_context(self, message: str, history: Sequence[ChatTurn]) -> List[ChatTurn]:
        products = await self.retrieval.retrieve(self.retrieval_query(message, history))
        return self.assembler.assemble(message, products, history)

    async def stream_reply(self, request: ChatRequest) -> AsyncGenerator[str, None]:
        message = normalize_query(request.message)
        try:
            context = await self.build_context(message, request.history)
        except Exception:
            # the user only ever sees the fixed apology
            self.logger.exception(
                "Context preparation failed",
                extra={"stage": "retrieval", "len": len(message), "history": len(request.history)},
            )
            yield self.llm_client.fallback_message
            return

        stream = self.llm_client.stream(context)
        try:
            async for fragment in stream:
                yield fragment
        finally:
            await stream.aclose()


__all__ = ["ChatService"]
