"""
OpenAI chat LLM client with incremental (streamed) output.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncGenerator, Dict, List, Sequence

from openai import AsyncOpenAI

from freshmarket_assistant.config import settings
from freshmarket_assistant.errors import GenerationBackendError, GenerationStreamInterrupted
from freshmarket_assistant.models.schemas import ChatTurn

DEFAULT_LLM_MODEL = settings.llm_model_name
DEFAULT_TEMPERATURE = settings.llm_temperature
DEFAULT_TIMEOUT_SEC = settings.llm_timeout_sec
FALLBACK_MESSAGE = "Uzr, tizimda vaqtinchalik xatolik yuz berdi."

logger = logging.getLogger(__name__)


class LLMClient:
    def __init__(
        self,
        model: str = DEFAULT_LLM_MODEL,
        temperature: float = DEFAULT_TEMPERATURE,
        timeout_sec: float | None = DEFAULT_TIMEOUT_SEC,
        client: AsyncOpenAI | None = None,
        api_key: str | None = None,
        base_url: str | None = None,
        fallback_message: str = FALLBACK_MESSAGE,
    ) -> None:
        self.model = model
        self.temperature = temperature
        self.timeout_sec = timeout_sec
        self.fallback_message = fallback_message
        self._client = client
        self._api_key = api_key or (settings.openai_api_key.get_secret_value() if settings.openai_api_key else None)
        self._base_url = base_url or settings.openai_base_url

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self._api_key, base_url=self._base_url, timeout=self.timeout_sec)
        return self._client

    async def _open_stream(self, messages: List[Dict[str, Any]]) -> Any:
        try:
            client = self._get_client()
            return await asyncio.wait_for(
                client.chat.completions.create(
                    model=self.model,
                    temperature=self.temperature,
                    messages=messages,
                    stream=True,
                ),
                timeout=self.timeout_sec,
            )
        except Exception as exc:
            raise GenerationBackendError(f"Generation backend rejected the request: {exc!r}") from exc

    @staticmethod
    async def _relay(response: Any) -> AsyncGenerator[str, None]:
        try:
            async for chunk in response:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta
                content = getattr(delta, "content", None) if delta is not None else None
                if content:
                    yield content
        except Exception as exc:
            raise GenerationStreamInterrupted(f"Generation stream ended abnormally: {exc!r}") from exc

    @staticmethod
    async def _release(response: Any) -> None:
        close = getattr(response, "close", None)
        if close is None:
            return
        try:
            await close()
        except Exception:
            logger.warning("Failed to close generation stream", exc_info=True)

    async def stream(self, context: Sequence[ChatTurn]) -> AsyncGenerator[str, None]:
        """
        Yield reply fragments in emission order.

        A backend failure before the first fragment yields the fallback
        message once. A failure after that ends the stream; fragments already
        sent stand. Closing this generator early closes the upstream stream.
        """
        messages = [turn.model_dump() for turn in context]
        try:
            response = await self._open_stream(messages)
        except GenerationBackendError:
            logger.exception("Generation failed before output", extra={"model": self.model, "turns": len(messages)})
            yield self.fallback_message
            return

        produced = 0
        relay = self._relay(response)
        try:
            async for fragment in relay:
                produced += 1
                yield fragment
        except GenerationStreamInterrupted:
            logger.warning(
                "Generation stream interrupted",
                extra={"model": self.model, "fragments_sent": produced},
                exc_info=True,
            )
            if not produced:
                yield self.fallback_message
        finally:
            await self._release(response)
            await relay.aclose()

        logger.info("Generation completed", extra={"model": self.model, "fragments": produced})


__all__ = ["LLMClient", "DEFAULT_LLM_MODEL", "DEFAULT_TEMPERATURE", "FALLBACK_MESSAGE"]
