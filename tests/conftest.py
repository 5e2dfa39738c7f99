"""Pytest fixtures for the shop assistant tests."""

from __future__ import annotations

import asyncio
import re
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, List

import pytest

from freshmarket_assistant.config import Settings
from freshmarket_assistant.container import ServiceContainer
from freshmarket_assistant.embeddings.base import BaseEmbeddingsClient
from freshmarket_assistant.llm.client import LLMClient
from freshmarket_assistant.rag.context import ContextAssembler
from freshmarket_assistant.rag.pipeline import ChatService
from freshmarket_assistant.rag.retrieval import RetrievalService
from freshmarket_assistant.vector_store.chroma_store import ChromaVectorStore

_TOKEN = re.compile(r"\w+", re.UNICODE)


class VocabularyBackend:
    """Bag-of-words "model": one dimension per distinct token, no collisions."""

    def __init__(self, dim: int) -> None:
        self.dim = dim
        self.vocabulary: Dict[str, int] = {}

    def encode(self, texts: List[str]) -> List[List[float]]:
        vectors = []
        for text in texts:
            vector = [0.0] * self.dim
            for token in _TOKEN.findall(text.lower()):
                if token not in self.vocabulary:
                    if len(self.vocabulary) >= self.dim:
                        raise RuntimeError("vocabulary exhausted")
                    self.vocabulary[token] = len(self.vocabulary)
                vector[self.vocabulary[token]] += 1.0
            vectors.append(vector)
        return vectors


class FakeEmbeddings(BaseEmbeddingsClient):
    def __init__(
        self,
        dim: int = 512,
        fail_load: bool = False,
        load_delay: float = 0.0,
        embed_delay: float = 0.0,
        timeout_sec: float | None = 5.0,
    ) -> None:
        super().__init__("fake-vocab", batch_size=16, timeout_sec=timeout_sec, load_timeout_sec=5.0)
        self.dim = dim
        self.fail_load = fail_load
        self.load_delay = load_delay
        self.embed_delay = embed_delay
        self.load_calls = 0
        self.embedded: List[str] = []

    async def _load_backend(self) -> Any:
        self.load_calls += 1
        await asyncio.sleep(self.load_delay)
        if self.fail_load:
            raise RuntimeError("model weights not found")
        return VocabularyBackend(self.dim)

    async def _embed_batch(self, backend: Any, texts: List[str]) -> List[List[float]]:
        if self.embed_delay:
            await asyncio.sleep(self.embed_delay)
        self.embedded.extend(texts)
        return backend.encode(texts)


class InMemoryCatalog:
    def __init__(self, products: List[Dict[str, Any]], categories: Dict[str, str] | None = None) -> None:
        self.products = products
        self.categories = categories or {}

    def list_products(self) -> List[Dict[str, Any]]:
        return list(self.products)

    def resolve_category(self, category_id: str) -> str | None:
        return self.categories.get(category_id)


def make_chunk(content: str | None, with_choice: bool = True) -> SimpleNamespace:
    if not with_choice:
        return SimpleNamespace(choices=[])
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


class FakeStream:
    def __init__(self, fragments: List[str], fail_after: int | None = None) -> None:
        self.fragments = fragments
        self.fail_after = fail_after
        self.closed = False
        self.consumed = 0

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        yield make_chunk(None, with_choice=False)
        for index, fragment in enumerate(self.fragments):
            if self.fail_after is not None and index == self.fail_after:
                raise RuntimeError("connection reset by peer")
            self.consumed += 1
            yield make_chunk(fragment)
        yield make_chunk(None)

    async def close(self) -> None:
        self.closed = True


class FakeCompletions:
    def __init__(
        self,
        fragments: List[str] | None = None,
        error: Exception | None = None,
        fail_after: int | None = None,
    ) -> None:
        self.fragments = fragments or []
        self.error = error
        self.fail_after = fail_after
        self.calls: List[Dict[str, Any]] = []
        self.streams: List[FakeStream] = []

    async def create(self, **kwargs: Any) -> FakeStream:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        stream = FakeStream(self.fragments, fail_after=self.fail_after)
        self.streams.append(stream)
        return stream


class FakeOpenAI:
    def __init__(self, **kwargs: Any) -> None:
        self.completions = FakeCompletions(**kwargs)
        self.chat = SimpleNamespace(completions=self.completions)


FIXTURE_PRODUCTS: List[Dict[str, Any]] = [
    {"id": "p-olma", "name": "Olma", "description": "Namangan qizil olmasi", "price": 15000,
     "category_id": "c-meva", "stock": 100, "unit": "kg"},
    {"id": "p-banan", "name": "Banan", "description": "Ekvador banani", "price": 25000,
     "category_id": "c-meva", "stock": 80, "unit": "kg"},
    {"id": "p-pomidor", "name": "Pomidor", "description": "Issiqxona pomidori", "price": 12000,
     "category_id": "c-sabzavot", "stock": 150, "unit": "kg"},
]

FIXTURE_CATEGORIES = {"c-meva": "Mevalar", "c-sabzavot": "Sabzavotlar"}


@pytest.fixture
def embeddings() -> FakeEmbeddings:
    return FakeEmbeddings()


@pytest.fixture
def catalog() -> InMemoryCatalog:
    return InMemoryCatalog([dict(p) for p in FIXTURE_PRODUCTS], dict(FIXTURE_CATEGORIES))


@pytest.fixture
def index_dir(tmp_path: Path) -> Path:
    return tmp_path / "vector_store"


@pytest.fixture
def store(index_dir: Path) -> ChromaVectorStore:
    return ChromaVectorStore(persist_directory=str(index_dir), index_name="products")


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    return Settings(
        OPENAI_API_KEY="sk-test",
        VECTOR_STORE_PATH=str(tmp_path / "vector_store"),
        CATALOG_PATH=str(tmp_path / "catalog.json"),
        ADMIN_TOKEN="secret-token",
        RETRIEVAL_TOP_K=3,
    )


@pytest.fixture
def make_services(store: ChromaVectorStore, embeddings: FakeEmbeddings, test_settings: Settings):
    def _make(llm_backend: FakeOpenAI | None = None) -> ServiceContainer:
        llm_client = LLMClient(model="test-model", temperature=0.7, timeout_sec=5.0, client=llm_backend or FakeOpenAI())
        retrieval = RetrievalService(store, embeddings, top_k=3)
        assembler = ContextAssembler(max_turns=20, max_chars=8000)
        chat = ChatService(retrieval, assembler, llm_client)
        return ServiceContainer(
            settings=test_settings,
            embeddings=embeddings,
            vector_store=store,
            llm_client=llm_client,
            retrieval=retrieval,
            assembler=assembler,
            chat=chat,
        )

    return _make
