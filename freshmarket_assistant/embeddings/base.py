"""
Embedding provider interface and the shared lazy-loading machinery.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Protocol, Sequence

import numpy as np

from freshmarket_assistant.errors import EmbeddingUnavailable

logger = logging.getLogger(__name__)


class EmbeddingProvider(Protocol):
    model: str

    async def embed_texts(self, texts: Sequence[str]) -> List[List[float]]:
        ...

    async def embed_text(self, text: str) -> List[float]:
        ...


def l2_normalize(vectors: Sequence[Sequence[float]]) -> List[List[float]]:
    """Scale each vector to unit length; zero vectors are left as-is."""
    matrix = np.asarray(vectors, dtype=np.float32)
    if matrix.ndim != 2:
        raise ValueError(f"Expected a 2-D batch of vectors, got shape {matrix.shape}")
    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    norms[norms == 0] = 1.0
    return (matrix / norms).tolist()


class BaseEmbeddingsClient:
    """
    Loads its backend on first use, at most once per instance.

    Concurrent first callers wait on the same initialisation. A failed load is
    remembered: every later call raises ``EmbeddingUnavailable`` with the
    original error as its cause.
    """

    def __init__(
        self,
        model: str,
        batch_size: int,
        timeout_sec: float | None,
        load_timeout_sec: float | None,
    ) -> None:
        self.model = model
        self.batch_size = batch_size
        self.timeout_sec = timeout_sec
        self.load_timeout_sec = load_timeout_sec
        self.dimension: int | None = None
        self._backend: Any = None
        self._load_error: BaseException | None = None
        self._init_lock = asyncio.Lock()

    async def _load_backend(self) -> Any:
        raise NotImplementedError

    async def _embed_batch(self, backend: Any, texts: List[str]) -> List[List[float]]:
        raise NotImplementedError

    @property
    def loaded(self) -> bool:
        return self._backend is not None

    @property
    def load_failed(self) -> bool:
        return self._load_error is not None

    async def ensure_loaded(self) -> Any:
        if self._backend is not None:
            return self._backend

        async with self._init_lock:
            if self._backend is not None:
                return self._backend
            if self._load_error is not None:
                raise EmbeddingUnavailable(f"Embedding model {self.model!r} is unavailable") from self._load_error
            try:
                self._backend = await asyncio.wait_for(self._load_backend(), timeout=self.load_timeout_sec)
            except Exception as exc:
                self._load_error = exc
                logger.exception("Embedding model failed to load", extra={"model": self.model})
                raise EmbeddingUnavailable(f"Embedding model {self.model!r} failed to load") from exc
            logger.info("Embedding model ready", extra={"model": self.model})
            return self._backend

    async def embed_texts(self, texts: Sequence[str]) -> List[List[float]]:
        if not texts:
            return []

        backend = await self.ensure_loaded()
        embeddings: List[List[float]] = []
        for i in range(0, len(texts), self.batch_size):
            batch = list(texts[i : i + self.batch_size])
            try:
                raw = await asyncio.wait_for(self._embed_batch(backend, batch), timeout=self.timeout_sec)
                if len(raw) != len(batch):
                    raise ValueError(f"Backend returned {len(raw)} vectors for {len(batch)} inputs")
                vectors = l2_normalize(raw)
            except Exception as exc:
                logger.error(
                    "Embedding batch failed",
                    extra={"model": self.model, "offset": i, "count": len(batch), "error": repr(exc)},
                )
                raise EmbeddingUnavailable(f"Embedding model {self.model!r} failed on a batch") from exc
            self._check_dimension(vectors)
            embeddings.extend(vectors)
        return embeddings

    async def embed_text(self, text: str) -> List[float]:
        vectors = await self.embed_texts([text])
        return vectors[0] if vectors else []

    def _check_dimension(self, vectors: List[List[float]]) -> None:
        if not vectors:
            return
        dim = len(vectors[0])
        if self.dimension is None:
            self.dimension = dim
        elif dim != self.dimension:
            raise EmbeddingUnavailable(
                f"Embedding dimension changed from {self.dimension} to {dim} for model {self.model!r}"
            )


__all__ = ["EmbeddingProvider", "BaseEmbeddingsClient", "l2_normalize"]
