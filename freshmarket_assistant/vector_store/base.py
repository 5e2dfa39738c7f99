"""
Vector store interface and shared types.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Protocol, Sequence

from freshmarket_assistant.models.schemas import ProductRecord


@dataclass
class IndexedProduct:
    record: ProductRecord
    text: str
    vector: List[float]


@dataclass
class ScoredProduct:
    record: ProductRecord
    score: float


@dataclass(frozen=True)
class IndexInfo:
    """Handle describing the live index generation."""

    collection: str
    build_id: str
    built_at: str
    count: int
    dimension: int | None = None

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


class VectorStore(Protocol):
    def open(self) -> IndexInfo | None:
        ...

    def describe(self) -> IndexInfo:
        ...

    def rebuild(self, products: Sequence[IndexedProduct]) -> IndexInfo:
        ...

    def search(self, query_embedding: Sequence[float], top_k: int) -> List[ScoredProduct]:
        ...

    def list_products(self, limit: int, offset: int = 0) -> List[ProductRecord]:
        ...


__all__ = ["IndexedProduct", "ScoredProduct", "IndexInfo", "VectorStore"]
