"""
Indexing pipeline: pull the catalog, map products to index records, embed and rebuild the vector index.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from pydantic import ValidationError
from tqdm import tqdm

from freshmarket_assistant.catalog.base import CatalogSource
from freshmarket_assistant.config import settings
from freshmarket_assistant.embeddings.base import EmbeddingProvider
from freshmarket_assistant.errors import IndexBuildPartialFailure
from freshmarket_assistant.models.schemas import ProductRecord, SourceProduct
from freshmarket_assistant.vector_store.base import IndexedProduct, VectorStore

DEFAULT_CATEGORY = settings.default_category

logger = logging.getLogger(__name__)


def _validation_reason(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "invalid record"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg', 'invalid')}" if location else first.get("msg", "invalid")


def map_catalog(
    catalog: CatalogSource,
    default_category: str = DEFAULT_CATEGORY,
) -> Tuple[List[ProductRecord], List[Tuple[str, str]]]:
    """
    Map raw catalog products to index records.

    Returns the records and a list of ``(source_id, reason)`` for skipped
    entries. An unknown category falls back to ``default_category``.
    """
    records: List[ProductRecord] = []
    skipped: List[Tuple[str, str]] = []
    seen: set[str] = set()
    category_cache: Dict[str, str | None] = {}

    for position, raw in enumerate(catalog.list_products()):
        source_id = _raw_id(raw, position)
        try:
            source = SourceProduct.model_validate(raw)
        except ValidationError as exc:
            skipped.append((source_id, _validation_reason(exc)))
            continue

        if source.id in seen:
            skipped.append((source.id, "duplicate id"))
            continue

        category = None
        if source.category_id:
            if source.category_id not in category_cache:
                category_cache[source.category_id] = catalog.resolve_category(source.category_id)
            category = category_cache[source.category_id]
            if category is None:
                logger.warning(
                    "Unknown category, using default label",
                    extra={"source_id": source.id, "category_id": source.category_id},
                )
        category = category or source.category or default_category

        try:
            record = ProductRecord(
                id=source.id,
                name=source.name,
                description=source.description,
                price=source.price,
                category=category,
                stock=source.stock,
                unit=source.unit or "dona",
            )
        except ValidationError as exc:
            skipped.append((source.id, _validation_reason(exc)))
            continue

        seen.add(record.id)
        records.append(record)

    for source_id, reason in skipped:
        logger.warning("Skipped catalog record", extra={"source_id": source_id, "reason": reason})
    return records, skipped


def _raw_id(raw: Any, position: int) -> str:
    if isinstance(raw, dict):
        value = raw.get("id", raw.get("_id"))
        if value is not None:
            return str(value)
    return f"#{position}"


@dataclass
class SyncSummary:
    indexed: int
    elapsed_sec: float
    skipped: List[Tuple[str, str]] = field(default_factory=list)

    def raise_for_failures(self) -> None:
        if self.skipped:
            raise IndexBuildPartialFailure(self.skipped)


class CatalogSyncService:
    """Full rebuild of the product index from the catalog; safe to re-run."""

    def __init__(
        self,
        vector_store: VectorStore,
        embeddings_client: EmbeddingProvider,
        embed_batch: int = settings.embed_batch_size,
        default_category: str = DEFAULT_CATEGORY,
        show_progress: bool = False,
        logger_: logging.Logger | None = None,
    ) -> None:
        self.vector_store = vector_store
        self.embeddings_client = embeddings_client
        self.embed_batch = embed_batch
        self.default_category = default_category
        self.show_progress = show_progress
        self.logger = logger_ or logging.getLogger(__name__)

    async def sync(self, catalog: CatalogSource) -> SyncSummary:
        started = time.time()
        records, skipped = map_catalog(catalog, default_category=self.default_category)
        self.logger.info("Mapped catalog", extra={"records": len(records), "skipped": len(skipped)})

        texts = [record.embedding_text() for record in records]
        vectors: List[List[float]] = []
        for i in tqdm(
            range(0, len(texts), self.embed_batch),
            desc="Embedding",
            unit="batch",
            disable=not self.show_progress,
        ):
            vectors.extend(await self.embeddings_client.embed_texts(texts[i : i + self.embed_batch]))

        indexed = [
            IndexedProduct(record=record, text=text, vector=vector)
            for record, text, vector in zip(records, texts, vectors)
        ]
        info = await asyncio.to_thread(self.vector_store.rebuild, indexed)

        elapsed = time.time() - started
        self.logger.info(
            "Catalog sync completed",
            extra={
                "indexed": info.count,
                "skipped": len(skipped),
                "collection": info.collection,
                "elapsed_sec": round(elapsed, 2),
            },
        )
        return SyncSummary(indexed=info.count, elapsed_sec=elapsed, skipped=skipped)


__all__ = ["map_catalog", "CatalogSyncService", "SyncSummary", "DEFAULT_CATEGORY"]
