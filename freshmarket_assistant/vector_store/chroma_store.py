"""
Chroma-based VectorStore implementation.

Every rebuild writes a fresh collection ("generation") and only then points
``<index>.current.json`` at it, so readers see either the old or the new
index, never a half-written one.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Sequence, Tuple

import chromadb
from chromadb.errors import ChromaError

from freshmarket_assistant.config import settings
from freshmarket_assistant.errors import IndexAbsent
from freshmarket_assistant.models.schemas import ProductRecord
from freshmarket_assistant.vector_store.base import IndexedProduct, IndexInfo, ScoredProduct, VectorStore

CHROMA_PERSIST_DIR = settings.vector_store_path
DEFAULT_INDEX_NAME = settings.index_name
POINTER_SUFFIX = ".current.json"
ADD_BATCH_SIZE = 256

logger = logging.getLogger(__name__)


class ChromaVectorStore(VectorStore):
    def __init__(self, persist_directory: str | None = None, index_name: str = DEFAULT_INDEX_NAME) -> None:
        self.persist_directory = persist_directory or CHROMA_PERSIST_DIR
        self.index_name = index_name
        Path(self.persist_directory).mkdir(parents=True, exist_ok=True)
        self.client = chromadb.PersistentClient(path=self.persist_directory)

        self._lock = threading.RLock()
        self._build_lock = threading.Lock()
        self._collection: Any = None
        self._info: IndexInfo | None = None
        self._pointer_mtime: int | None = None
        self._readers: Dict[str, int] = {}
        logger.info(
            "ChromaVectorStore initialised",
            extra={"persist_directory": self.persist_directory, "index": self.index_name},
        )

    @property
    def pointer_path(self) -> Path:
        return Path(self.persist_directory) / f"{self.index_name}{POINTER_SUFFIX}"

    # --- Pointer file ---
    def _pointer_stat(self) -> int | None:
        try:
            return self.pointer_path.stat().st_mtime_ns
        except FileNotFoundError:
            return None

    def _read_pointer(self) -> Dict[str, Any] | None:
        try:
            return json.loads(self.pointer_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError):
            logger.warning("Index pointer unreadable, treating index as absent", extra={"path": str(self.pointer_path)})
            return None

    def _write_pointer(self, info: IndexInfo) -> None:
        fd, tmp_path = tempfile.mkstemp(dir=self.persist_directory, prefix=f".{self.index_name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(info.as_dict(), fh)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, self.pointer_path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    # --- Live generation ---
    def _current(self) -> Tuple[Any, IndexInfo] | None:
        mtime = self._pointer_stat()
        with self._lock:
            if mtime is None:
                return None
            if self._collection is not None and self._info is not None and mtime == self._pointer_mtime:
                return self._collection, self._info

        pointer = self._read_pointer()
        if not pointer:
            return None
        try:
            collection = self.client.get_collection(pointer["collection"])
        except (KeyError, ValueError, ChromaError):
            logger.warning("Index pointer references a missing collection", extra={"pointer": pointer})
            return None

        info = IndexInfo(
            collection=pointer["collection"],
            build_id=pointer.get("build_id", ""),
            built_at=pointer.get("built_at", ""),
            count=collection.count(),
            dimension=pointer.get("dimension"),
        )
        with self._lock:
            self._collection, self._info, self._pointer_mtime = collection, info, mtime
            return self._collection, self._info

    def open(self) -> IndexInfo | None:
        """Return the live index handle, or None if no index was ever built."""
        current = self._current()
        return current[1] if current else None

    def describe(self) -> IndexInfo:
        current = self._current()
        if current is None:
            raise IndexAbsent(f"Index {self.index_name!r} has not been built in {self.persist_directory}")
        collection, info = current
        return IndexInfo(
            collection=info.collection,
            build_id=info.build_id,
            built_at=info.built_at,
            count=collection.count(),
            dimension=info.dimension,
        )

    # --- Rebuild ---
    def rebuild(self, products: Sequence[IndexedProduct]) -> IndexInfo:
        dimensions = {len(p.vector) for p in products}
        if len(dimensions) > 1:
            raise ValueError(f"Mixed vector dimensions in rebuild: {sorted(dimensions)}")
        dimension = dimensions.pop() if dimensions else None

        with self._build_lock:
            build_id = uuid.uuid4().hex[:12]
            name = f"{self.index_name}-{build_id}"
            built_at = datetime.now(timezone.utc).isoformat(timespec="seconds")
            metadata: Dict[str, Any] = {"hnsw:space": "cosine", "build_id": build_id, "built_at": built_at}
            if dimension is not None:
                metadata["dimension"] = dimension

            previous = self._current()
            collection = self.client.create_collection(name=name, metadata=metadata)
            try:
                for i in range(0, len(products), ADD_BATCH_SIZE):
                    batch = products[i : i + ADD_BATCH_SIZE]
                    collection.add(
                        ids=[p.record.id for p in batch],
                        embeddings=[list(p.vector) for p in batch],
                        metadatas=[p.record.to_metadata() for p in batch],
                        documents=[p.text for p in batch],
                    )
            except Exception:
                logger.exception("Index build failed, discarding new generation", extra={"collection": name})
                self.client.delete_collection(name)
                raise

            info = IndexInfo(
                collection=name,
                build_id=build_id,
                built_at=built_at,
                count=len(products),
                dimension=dimension,
            )
            self._write_pointer(info)
            with self._lock:
                self._collection, self._info, self._pointer_mtime = collection, info, self._pointer_stat()

            keep = {name}
            if previous is not None:
                keep.add(previous[1].collection)
            self._prune_generations(keep)

        logger.info(
            "Index rebuilt",
            extra={"collection": name, "count": info.count, "dimension": dimension},
        )
        return info

    def _generation_names(self) -> List[str]:
        names = [getattr(c, "name", c) for c in self.client.list_collections()]
        prefix = f"{self.index_name}-"
        return [n for n in names if isinstance(n, str) and n.startswith(prefix)]

    def _prune_generations(self, keep: set[str]) -> None:
        with self._lock:
            # a generation still being read is dropped by a later rebuild
            keep = keep | set(self._readers)
        for name in self._generation_names():
            if name in keep:
                continue
            try:
                self.client.delete_collection(name)
                logger.info("Dropped stale index generation", extra={"collection": name})
            except (ValueError, ChromaError):
                logger.warning("Could not drop stale index generation", extra={"collection": name})

    # --- Queries ---
    @contextmanager
    def _reading(self) -> Iterator[Tuple[Any, IndexInfo] | None]:
        """Pin the live generation so pruning leaves it alone until the read is done."""
        with self._lock:
            current = self._current()
            if current is None:
                name = None
            else:
                name = current[1].collection
                self._readers[name] = self._readers.get(name, 0) + 1
        try:
            yield current
        finally:
            if name is not None:
                with self._lock:
                    self._readers[name] -= 1
                    if not self._readers[name]:
                        del self._readers[name]

    def search(self, query_embedding: Sequence[float], top_k: int) -> List[ScoredProduct]:
        if top_k <= 0:
            return []

        with self._reading() as current:
            if current is None:
                return []
            collection, info = current
            return self._query(collection, info, query_embedding, top_k)

    @staticmethod
    def _query(collection: Any, info: IndexInfo, query_embedding: Sequence[float], top_k: int) -> List[ScoredProduct]:
        if info.dimension is not None and len(query_embedding) != info.dimension:
            raise ValueError(
                f"Query vector dimension {len(query_embedding)} does not match index dimension {info.dimension}"
            )

        total = collection.count()
        if total == 0:
            return []

        result = collection.query(
            query_embeddings=[list(query_embedding)],
            n_results=min(top_k, total),
            include=["metadatas", "distances"],
        )

        metadatas = (result.get("metadatas") or [[]])[0] or []
        distances = (result.get("distances") or [[]])[0] or []

        hits: List[ScoredProduct] = []
        for metadata, distance in zip(metadatas, distances):
            record = ProductRecord.from_metadata(metadata or {})
            # cosine space: distance = 1 - cosine similarity
            hits.append(ScoredProduct(record=record, score=1.0 - float(distance)))

        hits.sort(key=lambda h: h.score, reverse=True)
        return hits

    def list_products(self, limit: int, offset: int = 0) -> List[ProductRecord]:
        with self._reading() as current:
            if current is None:
                return []
            collection, _ = current
            result = collection.get(include=["metadatas"], limit=limit, offset=offset)
        return [ProductRecord.from_metadata(meta) for meta in (result.get("metadatas") or []) if meta]


__all__ = ["ChromaVectorStore", "CHROMA_PERSIST_DIR", "DEFAULT_INDEX_NAME", "POINTER_SUFFIX"]
