"""
Catalog source backed by a JSON snapshot exported from the product store.

Expected layout:

    {
      "categories": [{"id": "c1", "name": "Mevalar"}],
      "products": [{"id": "p1", "name": "Olma", "price": 15000, "category_id": "c1", ...}]
    }
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List

from freshmarket_assistant.config import settings
from freshmarket_assistant.errors import CatalogUnavailable

CATALOG_PATH = settings.catalog_path

logger = logging.getLogger(__name__)


class JsonCatalogSource:
    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path or CATALOG_PATH)
        self._categories: Dict[str, str] | None = None
        self._products: List[Dict[str, Any]] | None = None

    def _load(self) -> None:
        if self._products is not None:
            return
        if not self.path.exists():
            raise CatalogUnavailable(f"Catalog snapshot not found: {self.path}")
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise CatalogUnavailable(f"Catalog snapshot unreadable: {self.path}") from exc
        if not isinstance(data, dict):
            raise CatalogUnavailable(f"Catalog snapshot must be a JSON object: {self.path}")

        raw_categories = data.get("categories") or []
        raw_products = data.get("products") or []
        if not isinstance(raw_categories, list) or not isinstance(raw_products, list):
            raise CatalogUnavailable(f"Catalog snapshot categories and products must be lists: {self.path}")

        categories: Dict[str, str] = {}
        for item in raw_categories:
            if not isinstance(item, dict):
                logger.warning("Skipping malformed category entry", extra={"path": str(self.path), "entry": repr(item)})
                continue
            cat_id = item.get("id", item.get("_id"))
            if cat_id is not None and item.get("name"):
                categories[str(cat_id)] = str(item["name"])

        self._categories = categories
        self._products = list(raw_products)
        logger.info(
            "Catalog snapshot loaded",
            extra={"path": str(self.path), "products": len(self._products), "categories": len(categories)},
        )

    def list_products(self) -> List[Dict[str, Any]]:
        self._load()
        return list(self._products or [])

    def resolve_category(self, category_id: str) -> str | None:
        self._load()
        return (self._categories or {}).get(category_id)


__all__ = ["JsonCatalogSource", "CATALOG_PATH"]
