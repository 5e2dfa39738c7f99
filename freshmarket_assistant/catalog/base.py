"""
Catalog source interface consumed by the index builder.
"""

from __future__ import annotations

from typing import Any, Dict, List, Protocol


class CatalogSource(Protocol):
    def list_products(self) -> List[Dict[str, Any]]:
        """Raw product documents as stored; validated by the index builder."""
        ...

    def resolve_category(self, category_id: str) -> str | None:
        ...


__all__ = ["CatalogSource"]
