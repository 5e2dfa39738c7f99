"""
Utility script to inspect the live product index without embeddings.

Usage:
    python -m scripts.inspect_index --limit 5 --offset 0
"""

from __future__ import annotations

import argparse
import json

from freshmarket_assistant.errors import IndexAbsent
from freshmarket_assistant.vector_store import get_vector_store


def main() -> None:
    parser = argparse.ArgumentParser(description="Inspect stored products in the index.")
    parser.add_argument("--limit", type=int, default=5, help="Number of products to show")
    parser.add_argument("--offset", type=int, default=0, help="Offset for pagination")
    args = parser.parse_args()

    store = get_vector_store()
    try:
        info = store.describe()
    except IndexAbsent as exc:
        print(f"{exc}. Run `python -m scripts.reindex_catalog` first.")
        return

    print("Index:", json.dumps(info.as_dict(), ensure_ascii=False))
    products = store.list_products(limit=args.limit, offset=args.offset)
    print(f"Showing {len(products)} products (offset={args.offset}, limit={args.limit})")
    for idx, product in enumerate(products, start=args.offset + 1):
        print(f"\n#{idx}: {product.id}")
        print(json.dumps(product.to_metadata(), ensure_ascii=False))
        print("Text:", product.embedding_text())


if __name__ == "__main__":
    main()
