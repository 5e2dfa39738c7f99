"""
CLI for searching the product index with a text query.

Usage:
    python -m scripts.search_query --query "olma bormi?" --top-k 3
"""

from __future__ import annotations

import argparse
import asyncio

from freshmarket_assistant.config import setup_logging
from freshmarket_assistant.container import build_services


def main() -> None:
    parser = argparse.ArgumentParser(description="Search indexed products by text query.")
    parser.add_argument("--query", "-q", required=True, help="Query text")
    parser.add_argument("--top-k", type=int, default=3, help="Number of results to return")
    args = parser.parse_args()

    setup_logging("WARNING")
    services = build_services()
    hits = asyncio.run(services.retrieval.retrieve_scored(args.query, args.top_k))

    if not hits:
        print("No results")
        return

    for idx, hit in enumerate(hits, start=1):
        p = hit.record
        print(f"\n#{idx} score={hit.score:.4f} id={p.id}")
        print(f"  {p.name} | {p.price} so'm | {p.category} | {p.stock} {p.unit}")
        if p.description:
            print(f"  {p.description}")


if __name__ == "__main__":
    main()
