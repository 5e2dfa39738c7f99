"""
CLI for a full rebuild of the product index from the catalog snapshot.

Usage:
    python -m scripts.reindex_catalog --catalog ./data/catalog.json --embed-batch 64
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from freshmarket_assistant.catalog.json_source import JsonCatalogSource
from freshmarket_assistant.config import settings, setup_logging
from freshmarket_assistant.container import build_services
from freshmarket_assistant.errors import IndexBuildPartialFailure


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Fully rebuild the product index from the catalog.")
    parser.add_argument("--catalog", default=settings.catalog_path, help="Catalog JSON snapshot file.")
    parser.add_argument(
        "--embed-batch",
        type=int,
        default=settings.embed_batch_size,
        help="Batch size for embedding requests.",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit with code 2 if any catalog record was skipped.",
    )
    return parser.parse_args()


def main() -> None:
    setup_logging()
    logger = logging.getLogger(__name__)
    args = parse_args()

    services = build_services(settings.model_copy(update={"embed_batch_size": args.embed_batch}))
    service = services.sync_service(show_progress=True)

    try:
        summary = asyncio.run(service.sync(JsonCatalogSource(args.catalog)))
    except Exception:
        logger.exception("Reindex failed")
        sys.exit(1)

    print(f"Indexed products: {summary.indexed} (elapsed {summary.elapsed_sec:.2f}s)")
    for source_id, reason in summary.skipped:
        print(f"  skipped {source_id}: {reason}")

    if args.strict:
        try:
            summary.raise_for_failures()
        except IndexBuildPartialFailure as exc:
            logger.error("%s", exc)
            sys.exit(2)


if __name__ == "__main__":
    main()
