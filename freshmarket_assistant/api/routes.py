from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status
from fastapi.responses import StreamingResponse

from freshmarket_assistant.catalog.json_source import JsonCatalogSource
from freshmarket_assistant.config import Settings
from freshmarket_assistant.container import ServiceContainer
from freshmarket_assistant.errors import CatalogUnavailable, EmbeddingUnavailable
from freshmarket_assistant.models.schemas import (
    ChatRequest,
    ProductHit,
    ReindexRequest,
    ReindexResponse,
    SkippedRecord,
)

router = APIRouter()
logger = logging.getLogger(__name__)


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


def _check_admin_token(x_admin_token: str | None, config: Settings) -> None:
    if not config.admin_token:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Admin token is not configured",
        )
    if x_admin_token != config.admin_token.get_secret_value():
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")


@router.post("/admin/reindex", response_model=ReindexResponse, summary="Rebuild product index")
async def admin_reindex(
    reindex_request: ReindexRequest,
    x_admin_token: str | None = Header(default=None, alias="X-Admin-Token"),
    services: ServiceContainer = Depends(get_services),
) -> ReindexResponse:
    _check_admin_token(x_admin_token, services.settings)

    catalog = JsonCatalogSource(reindex_request.catalog_path or services.settings.catalog_path)
    logger.info("Admin reindex requested", extra={"mode": reindex_request.mode, "catalog": str(catalog.path)})

    try:
        summary = await services.sync_service().sync(catalog)
    except CatalogUnavailable as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except EmbeddingUnavailable as exc:
        logger.exception("Admin reindex failed: embeddings unavailable")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Embedding model unavailable",
        ) from exc

    response = ReindexResponse(
        status="completed",
        indexed=summary.indexed,
        skipped=[SkippedRecord(source_id=source_id, reason=reason) for source_id, reason in summary.skipped],
        elapsed_sec=round(summary.elapsed_sec, 2),
    )
    logger.info(
        "Admin reindex completed",
        extra={"indexed": response.indexed, "skipped": len(response.skipped), "elapsed_sec": response.elapsed_sec},
    )
    return response


@router.post("/api/chat", summary="Chat with the shop assistant (streamed plain text)")
async def chat(request: ChatRequest, services: ServiceContainer = Depends(get_services)) -> StreamingResponse:
    logger.info("Chat request", extra={"len": len(request.message), "history": len(request.history)})
    return StreamingResponse(
        services.chat.stream_reply(request),
        media_type="text/plain; charset=utf-8",
    )


@router.get("/api/v1/products/search", response_model=List[ProductHit], summary="Semantic product search")
async def search_products(
    q: str = Query(..., min_length=1, description="Search text"),
    k: int | None = Query(default=None, gt=0, le=50),
    services: ServiceContainer = Depends(get_services),
) -> List[ProductHit]:
    try:
        hits = await services.retrieval.retrieve_scored(q, k)
    except EmbeddingUnavailable as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Embedding model unavailable",
        ) from exc
    return [ProductHit(product=hit.record, score=round(hit.score, 4)) for hit in hits]


__all__ = ["router", "get_services"]
