import asyncio
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from freshmarket_assistant.api.routes import router as api_router
from freshmarket_assistant.config import public_settings, settings, setup_logging
from freshmarket_assistant.container import ServiceContainer, build_services
from freshmarket_assistant.errors import IndexAbsent

logger = setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    if getattr(app.state, "services", None) is None:
        app.state.services = build_services()
    services: ServiceContainer = app.state.services
    logger.info("Application starting")
    logger.info("Loaded settings: %s", public_settings(services.settings))
    await services.warmup()
    yield


def create_app(services: ServiceContainer | None = None) -> FastAPI:
    app = FastAPI(title="FreshMarket Assistant", lifespan=lifespan)
    app.state.services = services

    # the storefront is served from a different origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health(request: Request) -> JSONResponse:
        services: ServiceContainer = request.app.state.services
        try:
            info = await asyncio.to_thread(services.vector_store.describe)
            index: object = info.as_dict()
        except IndexAbsent:
            index = "absent"

        embeddings = services.embeddings
        if embeddings.load_failed:
            return JSONResponse(
                status_code=503,
                content={"status": "degraded", "embeddings": "unavailable", "index": index},
            )
        return JSONResponse(
            content={"status": "ok", "embeddings": "ready" if embeddings.loaded else "not_loaded", "index": index}
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error", extra={"path": request.url.path})
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    app.include_router(api_router)
    return app


app = create_app()


def run() -> None:
    uvicorn.run("freshmarket_assistant.main:app", host=settings.app_host, port=settings.app_port)


if __name__ == "__main__":
    run()
