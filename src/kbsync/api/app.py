"""
kbsync Web Application

Standalone FastAPI app exposing the knowledge base router. Host applications
usually include ``kbsync.api.router`` in their own app instead.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from ..config.factory import Engine, build_engine
from ..config.settings import Settings, settings as default_settings
from .router import router

logger = logging.getLogger(__name__)


def create_app(engine: Engine | None = None, settings: Settings | None = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        engine: Pre-built engine; built from settings at startup if omitted
        settings: Settings used to build the engine (global settings by default)
    """
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_engine = engine is None
        app.state.engine = build_engine(settings) if owns_engine else engine
        logger.info("Application started successfully")

        yield

        logger.info("Application shutting down...")
        if owns_engine:
            await app.state.engine.aclose()

    app = FastAPI(
        title="kbsync API",
        description="Knowledge base sync and retrieval API",
        version="0.1.0",
        lifespan=lifespan,
    )
    # Available before startup too, so routers work without a lifespan run
    app.state.engine = engine
    app.include_router(router)
    return app


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=default_settings.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
