from __future__ import annotations
from contextlib import asynccontextmanager
import logging
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import router
from logging_config import configure_logging
from upstream.openaq import build_default_client

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    client = build_default_client()
    logger.info("Upstream client ready at %s", client.base_url)
    try:
        yield
    finally:
        await client.aclose()
        build_default_client.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Air Quality Feed",
        description="Normalized, smoothed air-quality features as JSON snapshots and SSE streams.",
        version="0.1.0",
        lifespan=lifespan,
    )
    # Browser UIs read both endpoints cross-origin.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app

app = create_app()
