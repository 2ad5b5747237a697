from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from logging_config import configure_logging
from services.poller import build_default_poller
from services.query import build_default_query_service
from storage.reading_store import build_default_store


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    poller = build_default_poller()
    if poller is not None:
        poller.start()
    try:
        yield
    finally:
        if poller is not None:
            poller.shutdown()
        build_default_poller.cache_clear()
        build_default_query_service.cache_clear()
        build_default_store.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Smart Plug Monitor",
        description="Polls a smart plug and serves raw and aggregated power readings.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app

app = create_app()
