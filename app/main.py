from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from datastore.mock_readings import build_default_table
from logging_config import configure_logging
from services.feed import build_default_feed
from services.verifier import build_default_verifier
from services.window import build_default_window


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    feed = build_default_feed()
    build_default_verifier()
    feed.start()
    try:
        yield
    finally:
        feed.stop()
        build_default_feed.cache_clear()
        build_default_window.cache_clear()
        build_default_verifier.cache_clear()
        build_default_table.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Emission Monitor",
        description="Live CO2 reading window with verifiable batch digests.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app

app = create_app()
