"""FastAPI application serving the live odds engine."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .inplay import LiveOddsEngine, create_engine, create_inplay_router


def create_app(engine: LiveOddsEngine | None = None) -> FastAPI:
    """Build the app. The engine is started with the app and always shut down with it."""
    engine = engine or create_engine()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        try:
            await engine.start()
            yield
        finally:
            await engine.shutdown()

    app = FastAPI(title="In-play odds", lifespan=lifespan)
    app.state.engine = engine
    app.include_router(create_inplay_router(engine))
    return app
