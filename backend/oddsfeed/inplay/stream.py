"""HTTP query endpoints and SSE stream over the live odds engine."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncGenerator

from fastapi import APIRouter, HTTPException, Request, Response
from fastapi.responses import StreamingResponse

from .engine import LiveOddsEngine
from .errors import EngineClosedError
from .models import MarketState
from .selections import SelectionNames

logger = logging.getLogger(__name__)


def _market_payload(engine: LiveOddsEngine, names: SelectionNames, market: MarketState) -> dict:
    data = market.to_dict()
    for key, runner in market.runners.items():
        data["runners"][key]["name"] = names.name_for(market, runner)
    data["isLive"] = market.is_live
    data["isSuspended"] = market.is_suspended
    data["changes"] = engine.changes_for(market.market_id)
    return data


def _markets_payload(engine: LiveOddsEngine, names: SelectionNames) -> dict:
    return {
        market_id: _market_payload(engine, names, market)
        for market_id, market in engine.list_markets().items()
    }


def _status_payload(engine: LiveOddsEngine) -> dict:
    return {
        "connection": engine.connection_state.value,
        "loading": engine.loading,
        "error": engine.error,
        "markets": len(engine.list_markets()),
        "rejected": engine.rejected,
    }


def create_inplay_router(
    engine: LiveOddsEngine,
    names: SelectionNames | None = None,
) -> APIRouter:
    """Create the in-play router bound to an engine.

    This factory pattern lets us inject the engine without globals.
    """
    router = APIRouter(prefix="/api/inplay", tags=["inplay"])
    names = names or SelectionNames()

    @router.get("/matches")
    async def list_matches() -> list[dict]:
        return [match.to_dict() for match in engine.list_matches()]

    @router.get("/markets")
    async def list_markets() -> dict:
        return _markets_payload(engine, names)

    @router.get("/markets/{market_id}")
    async def get_market(market_id: str) -> dict:
        market = engine.get_market(market_id)
        if market is None:
            raise HTTPException(status_code=404, detail=f"Unknown market {market_id}")
        return _market_payload(engine, names, market)

    @router.delete("/markets/{market_id}", status_code=204)
    async def remove_market(market_id: str) -> Response:
        engine.remove(market_id)
        return Response(status_code=204)

    @router.post("/refresh", status_code=202)
    async def refresh() -> dict:
        try:
            await engine.refresh()
        except EngineClosedError as e:
            raise HTTPException(status_code=409, detail=str(e)) from e
        return {"status": "refreshing"}

    @router.get("/status")
    async def status() -> dict:
        return _status_payload(engine)

    @router.get("/stream")
    async def stream_markets(request: Request) -> StreamingResponse:
        """SSE endpoint for live market state.

        Sends the whole market table, with live change markers, each time
        the engine's version moves:

            data: {"status": {...}, "markets": {"1.234": {...}, ...}}
        """
        return StreamingResponse(
            _generate_events(engine, names, request),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",  # Disable nginx buffering if proxied
            },
        )

    return router


async def _generate_events(
    engine: LiveOddsEngine,
    names: SelectionNames,
    request: Request,
    interval: float = 0.25,
) -> AsyncGenerator[str, None]:
    """Yield SSE events until the client disconnects.

    Polls the engine version every ``interval`` seconds and only sends when
    it changed. The interval is well under the change-marker lifetime so
    highlights are not missed.
    """
    yield "retry: 1000\n\n"

    last_version = -1
    client_ip = request.client.host if request.client else "unknown"
    logger.info("SSE client connected: %s", client_ip)

    try:
        while True:
            if await request.is_disconnected():
                logger.info("SSE client disconnected: %s", client_ip)
                break

            current_version = engine.version
            if current_version != last_version:
                last_version = current_version
                payload = json.dumps(
                    {
                        "status": _status_payload(engine),
                        "markets": _markets_payload(engine, names),
                    }
                )
                yield f"data: {payload}\n\n"

            await asyncio.sleep(interval)
    except asyncio.CancelledError:
        logger.info("SSE stream cancelled for: %s", client_ip)
