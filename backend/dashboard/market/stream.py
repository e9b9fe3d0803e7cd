"""HTTP and SSE endpoints over the market data hub."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncGenerator

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from .errors import ConfigurationConflict
from .hub import MarketDataHub
from .models import ApiProvider, ConnectionMethod
from .seed_prices import CHART_TIMEFRAMES, SPARKLINE_POINTS

logger = logging.getLogger(__name__)


class ProviderChange(BaseModel):
    provider: ApiProvider


class MethodChange(BaseModel):
    method: ConnectionMethod


class DummyChange(BaseModel):
    use_dummy_data: bool


def create_market_router(hub: MarketDataHub) -> APIRouter:
    """Create the market router bound to a hub.

    This factory pattern lets us inject the hub without globals. Mount it with
    app.include_router(create_market_router(hub)).
    """
    router = APIRouter(prefix="/api")

    @router.get("/market/snapshot", tags=["market"])
    async def get_snapshot() -> dict:
        return hub.snapshot.to_dict()

    @router.get("/market/config", tags=["market"])
    async def get_config() -> dict:
        return hub.configuration.to_dict()

    @router.get("/market/status", tags=["market"])
    async def get_status() -> dict:
        return hub.connection_status.to_dict()

    @router.put("/market/config/provider", tags=["market"])
    async def put_provider(body: ProviderChange) -> dict:
        await _apply_or_409(hub.set_api_provider(body.provider))
        return hub.configuration.to_dict()

    @router.put("/market/config/method", tags=["market"])
    async def put_method(body: MethodChange) -> dict:
        await _apply_or_409(hub.set_connection_method(body.method))
        return hub.configuration.to_dict()

    @router.put("/market/config/dummy", tags=["market"])
    async def put_dummy(body: DummyChange) -> dict:
        await _apply_or_409(hub.set_use_dummy_data(body.use_dummy_data))
        return hub.configuration.to_dict()

    @router.post("/market/refresh", status_code=202, tags=["market"])
    async def post_refresh() -> dict:
        await hub.refresh_data()
        return {"refreshing": hub.is_running}

    @router.get("/market/chart/{symbol}", tags=["market"])
    async def get_chart(symbol: str, timeframe: str = "1M") -> dict:
        if timeframe not in CHART_TIMEFRAMES:
            raise HTTPException(status_code=422, detail=f"unknown timeframe {timeframe!r}")
        try:
            points = hub.chart_data(symbol.upper(), timeframe)
        except KeyError:
            raise HTTPException(status_code=404, detail=f"unknown symbol {symbol!r}") from None
        return {"symbol": symbol.upper(), "timeframe": timeframe, "points": [p.to_dict() for p in points]}

    @router.get("/market/sparkline/{symbol}", tags=["market"])
    async def get_sparkline(symbol: str, points: int = Query(SPARKLINE_POINTS, ge=2, le=500)) -> dict:
        try:
            prices = hub.sparkline(symbol.upper(), points)
        except KeyError:
            raise HTTPException(status_code=404, detail=f"unknown symbol {symbol!r}") from None
        return {"symbol": symbol.upper(), "prices": [round(p, 8) for p in prices]}

    @router.get("/stream/market", tags=["streaming"])
    async def stream_market(request: Request) -> StreamingResponse:
        """SSE endpoint for live market updates.

        Emits one event whenever the hub version changes. Each event carries
        the whole state:

            data: {"snapshot": {...}, "configuration": {...}, "status": {...}}

        Includes a retry directive so the browser auto-reconnects on
        disconnection (EventSource built-in behavior).
        """
        return StreamingResponse(
            _generate_events(hub, request),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",  # Disable nginx buffering if proxied
            },
        )

    return router


async def _apply_or_409(change) -> None:
    try:
        await change
    except ConfigurationConflict as e:
        raise HTTPException(status_code=409, detail=str(e)) from e


def _state_payload(hub: MarketDataHub) -> str:
    return json.dumps(
        {
            "version": hub.version,
            "snapshot": hub.snapshot.to_dict(),
            "configuration": hub.configuration.to_dict(),
            "status": hub.connection_status.to_dict(),
        }
    )


async def _generate_events(
    hub: MarketDataHub,
    request: Request,
    interval: float = 0.5,
) -> AsyncGenerator[str, None]:
    """Async generator that yields SSE-formatted hub state.

    Polls the hub version every `interval` seconds and sends the state when it
    changed. Stops when the client disconnects.
    """
    # Tell the client to retry after 1 second if the connection drops
    yield "retry: 1000\n\n"

    last_version = -1
    client_ip = request.client.host if request.client else "unknown"
    logger.info("SSE client connected: %s", client_ip)

    try:
        while True:
            if await request.is_disconnected():
                logger.info("SSE client disconnected: %s", client_ip)
                break

            current_version = hub.version
            if current_version != last_version:
                last_version = current_version
                yield f"data: {_state_payload(hub)}\n\n"

            await asyncio.sleep(interval)
    except asyncio.CancelledError:
        logger.info("SSE stream cancelled for: %s", client_ip)
