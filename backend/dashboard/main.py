"""Application entry point.

Creates the FastAPI application, configures logging and runs the market data
hub for the lifetime of the process:

    uvicorn dashboard.main:app
"""

from __future__ import annotations

import logging
import os
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .market import MarketDataHub, MarketSettings, create_market_router

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    """Configure process-wide logging.

    Args:
        level: The log level string (DEBUG, INFO, WARNING, ERROR).
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        stream=sys.stdout,
        force=True,
    )

    # Per-request lines from these are noisy at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("websockets").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def create_app(hub: MarketDataHub | None = None) -> FastAPI:
    """Build the app. The hub is started on startup and stopped on shutdown."""
    hub = hub or MarketDataHub(MarketSettings.from_env())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await hub.start()
        try:
            yield
        finally:
            await hub.stop()

    app = FastAPI(title="Market Dashboard", lifespan=lifespan)
    app.state.hub = hub
    app.include_router(create_market_router(hub))

    @app.get("/health", tags=["health"])
    async def health() -> dict:
        return {"status": "ok", "connection": hub.connection_status.state.value}

    return app


configure_logging(os.environ.get("LOG_LEVEL", "INFO"))
app = create_app()
