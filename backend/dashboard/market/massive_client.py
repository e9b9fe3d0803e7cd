"""Massive (Polygon.io) API adapter for US stock quotes."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from .errors import ErrorCode, ProviderError
from .interface import QuoteAdapter, coerce_optional, coerce_price
from .models import ApiProvider, AssetType, Tick
from .seed_prices import US_STOCK_SEEDS

logger = logging.getLogger(__name__)


class MassiveAdapter(QuoteAdapter):
    """QuoteAdapter backed by the Massive (Polygon.io) REST API.

    Fetches GET /v2/snapshot/locale/us/markets/stocks/tickers for all watched
    tickers in a single API call.

    Rate limits:
      - Free tier: 5 req/min → poll every 15s or slower
      - Paid tiers: higher limits → poll every 2-5s
    """

    provider = ApiProvider.MASSIVE
    asset_type = AssetType.STOCK

    def __init__(self, api_key: str, tickers: list[str] | None = None) -> None:
        self._api_key = api_key
        self._tickers = [t.upper().strip() for t in (tickers or list(US_STOCK_SEEDS))]
        self._client: Any = None  # Created on first fetch

    async def fetch_once(self) -> list[Tick]:
        if not self._tickers:
            return []
        if not self._api_key:
            raise ProviderError(
                "MASSIVE_API_KEY is not set", code=ErrorCode.AUTH_FAILED, provider="MASSIVE", retryable=False
            )

        try:
            # RESTClient is synchronous; keep it off the event loop.
            snapshots = await asyncio.to_thread(self._fetch_snapshots)
        except Exception as e:
            # Common failures: 401 (bad key), 429 (rate limit), network errors.
            message = str(e)
            if "429" in message:
                code = ErrorCode.RATE_LIMITED
            elif "401" in message or "403" in message:
                code = ErrorCode.AUTH_FAILED
            else:
                code = ErrorCode.NETWORK
            raise ProviderError(
                f"snapshot request failed: {e}",
                code=code,
                provider="MASSIVE",
                retryable=code is not ErrorCode.AUTH_FAILED,
            ) from e

        ticks = self.parse_records(snapshots, self._parse_snapshot)
        logger.debug("Massive poll: updated %d/%d tickers", len(ticks), len(self._tickers))
        return ticks

    async def aclose(self) -> None:
        self._client = None

    def _parse_snapshot(self, snap: Any) -> Tick:
        price = coerce_price(snap.last_trade.price)
        day = getattr(snap, "day", None)
        return Tick(
            symbol=snap.ticker,
            price=price,
            name=US_STOCK_SEEDS.get(snap.ticker, {}).get("name"),
            volume=coerce_optional(getattr(day, "volume", None)),
            # Massive timestamps are Unix milliseconds → convert to seconds
            timestamp=snap.last_trade.timestamp / 1000.0,
        )

    def _fetch_snapshots(self) -> list:
        """Synchronous call to the Massive REST API. Runs in a thread."""
        from massive import RESTClient
        from massive.rest.models import SnapshotMarketType

        if self._client is None:
            self._client = RESTClient(api_key=self._api_key)
        return self._client.get_snapshot_all(
            market_type=SnapshotMarketType.STOCKS,
            tickers=self._tickers,
        )
