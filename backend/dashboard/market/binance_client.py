"""Binance spot market adapter: 24h ticker REST plus trade stream."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from .errors import ErrorCode, ProviderError
from .interface import coerce_optional, coerce_price
from .models import ApiProvider, AssetType, Tick
from .seed_prices import CRYPTO_SEEDS
from .streaming import StreamingQuoteAdapter

logger = logging.getLogger(__name__)


class BinanceAdapter(StreamingQuoteAdapter):
    """Crypto quotes from Binance.

    REST:  GET /api/v3/ticker/24hr?symbols=[...]  (one call for all pairs)
    WS:    combined stream of <pair>@trade events
    """

    provider = ApiProvider.BINANCE
    asset_type = AssetType.CRYPTO
    base_url = "https://api.binance.com"
    ws_base_url = "wss://stream.binance.com:9443"

    def __init__(
        self,
        symbols: list[str] | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 8.0,
        ws_base_url: str | None = None,
    ) -> None:
        super().__init__(client=client, timeout=timeout)
        self._symbols = [s.upper() for s in (symbols or list(CRYPTO_SEEDS))]
        if ws_base_url:
            self.ws_base_url = ws_base_url

    async def fetch_once(self) -> list[Tick]:
        payload = await self._get_json(
            "/api/v3/ticker/24hr",
            params={"symbols": json.dumps(self._symbols, separators=(",", ":"))},
        )
        if not isinstance(payload, list):
            raise ProviderError(
                "expected a list of tickers", code=ErrorCode.MALFORMED_PAYLOAD, provider=self.provider.value
            )
        ticks = self.parse_records(payload, self._parse_ticker)
        logger.debug("Binance poll: %d/%d pairs", len(ticks), len(self._symbols))
        return ticks

    def stream_url(self) -> str:
        streams = "/".join(f"{s.lower()}@trade" for s in self._symbols)
        return f"{self.ws_base_url}/stream?streams={streams}"

    def parse_message(self, message: Any) -> list[Tick]:
        # Combined streams wrap each event as {"stream": ..., "data": {...}}
        data = message.get("data", message) if isinstance(message, dict) else message
        if not isinstance(data, dict) or data.get("e") != "trade":
            return []
        return self.parse_records([data], self._parse_trade)

    def _parse_ticker(self, record: dict) -> Tick:
        symbol = record["symbol"]
        return Tick(
            symbol=symbol,
            price=coerce_price(record["lastPrice"]),
            name=CRYPTO_SEEDS.get(symbol, {}).get("name"),
            volume=coerce_optional(record.get("quoteVolume")),
        )

    def _parse_trade(self, event: dict) -> Tick:
        symbol = event["s"]
        return Tick(
            symbol=symbol,
            price=coerce_price(event["p"]),
            name=CRYPTO_SEEDS.get(symbol, {}).get("name"),
            timestamp=event["T"] / 1000.0,  # Binance timestamps are Unix milliseconds
        )
