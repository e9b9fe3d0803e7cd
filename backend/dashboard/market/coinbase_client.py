"""Coinbase Exchange adapter: product ticker REST plus ticker channel."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from datetime import datetime
from typing import Any

import httpx

from .errors import ErrorCode, ProviderError
from .interface import coerce_optional, coerce_price
from .models import ApiProvider, AssetType, Tick
from .seed_prices import CRYPTO_SEEDS, coinbase_products
from .streaming import StreamingQuoteAdapter

logger = logging.getLogger(__name__)


class CoinbaseAdapter(StreamingQuoteAdapter):
    """Crypto quotes from Coinbase Exchange.

    Coinbase products (BTC-USD) are mapped to canonical pairs (BTCUSDT).
    REST has no batch ticker endpoint, so products are fetched concurrently.
    """

    provider = ApiProvider.COINBASE
    asset_type = AssetType.CRYPTO
    base_url = "https://api.exchange.coinbase.com"
    ws_url = "wss://ws-feed.exchange.coinbase.com"

    def __init__(
        self,
        products: dict[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 8.0,
        ws_url: str | None = None,
    ) -> None:
        super().__init__(client=client, timeout=timeout)
        # {product id: canonical symbol}
        self._products = dict(products) if products else coinbase_products()
        if ws_url:
            self.ws_url = ws_url

    async def fetch_once(self) -> list[Tick]:
        records = await self._get_many({pid: (f"/products/{pid}/ticker", None) for pid in self._products})
        ticks = self.parse_records(records, self._parse_rest)
        logger.debug("Coinbase poll: %d/%d products", len(ticks), len(self._products))
        return ticks

    def stream_url(self) -> str:
        return self.ws_url

    async def handshake(self, ws: Any) -> None:
        await ws.send(
            json.dumps({"type": "subscribe", "product_ids": list(self._products), "channels": ["ticker"]})
        )
        while True:
            raw = await asyncio.wait_for(ws.recv(), timeout=self._timeout)
            message = json.loads(raw)
            kind = message.get("type")
            if kind == "subscriptions":
                return
            if kind == "error":
                raise ProviderError(
                    f"subscribe rejected: {message.get('message')} {message.get('reason', '')}".strip(),
                    code=ErrorCode.MALFORMED_PAYLOAD,
                    provider=self.provider.value,
                    retryable=False,
                )

    def parse_message(self, message: Any) -> list[Tick]:
        if not isinstance(message, dict):
            return []
        kind = message.get("type")
        if kind == "error":
            raise ProviderError(
                f"stream error: {message.get('message')}", code=ErrorCode.NETWORK, provider=self.provider.value
            )
        if kind != "ticker":
            return []
        return self.parse_records([message], self._parse_ticker_event)

    def _symbol(self, product_id: str) -> str:
        return self._products.get(product_id) or product_id.replace("-", "")

    def _parse_rest(self, record: tuple[str, dict]) -> Tick:
        product_id, body = record
        symbol = self._symbol(product_id)
        price = coerce_price(body["price"])
        volume = coerce_optional(body.get("volume"))
        return Tick(
            symbol=symbol,
            price=price,
            name=CRYPTO_SEEDS.get(symbol, {}).get("name"),
            volume=volume * price if volume is not None else None,  # Base units -> quote currency
            timestamp=_parse_time(body.get("time")),
        )

    def _parse_ticker_event(self, event: dict) -> Tick:
        symbol = self._symbol(event["product_id"])
        price = coerce_price(event["price"])
        volume = coerce_optional(event.get("volume_24h"))
        return Tick(
            symbol=symbol,
            price=price,
            name=CRYPTO_SEEDS.get(symbol, {}).get("name"),
            volume=volume * price if volume is not None else None,
            timestamp=_parse_time(event.get("time")),
        )


def _parse_time(value: str | None) -> float:
    if not value:
        return time.time()
    return datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp()
