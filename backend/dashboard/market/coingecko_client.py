"""CoinGecko simple-price adapter (REST only)."""

from __future__ import annotations

import logging

import httpx

from .errors import ErrorCode, ProviderError
from .interface import coerce_optional, coerce_price
from .models import ApiProvider, AssetType, Tick
from .rest import HttpQuoteAdapter
from .seed_prices import CRYPTO_SEEDS, coingecko_ids

logger = logging.getLogger(__name__)


class CoinGeckoAdapter(HttpQuoteAdapter):
    """Crypto quotes from CoinGecko's /simple/price.

    One request covers every coin; coin ids (bitcoin) are mapped to
    canonical pairs (BTCUSDT). Free tier allows ~10-30 req/min.
    """

    provider = ApiProvider.COINGECKO
    asset_type = AssetType.CRYPTO
    base_url = "https://api.coingecko.com/api/v3"

    def __init__(
        self,
        coin_ids: dict[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 8.0,
        vs_currency: str = "usd",
    ) -> None:
        super().__init__(client=client, timeout=timeout)
        # {coingecko id: canonical symbol}
        self._coins = dict(coin_ids) if coin_ids else coingecko_ids()
        self._currency = vs_currency

    async def fetch_once(self) -> list[Tick]:
        payload = await self._get_json(
            "/simple/price",
            params={
                "ids": ",".join(self._coins),
                "vs_currencies": self._currency,
                "include_24hr_vol": "true",
                "include_market_cap": "true",
            },
        )
        if not isinstance(payload, dict):
            raise ProviderError(
                "expected an object keyed by coin id",
                code=ErrorCode.MALFORMED_PAYLOAD,
                provider=self.provider.value,
            )
        ticks = self.parse_records(payload.items(), self._parse_coin)
        logger.debug("CoinGecko poll: %d/%d coins", len(ticks), len(self._coins))
        return ticks

    def _parse_coin(self, item: tuple[str, dict]) -> Tick | None:
        coin_id, quote = item
        symbol = self._coins.get(coin_id)
        if symbol is None:
            return None
        cur = self._currency
        return Tick(
            symbol=symbol,
            price=coerce_price(quote[cur]),
            name=CRYPTO_SEEDS.get(symbol, {}).get("name"),
            volume=coerce_optional(quote.get(f"{cur}_24h_vol")),
            market_cap=coerce_optional(quote.get(f"{cur}_market_cap")),
        )
