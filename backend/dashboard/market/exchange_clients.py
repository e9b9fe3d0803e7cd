"""Indian stock exchange adapters (NSE, BSE). REST only."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .errors import ErrorCode, ProviderError
from .interface import coerce_optional, coerce_price
from .models import ApiProvider, AssetType, Tick
from .rest import HttpQuoteAdapter
from .seed_prices import STOCK_SEEDS, bse_scrip_codes

logger = logging.getLogger(__name__)


class NseAdapter(HttpQuoteAdapter):
    """Equity quotes from the NSE website API.

    NSE rejects API calls without its session cookies, so the first fetch
    loads the home page once to obtain them.
    """

    provider = ApiProvider.NSE
    asset_type = AssetType.STOCK
    base_url = "https://www.nseindia.com"
    headers = {
        "Accept": "application/json,text/plain,*/*",
        "Referer": "https://www.nseindia.com/",
    }

    def __init__(
        self,
        symbols: list[str] | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 8.0,
    ) -> None:
        super().__init__(client=client, timeout=timeout)
        self._symbols = [s.upper() for s in (symbols or list(STOCK_SEEDS))]
        self._primed = False

    async def fetch_once(self) -> list[Tick]:
        if not self._primed:
            await self._prime_session()
        records = await self._get_many(
            {symbol: ("/api/quote-equity", {"symbol": symbol}) for symbol in self._symbols}
        )
        ticks = self.parse_records(records, self._parse_quote)
        logger.debug("NSE poll: %d/%d symbols", len(ticks), len(self._symbols))
        return ticks

    async def aclose(self) -> None:
        await super().aclose()
        self._primed = False

    async def _prime_session(self) -> None:
        try:
            response = await self._http().get(f"{self.base_url}/")
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise ProviderError("session priming timed out", code=ErrorCode.TIMEOUT, provider="NSE") from e
        except httpx.HTTPError as e:
            raise ProviderError(f"session priming failed: {e}", code=ErrorCode.NETWORK, provider="NSE") from e
        self._primed = True

    def _parse_quote(self, record: tuple[str, Any]) -> Tick:
        symbol, body = record
        price = coerce_price(body["priceInfo"]["lastPrice"])
        issued = coerce_optional(body.get("securityInfo", {}).get("issuedSize"))
        return Tick(
            symbol=symbol,
            price=price,
            name=STOCK_SEEDS.get(symbol, {}).get("name") or body.get("info", {}).get("companyName"),
            volume=coerce_optional(body.get("preOpenMarket", {}).get("totalTradedVolume")),
            market_cap=issued * price if issued is not None else None,
        )


class BseAdapter(HttpQuoteAdapter):
    """Equity quotes from the BSE scrip header API.

    BSE identifies scrips by numeric code; codes are mapped back to the
    NSE symbol so both exchanges share one symbol per company.
    """

    provider = ApiProvider.BSE
    asset_type = AssetType.STOCK
    base_url = "https://api.bseindia.com/BseIndiaAPI/api"
    headers = {
        "Accept": "application/json",
        "Referer": "https://www.bseindia.com/",
        "Origin": "https://www.bseindia.com",
    }

    def __init__(
        self,
        scrip_codes: dict[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 8.0,
    ) -> None:
        super().__init__(client=client, timeout=timeout)
        # {scrip code: canonical symbol}
        self._scrips = dict(scrip_codes) if scrip_codes else bse_scrip_codes()

    async def fetch_once(self) -> list[Tick]:
        records = await self._get_many(
            {
                code: ("/getScripHeaderData/w", {"Debtflag": "", "scripcode": code, "seriesid": ""})
                for code in self._scrips
            }
        )
        ticks = self.parse_records(records, self._parse_header)
        logger.debug("BSE poll: %d/%d scrips", len(ticks), len(self._scrips))
        return ticks

    def _parse_header(self, record: tuple[str, Any]) -> Tick:
        code, body = record
        symbol = self._scrips[code]
        # BSE formats numbers as strings with thousands separators
        ltp = body["CurrRate"]["LTP"]
        if isinstance(ltp, str):
            ltp = ltp.replace(",", "")
        return Tick(
            symbol=symbol,
            price=coerce_price(ltp),
            name=STOCK_SEEDS.get(symbol, {}).get("name") or body.get("Cmpname", {}).get("FullN"),
        )
