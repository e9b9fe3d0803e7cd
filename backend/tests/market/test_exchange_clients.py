"""Tests for the NSE and BSE adapters against a mocked HTTP transport."""

import httpx
import pytest

from dashboard.market.errors import ErrorCode, ProviderError
from dashboard.market.exchange_clients import BseAdapter, NseAdapter


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


NSE_QUOTES = {
    "RELIANCE": {
        "info": {"companyName": "Reliance Industries Limited"},
        "priceInfo": {"lastPrice": 2901.5},
        "securityInfo": {"issuedSize": 1000},
        "preOpenMarket": {"totalTradedVolume": 52000},
    },
    "TCS": {"priceInfo": {"lastPrice": 3550.0}},
}


@pytest.mark.asyncio
class TestNseAdapter:
    """Unit tests for NseAdapter."""

    async def test_fetch_primes_session_then_quotes(self):
        """The home page is loaded once for cookies before any quote call."""
        paths = []

        def handler(request: httpx.Request) -> httpx.Response:
            paths.append(request.url.path)
            if request.url.path == "/":
                return httpx.Response(200, text="<html></html>", headers={"set-cookie": "nsit=abc; Path=/"})
            return httpx.Response(200, json=NSE_QUOTES[request.url.params["symbol"]])

        async with _client(handler) as client:
            adapter = NseAdapter(symbols=["RELIANCE", "TCS"], client=client)
            ticks = await adapter.fetch_once()
            await adapter.fetch_once()

        assert paths.count("/") == 1
        assert paths[0] == "/"
        by_symbol = {t.symbol: t for t in ticks}
        assert by_symbol["RELIANCE"].price == 2901.5
        assert by_symbol["RELIANCE"].name == "Reliance Industries"
        assert by_symbol["RELIANCE"].volume == 52000
        assert by_symbol["RELIANCE"].market_cap == 2901.5 * 1000
        assert by_symbol["TCS"].price == 3550.0
        assert by_symbol["TCS"].market_cap is None

    async def test_malformed_quote_skipped(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/":
                return httpx.Response(200)
            if request.url.params["symbol"] == "TCS":
                return httpx.Response(200, json={"priceInfo": {}})
            return httpx.Response(200, json=NSE_QUOTES["RELIANCE"])

        async with _client(handler) as client:
            ticks = await NseAdapter(symbols=["RELIANCE", "TCS"], client=client).fetch_once()

        assert [t.symbol for t in ticks] == ["RELIANCE"]

    async def test_partial_http_failure_keeps_successes(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/":
                return httpx.Response(200)
            if request.url.params["symbol"] == "TCS":
                return httpx.Response(503)
            return httpx.Response(200, json=NSE_QUOTES["RELIANCE"])

        async with _client(handler) as client:
            ticks = await NseAdapter(symbols=["RELIANCE", "TCS"], client=client).fetch_once()

        assert [t.symbol for t in ticks] == ["RELIANCE"]

    async def test_all_requests_failing_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/":
                return httpx.Response(200)
            return httpx.Response(429)

        async with _client(handler) as client:
            with pytest.raises(ProviderError) as exc_info:
                await NseAdapter(symbols=["RELIANCE", "TCS"], client=client).fetch_once()

        assert exc_info.value.code is ErrorCode.RATE_LIMITED

    async def test_priming_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused")

        async with _client(handler) as client:
            adapter = NseAdapter(symbols=["RELIANCE"], client=client)
            with pytest.raises(ProviderError) as exc_info:
                await adapter.fetch_once()

        assert exc_info.value.code is ErrorCode.NETWORK
        assert adapter._primed is False

    async def test_injected_client_left_open(self):
        async with _client(lambda request: httpx.Response(200)) as client:
            adapter = NseAdapter(client=client)
            await adapter.aclose()
            assert not client.is_closed


@pytest.mark.asyncio
class TestBseAdapter:
    """Unit tests for BseAdapter."""

    async def test_fetch_maps_scrip_codes(self):
        """Scrip codes map back to NSE symbols; comma-formatted prices parse."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.params["scripcode"])
            assert request.url.path == "/BseIndiaAPI/api/getScripHeaderData/w"
            prices = {"500325": "2,896.45", "532540": "3548.25"}
            return httpx.Response(200, json={"CurrRate": {"LTP": prices[request.url.params["scripcode"]]}})

        async with _client(handler) as client:
            adapter = BseAdapter(scrip_codes={"500325": "RELIANCE", "532540": "TCS"}, client=client)
            ticks = await adapter.fetch_once()

        assert sorted(seen) == ["500325", "532540"]
        by_symbol = {t.symbol: t for t in ticks}
        assert by_symbol["RELIANCE"].price == 2896.45
        assert by_symbol["RELIANCE"].name == "Reliance Industries"
        assert by_symbol["TCS"].price == 3548.25

    async def test_default_scrips_cover_catalog(self):
        adapter = BseAdapter()
        assert "RELIANCE" in adapter._scrips.values()
        assert len(adapter._scrips) == 10

    @pytest.mark.parametrize("status", [401, 403])
    async def test_access_denied_not_retryable(self, status):
        async with _client(lambda request: httpx.Response(status)) as client:
            with pytest.raises(ProviderError) as exc_info:
                await BseAdapter(scrip_codes={"500325": "RELIANCE"}, client=client).fetch_once()

        assert exc_info.value.code is ErrorCode.AUTH_FAILED
        assert exc_info.value.retryable is False

    async def test_non_json_response(self):
        async with _client(lambda request: httpx.Response(200, text="<html>maintenance</html>")) as client:
            with pytest.raises(ProviderError) as exc_info:
                await BseAdapter(scrip_codes={"500325": "RELIANCE"}, client=client).fetch_once()

        assert exc_info.value.code is ErrorCode.MALFORMED_PAYLOAD

    async def test_timeout(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        async with _client(handler) as client:
            with pytest.raises(ProviderError) as exc_info:
                await BseAdapter(scrip_codes={"500325": "RELIANCE"}, client=client).fetch_once()

        assert exc_info.value.code is ErrorCode.TIMEOUT
