"""Tests for the adapter factory and configuration validation."""

import pytest

from dashboard.market.binance_client import BinanceAdapter
from dashboard.market.coinbase_client import CoinbaseAdapter
from dashboard.market.coingecko_client import CoinGeckoAdapter
from dashboard.market.config import MarketSettings
from dashboard.market.errors import ConfigurationConflict
from dashboard.market.exchange_clients import BseAdapter, NseAdapter
from dashboard.market.factory import PROVIDERS, create_adapter, provider_spec, validate_configuration
from dashboard.market.massive_client import MassiveAdapter
from dashboard.market.models import ApiProvider, AssetType, Configuration, ConnectionMethod


class TestValidateConfiguration:
    """Tests for validate_configuration()."""

    @pytest.mark.parametrize("provider", [ApiProvider.NSE, ApiProvider.BSE, ApiProvider.MASSIVE, ApiProvider.COINGECKO])
    def test_websocket_on_rest_only_provider_conflicts(self, provider):
        with pytest.raises(ConfigurationConflict, match="does not support streaming"):
            validate_configuration(Configuration(provider, ConnectionMethod.WEBSOCKET, False))

    @pytest.mark.parametrize("provider", [ApiProvider.BINANCE, ApiProvider.COINBASE, ApiProvider.DUMMY])
    def test_websocket_on_streaming_provider_ok(self, provider):
        validate_configuration(Configuration(provider, ConnectionMethod.WEBSOCKET, False))

    @pytest.mark.parametrize("provider", list(ApiProvider))
    def test_rest_always_ok(self, provider):
        validate_configuration(Configuration(provider, ConnectionMethod.REST, False))

    def test_checked_in_dummy_mode(self):
        """An invalid combination is rejected even while dummy data is on."""
        with pytest.raises(ConfigurationConflict):
            validate_configuration(Configuration(ApiProvider.NSE, ConnectionMethod.WEBSOCKET, True))

    def test_conflict_is_value_error(self):
        with pytest.raises(ValueError):
            validate_configuration(Configuration(ApiProvider.BSE, ConnectionMethod.WEBSOCKET, False))


class TestProviderTable:
    def test_every_provider_listed(self):
        assert set(PROVIDERS) == set(ApiProvider)

    def test_asset_classes(self):
        assert provider_spec(ApiProvider.NSE).asset_type is AssetType.STOCK
        assert provider_spec(ApiProvider.BINANCE).asset_type is AssetType.CRYPTO
        assert provider_spec(ApiProvider.DUMMY).asset_type is None


class TestCreateAdapter:
    """Tests for create_adapter()."""

    @pytest.mark.parametrize(
        "provider,expected",
        [
            (ApiProvider.NSE, NseAdapter),
            (ApiProvider.BSE, BseAdapter),
            (ApiProvider.MASSIVE, MassiveAdapter),
            (ApiProvider.BINANCE, BinanceAdapter),
            (ApiProvider.COINGECKO, CoinGeckoAdapter),
            (ApiProvider.COINBASE, CoinbaseAdapter),
        ],
    )
    def test_creates_adapter_per_provider(self, provider, expected):
        adapter = create_adapter(provider, MarketSettings())
        assert isinstance(adapter, expected)
        assert adapter.provider is provider
        assert adapter.asset_type is PROVIDERS[provider].asset_type
        assert adapter.supports_streaming is PROVIDERS[provider].supports_streaming

    def test_massive_gets_settings(self):
        settings = MarketSettings(massive_api_key="test-key", massive_tickers=("aapl", "TSLA"))
        adapter = create_adapter(ApiProvider.MASSIVE, settings)
        assert adapter._tickers == ["AAPL", "TSLA"]

    def test_dummy_has_no_adapter(self):
        with pytest.raises(ConfigurationConflict):
            create_adapter(ApiProvider.DUMMY, MarketSettings())
