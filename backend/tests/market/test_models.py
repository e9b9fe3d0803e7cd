"""Tests for market data models."""

import pytest

from dashboard.market.models import (
    ApiProvider,
    Asset,
    AssetType,
    Configuration,
    ConnectionMethod,
    ConnectionState,
    ConnectionStatus,
    PricePoint,
    Snapshot,
    display_price,
)


def _asset(symbol="RELIANCE", price=102.0, previous_price=100.0, asset_type=AssetType.STOCK, **kwargs) -> Asset:
    return Asset(
        symbol=symbol,
        name=kwargs.pop("name", symbol.title()),
        type=asset_type,
        price=price,
        previous_price=previous_price,
        timestamp=1234567890.0,
        **kwargs,
    )


class TestAsset:
    """Unit tests for the Asset model."""

    def test_change_and_percent(self):
        """previous 100 → price 102 gives change 2.00 and 2.00%."""
        asset = _asset(price=102.0, previous_price=100.0)
        assert asset.change == 2.0
        assert asset.change_percent == 2.0
        assert asset.direction == "up"

    def test_change_percent_zero_previous(self):
        """A zero previous price never divides by zero."""
        asset = _asset(price=5.0, previous_price=0.0)
        assert asset.change_percent == 0.0
        assert asset.change == 5.0

    def test_direction_down(self):
        asset = _asset(price=99.0, previous_price=100.0)
        assert asset.direction == "down"
        assert asset.change == -1.0
        assert asset.change_percent == -1.0

    def test_direction_flat(self):
        asset = _asset(price=100.0, previous_price=100.0)
        assert asset.direction == "flat"
        assert asset.change == 0.0

    def test_to_dict(self):
        """Test serialization keys and derived fields."""
        asset = _asset(price=190.50, previous_price=190.00, volume=1000.0, market_cap=5e9)
        result = asset.to_dict()
        assert result == {
            "symbol": "RELIANCE",
            "name": "Reliance",
            "type": "STOCK",
            "price": 190.50,
            "previous_price": 190.00,
            "change": 0.5,
            "change_percent": 0.2632,
            "direction": "up",
            "volume": 1000.0,
            "market_cap": 5e9,
            "timestamp": 1234567890.0,
        }

    def test_immutability(self):
        """Assets are frozen dataclasses."""
        asset = _asset()
        with pytest.raises(AttributeError):
            asset.price = 200.0


class TestDisplayPrice:
    def test_cents_above_one(self):
        assert display_price(123.4567) == 123.46

    def test_six_decimals_below_one(self):
        """Sub-dollar crypto keeps its precision."""
        assert display_price(0.16312345) == 0.163123


class TestSnapshot:
    """Unit tests for the Snapshot model."""

    def test_empty_is_loading(self):
        snapshot = Snapshot.empty()
        assert snapshot.is_loading is True
        assert snapshot.stocks == ()
        assert snapshot.cryptos == ()

    def test_get_by_symbol(self):
        stock = _asset("TCS")
        crypto = _asset("BTCUSDT", asset_type=AssetType.CRYPTO)
        snapshot = Snapshot(stocks=(stock,), cryptos=(crypto,))
        assert snapshot.get("TCS") is stock
        assert snapshot.get("BTCUSDT") is crypto
        assert snapshot.get("BTCUSDT", AssetType.STOCK) is None
        assert snapshot.get("NOPE") is None

    def test_prices(self):
        snapshot = Snapshot(stocks=(_asset("TCS", price=3500.0), _asset("INFY", price=1500.0)))
        assert snapshot.prices(AssetType.STOCK) == {"TCS": 3500.0, "INFY": 1500.0}
        assert snapshot.prices(AssetType.CRYPTO) == {}

    def test_with_loading_keeps_assets(self):
        snapshot = Snapshot(stocks=(_asset(),))
        loading = snapshot.with_loading(True)
        assert loading.is_loading is True
        assert loading.stocks == snapshot.stocks
        assert snapshot.is_loading is False

    def test_to_dict(self):
        snapshot = Snapshot(stocks=(_asset(),), timestamp=1.0)
        result = snapshot.to_dict()
        assert result["is_loading"] is False
        assert result["timestamp"] == 1.0
        assert result["cryptos"] == []
        assert result["stocks"][0]["symbol"] == "RELIANCE"


class TestConfiguration:
    def test_defaults_are_synthetic(self):
        config = Configuration()
        assert config.api_provider is ApiProvider.DUMMY
        assert config.connection_method is ConnectionMethod.WEBSOCKET
        assert config.is_synthetic

    def test_dummy_flag_overrides_live_provider(self):
        """With use_dummy_data the provider is advisory only."""
        assert Configuration(ApiProvider.BINANCE, ConnectionMethod.WEBSOCKET, True).is_synthetic
        assert not Configuration(ApiProvider.BINANCE, ConnectionMethod.WEBSOCKET, False).is_synthetic

    def test_to_dict(self):
        config = Configuration(ApiProvider.NSE, ConnectionMethod.REST, False)
        assert config.to_dict() == {
            "api_provider": "NSE",
            "connection_method": "REST",
            "use_dummy_data": False,
        }


class TestConnectionStatus:
    def test_default_idle(self):
        status = ConnectionStatus()
        assert status.state is ConnectionState.IDLE
        assert status.fallback is False

    def test_to_dict(self):
        status = ConnectionStatus(ConnectionState.ERROR, "BINANCE: timed out", retry_in=2.0, fallback=True)
        assert status.to_dict() == {
            "status": "error",
            "reason": "BINANCE: timed out",
            "icon": status.icon,
            "retry_in": 2.0,
            "fallback": True,
        }

    def test_every_state_has_icon(self):
        for state in ConnectionState:
            assert ConnectionStatus(state).icon


class TestPricePoint:
    def test_to_dict_rounds_prices(self):
        point = PricePoint(timestamp=0.0, open=1.23456, high=1.5, low=1.0, close=1.3, volume=100)
        assert point.to_dict() == {
            "timestamp": 0.0,
            "open": 1.23,
            "high": 1.5,
            "low": 1.0,
            "close": 1.3,
            "volume": 100,
        }
