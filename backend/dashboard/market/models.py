"""Data models for market data."""

from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from enum import Enum


class AssetType(str, Enum):
    STOCK = "STOCK"
    CRYPTO = "CRYPTO"


class ApiProvider(str, Enum):
    """Closed set of upstream quote providers."""

    NSE = "NSE"
    BSE = "BSE"
    MASSIVE = "MASSIVE"
    BINANCE = "BINANCE"
    COINGECKO = "COINGECKO"
    COINBASE = "COINBASE"
    DUMMY = "DUMMY"


class ConnectionMethod(str, Enum):
    REST = "REST"
    WEBSOCKET = "WEBSOCKET"


class ConnectionState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"
    DISCONNECTED = "disconnected"


def display_price(price: float) -> float:
    """Round a price for display: cents above 1, six decimals below (sub-dollar crypto)."""
    if abs(price) >= 1:
        return round(price, 2)
    return round(price, 6)


@dataclass(frozen=True, slots=True)
class Tick:
    """One raw quote observation produced by an adapter or the generator.

    Ticks never carry change fields; those are derived by the aggregator.
    Optional fields left as None are carried over from the previous snapshot.
    """

    symbol: str
    price: float
    name: str | None = None
    volume: float | None = None
    market_cap: float | None = None
    timestamp: float = field(default_factory=time.time)  # Unix seconds


@dataclass(frozen=True, slots=True)
class Asset:
    """Canonical quote record for one symbol inside a Snapshot."""

    symbol: str
    name: str
    type: AssetType
    price: float
    previous_price: float
    volume: float = 0.0
    market_cap: float | None = None
    timestamp: float = field(default_factory=time.time)

    @property
    def change(self) -> float:
        """Absolute price change from the previous snapshot."""
        return round(self.price - self.previous_price, 6)

    @property
    def change_percent(self) -> float:
        """Percentage change from the previous snapshot."""
        if self.previous_price == 0:
            return 0.0
        return round((self.price - self.previous_price) / self.previous_price * 100, 4)

    @property
    def direction(self) -> str:
        """'up', 'down', or 'flat'."""
        if self.price > self.previous_price:
            return "up"
        elif self.price < self.previous_price:
            return "down"
        return "flat"

    def to_dict(self) -> dict:
        """Serialize for JSON / SSE transmission."""
        return {
            "symbol": self.symbol,
            "name": self.name,
            "type": self.type.value,
            "price": display_price(self.price),
            "previous_price": display_price(self.previous_price),
            "change": self.change,
            "change_percent": self.change_percent,
            "direction": self.direction,
            "volume": self.volume,
            "market_cap": self.market_cap,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True, slots=True)
class Snapshot:
    """Immutable published state: every current asset plus the loading flag."""

    stocks: tuple[Asset, ...] = ()
    cryptos: tuple[Asset, ...] = ()
    is_loading: bool = False
    timestamp: float = field(default_factory=time.time)

    @classmethod
    def empty(cls) -> Snapshot:
        """The startup snapshot: nothing reported yet."""
        return cls(is_loading=True)

    def assets(self, asset_type: AssetType) -> tuple[Asset, ...]:
        return self.stocks if asset_type is AssetType.STOCK else self.cryptos

    def get(self, symbol: str, asset_type: AssetType | None = None) -> Asset | None:
        """Look up an asset by symbol, optionally restricted to one class."""
        if asset_type is not None:
            pools = (self.assets(asset_type),)
        else:
            pools = (self.stocks, self.cryptos)
        for pool in pools:
            for asset in pool:
                if asset.symbol == symbol:
                    return asset
        return None

    def prices(self, asset_type: AssetType) -> dict[str, float]:
        """{symbol: price} for one asset class."""
        return {a.symbol: a.price for a in self.assets(asset_type)}

    def with_loading(self, is_loading: bool) -> Snapshot:
        return replace(self, is_loading=is_loading, timestamp=time.time())

    def to_dict(self) -> dict:
        return {
            "stocks": [a.to_dict() for a in self.stocks],
            "cryptos": [a.to_dict() for a in self.cryptos],
            "is_loading": self.is_loading,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True, slots=True)
class Configuration:
    """Live data configuration chosen by the UI.

    When use_dummy_data is true, api_provider and connection_method are
    advisory only: the synthetic generator is authoritative.
    """

    api_provider: ApiProvider = ApiProvider.DUMMY
    connection_method: ConnectionMethod = ConnectionMethod.WEBSOCKET
    use_dummy_data: bool = True

    @property
    def is_synthetic(self) -> bool:
        return self.use_dummy_data or self.api_provider is ApiProvider.DUMMY

    def to_dict(self) -> dict:
        return {
            "api_provider": self.api_provider.value,
            "connection_method": self.connection_method.value,
            "use_dummy_data": self.use_dummy_data,
        }


_STATE_ICONS = {
    ConnectionState.IDLE: "⏸",
    ConnectionState.CONNECTING: "⏳",
    ConnectionState.CONNECTED: "✅",
    ConnectionState.ERROR: "⚠",
    ConnectionState.DISCONNECTED: "❌",
}


@dataclass(frozen=True, slots=True)
class ConnectionStatus:
    """Transport connection state plus a human-readable reason."""

    state: ConnectionState = ConnectionState.IDLE
    reason: str = ""
    retry_in: float | None = None  # Seconds until the scheduled retry
    fallback: bool = False  # Synthetic data is standing in for a failed provider

    @property
    def icon(self) -> str:
        return _STATE_ICONS[self.state]

    def to_dict(self) -> dict:
        return {
            "status": self.state.value,
            "reason": self.reason,
            "icon": self.icon,
            "retry_in": self.retry_in,
            "fallback": self.fallback,
        }


@dataclass(frozen=True, slots=True)
class PricePoint:
    """One OHLCV bar of a chart series."""

    timestamp: float  # Unix seconds, bar start
    open: float
    high: float
    low: float
    close: float
    volume: int

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "open": display_price(self.open),
            "high": display_price(self.high),
            "low": display_price(self.low),
            "close": display_price(self.close),
            "volume": self.volume,
        }
