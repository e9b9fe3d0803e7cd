"""Subscription hub: the single read point for snapshot, configuration and status."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum

from .aggregator import merge
from .cache import SnapshotCache
from .config import MarketSettings
from .errors import ConfigurationConflict
from .factory import create_adapter, validate_configuration
from .models import (
    ApiProvider,
    AssetType,
    Configuration,
    ConnectionMethod,
    ConnectionStatus,
    PricePoint,
    Snapshot,
    Tick,
)
from .seed_prices import (
    CHART_TIMEFRAMES,
    SPARKLINE_POINTS,
    SPARKLINE_VOLATILITY,
    STOCK_SEEDS,
    US_STOCK_SEEDS,
)
from .simulator import chart_series, generate_series
from .transport import AdapterFactory, TransportManager

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class HubEvent:
    kind: str  # "snapshot" | "configuration" | "status"
    version: int


Listener = Callable[[HubEvent], None]


class MarketDataHub:
    """Holds the current Configuration and Snapshot and notifies listeners.

    The setters are the only path that restarts the transport. Restarts are
    serialized by a lock, so two quick setter calls never run two transports.

    Lifecycle:
        hub = MarketDataHub(MarketSettings.from_env())
        await hub.start()
        unsubscribe = hub.subscribe(lambda event: ...)
        await hub.set_api_provider("BINANCE")
        ...
        await hub.stop()
    """

    def __init__(
        self,
        settings: MarketSettings | None = None,
        adapter_factory: AdapterFactory = create_adapter,
    ) -> None:
        self._settings = settings or MarketSettings()
        self._config = self._settings.initial_configuration
        validate_configuration(self._config)

        self._cache = SnapshotCache()
        self._listeners: list[Listener] = []
        self._reported: set[AssetType] = set()
        self._lock = asyncio.Lock()
        self._version = 0  # Bumped on every notification (snapshot, configuration or status)
        self._running = False
        self._transport = TransportManager(
            self._settings,
            sink=self._ingest,
            on_status=self._status_changed,
            seed_assets=self._seed_assets,
            adapter_factory=adapter_factory,
        )

    # --- Lifecycle ---

    async def start(self) -> None:
        async with self._lock:
            await self._restart()
        logger.info("Market data hub started")

    async def stop(self) -> None:
        async with self._lock:
            self._running = False
            await self._transport.stop()
        logger.info("Market data hub stopped")

    async def __aenter__(self) -> MarketDataHub:
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    # --- Read API ---

    @property
    def snapshot(self) -> Snapshot:
        return self._cache.get()

    @property
    def configuration(self) -> Configuration:
        return self._config

    @property
    def connection_status(self) -> ConnectionStatus:
        return self._transport.status

    @property
    def version(self) -> int:
        """Monotonic change counter. Useful for SSE change detection."""
        return self._version

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def transport(self) -> TransportManager:
        return self._transport

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def chart_data(self, symbol: str, timeframe: str = "1M") -> list[PricePoint]:
        """Synthetic OHLCV history for a symbol currently in the snapshot.

        Raises KeyError for unknown symbols and ValueError for unknown timeframes.
        """
        if timeframe not in CHART_TIMEFRAMES:
            raise ValueError(f"unknown timeframe {timeframe!r}; expected one of {', '.join(CHART_TIMEFRAMES)}")
        asset = self.snapshot.get(symbol)
        if asset is None:
            raise KeyError(symbol)
        seed = STOCK_SEEDS.get(symbol) or US_STOCK_SEEDS.get(symbol) or {}
        return chart_series(asset, timeframe, sector=seed.get("sector"))

    def sparkline(self, symbol: str, points: int = SPARKLINE_POINTS) -> list[float]:
        """Random-walk price line ending at the symbol's current price. Raises KeyError."""
        asset = self.snapshot.get(symbol)
        if asset is None:
            raise KeyError(symbol)
        return generate_series(asset.price, SPARKLINE_VOLATILITY, points)[::-1]

    # --- Setters ---

    async def set_api_provider(self, provider: ApiProvider | str) -> None:
        provider = self._coerce(ApiProvider, provider, "provider")
        await self._apply(lambda config: replace(config, api_provider=provider))

    async def set_connection_method(self, method: ConnectionMethod | str) -> None:
        method = self._coerce(ConnectionMethod, method, "connection method")
        await self._apply(lambda config: replace(config, connection_method=method))

    async def set_use_dummy_data(self, use: bool) -> None:
        await self._apply(lambda config: replace(config, use_dummy_data=bool(use)))

    async def refresh_data(self) -> None:
        """Force an immediate out-of-cycle update without waiting for the next tick."""
        if not self._running:
            logger.debug("refresh_data ignored: hub not running")
            return
        self._transport.refresh()

    # --- Internals ---

    async def _apply(self, change: Callable[[Configuration], Configuration]) -> None:
        # Validate before awaiting anything so conflicts are rejected synchronously
        self._validate(change(self._config))

        async with self._lock:
            candidate = change(self._config)
            self._validate(candidate)
            if candidate == self._config:
                return
            self._config = candidate
            logger.info("Configuration changed: %s", candidate.to_dict())
            self._notify("configuration")
            if self._running:
                await self._restart()

    def _coerce(self, enum_cls: type[Enum], value, label: str):
        if isinstance(value, enum_cls):
            return value
        try:
            return enum_cls(str(value).strip().upper())
        except ValueError:
            allowed = ", ".join(m.value for m in enum_cls)
            reason = f"unknown {label} {value!r}; expected one of {allowed}"
            self._transport.reject(reason)
            raise ConfigurationConflict(reason) from None

    def _validate(self, candidate: Configuration) -> None:
        try:
            validate_configuration(candidate)
        except ConfigurationConflict as e:
            self._transport.reject(str(e))
            raise

    async def _restart(self) -> None:
        self._reported.clear()
        snapshot = self._cache.get()
        if not snapshot.is_loading:
            self._publish(snapshot.with_loading(True))
        await self._transport.start(self._config)
        self._running = True

    def _ingest(self, asset_type: AssetType, ticks: list[Tick]) -> None:
        """Merge one batch into a new snapshot and publish it."""
        self._reported.add(asset_type)
        is_loading = len(self._reported) < len(AssetType)
        stock_ticks = ticks if asset_type is AssetType.STOCK else ()
        crypto_ticks = ticks if asset_type is AssetType.CRYPTO else ()
        self._publish(merge(self._cache.get(), stock_ticks, crypto_ticks, is_loading=is_loading))

    def _publish(self, snapshot: Snapshot) -> None:
        self._cache.publish(snapshot)
        self._notify("snapshot")

    def _status_changed(self, status: ConnectionStatus) -> None:
        self._notify("status")

    def _notify(self, kind: str) -> None:
        self._version += 1
        event = HubEvent(kind=kind, version=self._version)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Hub listener failed on %s event", kind)

    def _seed_assets(self, asset_type: AssetType) -> dict[str, dict]:
        return {
            a.symbol: {"name": a.name, "price": a.price, "volume": a.volume, "market_cap": a.market_cap}
            for a in self._cache.get().assets(asset_type)
        }
