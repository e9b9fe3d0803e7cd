"""Random-walk synthetic market data."""

from __future__ import annotations

import logging
import math
import time

import numpy as np

from .models import Asset, AssetType, PricePoint, Tick, display_price
from .seed_prices import (
    CHART_TIMEFRAMES,
    CRYPTO_CHART_VOLATILITY,
    DEFAULT_STOCK_CHART_VOLATILITY,
    SECTOR_CHART_VOLATILITY,
    TICK_VOLATILITY,
)

logger = logging.getLogger(__name__)

# Prices never drop below this; the walk is clamped instead
MIN_PRICE = 1e-6


def next_price(price: float, volatility: float, u: float) -> float:
    """One random-walk step.

    Math:
        P(t+1) = P(t) * (1 + (U - 0.5) * volatility)

    Where U is uniform on [0, 1). For volatility < 1 the factor is always
    above 0.5, so only floating-point underflow can reach the floor.
    """
    return max(price * (1 + (u - 0.5) * volatility), MIN_PRICE)


def generate_series(
    seed_price: float,
    volatility: float,
    points: int,
    rng: np.random.Generator | None = None,
) -> list[float]:
    """N-point price series starting at seed_price, for charting."""
    if points <= 0:
        return []
    rng = rng if rng is not None else np.random.default_rng()
    series = [max(seed_price, MIN_PRICE)]
    for u in rng.random(points - 1):
        series.append(next_price(series[-1], volatility, float(u)))
    return series


def generate_candles(
    base_price: float,
    points: int,
    volatility: float,
    trend: float = 0.0,
    rng: np.random.Generator | None = None,
    interval: float = 86_400.0,
    end: float | None = None,
) -> list[PricePoint]:
    """OHLCV bars ending at `end` (default: now), one per `interval` seconds.

    trend in [-1, 1] biases each bar's move up or down by up to 10% of the
    volatility band. Volume grows with the size of the move.
    """
    rng = rng if rng is not None else np.random.default_rng()
    end = end if end is not None else time.time()
    bars: list[PricePoint] = []
    price = max(base_price, MIN_PRICE)

    for i in range(points):
        u_move, u_high, u_low, u_vol = rng.random(4)
        move = (u_move - 0.5 + trend * 0.1) * volatility
        open_ = price
        close = max(open_ * (1 + move), MIN_PRICE)
        high = max(open_, close) * (1 + u_high * 0.005)
        low = max(min(open_, close) * (1 - u_low * 0.005), MIN_PRICE)
        volume = math.floor(base_price * 5000 * (1 + abs(move) * 10) * (0.7 + u_vol * 0.6))
        bars.append(
            PricePoint(
                timestamp=end - (points - i - 1) * interval,
                open=open_,
                high=high,
                low=low,
                close=close,
                volume=volume,
            )
        )
        price = close

    return bars


def chart_series(
    asset: Asset,
    timeframe: str,
    sector: str | None = None,
    rng: np.random.Generator | None = None,
) -> list[PricePoint]:
    """Synthetic chart history for an asset over one of CHART_TIMEFRAMES."""
    points, scale = CHART_TIMEFRAMES[timeframe]
    if asset.type is AssetType.CRYPTO:
        volatility = CRYPTO_CHART_VOLATILITY
        trend = 0.4 if asset.change_percent > 0 else -0.4
    else:
        volatility = SECTOR_CHART_VOLATILITY.get(sector or "", DEFAULT_STOCK_CHART_VOLATILITY)
        trend = 0.3 if asset.change_percent > 0 else -0.3
    # 1D is hourly bars; everything else daily
    interval = 3_600.0 if timeframe == "1D" else 86_400.0
    return generate_candles(asset.price, points, volatility * scale, trend, rng=rng, interval=interval)


class RandomWalkGenerator:
    """Synthetic quote source for a fixed set of symbols.

    Each step() moves every price by next_price() and jitters volume by
    +/-30% around its seed, so ticks look structurally identical to live ones.
    """

    def __init__(
        self,
        assets: dict[str, dict],
        volatility: float = TICK_VOLATILITY,
        seed: int | None = None,
    ) -> None:
        if not 0 <= volatility < 1:
            raise ValueError(f"volatility must be in [0, 1), got {volatility}")
        self._rng = np.random.default_rng(seed)
        self._volatility = volatility
        self._symbols: list[str] = []
        self._prices: dict[str, float] = {}
        self._meta: dict[str, dict] = {}
        for symbol, meta in assets.items():
            self._add(symbol, float(meta["price"]), meta)

    # --- Public API ---

    @property
    def symbols(self) -> list[str]:
        return list(self._symbols)

    def get_price(self, symbol: str) -> float | None:
        """Current price for a symbol, or None if not tracked."""
        return self._prices.get(symbol)

    def current(self) -> list[Tick]:
        """Ticks for the current prices without advancing the walk."""
        now = time.time()
        return [self._tick(symbol, self._prices[symbol], None, now) for symbol in self._symbols]

    def step(self) -> list[Tick]:
        """Advance every symbol by one step. Returns one tick per symbol."""
        n = len(self._symbols)
        if n == 0:
            return []

        draws = self._rng.random(n)
        jitter = self._rng.uniform(0.7, 1.3, n)
        now = time.time()

        ticks: list[Tick] = []
        for i, symbol in enumerate(self._symbols):
            self._prices[symbol] = next_price(self._prices[symbol], self._volatility, float(draws[i]))
            ticks.append(self._tick(symbol, self._prices[symbol], float(jitter[i]), now))
        return ticks

    def reseed(self, prices: dict[str, float]) -> None:
        """Continue the walk from the given prices. Unknown symbols are added."""
        for symbol, price in prices.items():
            if price <= 0:
                continue
            if symbol in self._prices:
                self._prices[symbol] = price
            else:
                self._add(symbol, price, {})
        logger.debug("Generator reseeded with %d prices", len(prices))

    # --- Internals ---

    def _add(self, symbol: str, price: float, meta: dict) -> None:
        self._symbols.append(symbol)
        self._prices[symbol] = max(price, MIN_PRICE)
        self._meta[symbol] = meta

    def _tick(self, symbol: str, price: float, jitter: float | None, now: float) -> Tick:
        meta = self._meta[symbol]
        volume = meta.get("volume")
        if volume is not None and jitter is not None:
            volume = float(math.floor(volume * jitter))
        return Tick(
            symbol=symbol,
            price=max(display_price(price), MIN_PRICE),
            name=meta.get("name"),
            volume=volume,
            market_cap=meta.get("market_cap"),
            timestamp=now,
        )
