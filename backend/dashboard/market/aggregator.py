"""Merge incoming ticks into a new immutable Snapshot."""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Iterable

from .models import Asset, AssetType, Snapshot, Tick

logger = logging.getLogger(__name__)


def merge(
    previous: Snapshot,
    stock_ticks: Iterable[Tick],
    crypto_ticks: Iterable[Tick],
    *,
    is_loading: bool = False,
    timestamp: float | None = None,
) -> Snapshot:
    """Build the next snapshot from the previous one and two tick batches.

    Pure: the result depends only on the arguments.

    - previous_price comes from the previous snapshot's price for the symbol,
      or from the tick itself when the symbol is new. Provider-supplied deltas
      are never used, so a provider switch keeps one baseline.
    - Within a batch, ticks apply in order; a later tick for the same symbol wins.
    - Symbols missing from the batch are carried forward unchanged.
    - Output collections are sorted by symbol.
    """
    return Snapshot(
        stocks=_merge_class(previous.stocks, stock_ticks, AssetType.STOCK),
        cryptos=_merge_class(previous.cryptos, crypto_ticks, AssetType.CRYPTO),
        is_loading=is_loading,
        timestamp=timestamp if timestamp is not None else time.time(),
    )


def _merge_class(
    previous: tuple[Asset, ...],
    ticks: Iterable[Tick],
    asset_type: AssetType,
) -> tuple[Asset, ...]:
    baseline = {asset.symbol: asset for asset in previous}
    merged = dict(baseline)

    for tick in ticks:
        if not _valid_price(tick.price):
            logger.warning("Dropping %s tick for %s: invalid price %r", asset_type.value, tick.symbol, tick.price)
            continue

        prev = baseline.get(tick.symbol)
        merged[tick.symbol] = Asset(
            symbol=tick.symbol,
            name=tick.name or (prev.name if prev else tick.symbol),
            type=asset_type,
            price=tick.price,
            previous_price=prev.price if prev else tick.price,
            volume=max(_first_not_none(tick.volume, prev.volume if prev else None, 0.0), 0.0),
            market_cap=tick.market_cap if tick.market_cap is not None else (prev.market_cap if prev else None),
            timestamp=tick.timestamp,
        )

    return tuple(merged[symbol] for symbol in sorted(merged))


def _valid_price(price: float) -> bool:
    return isinstance(price, (int, float)) and math.isfinite(price) and price > 0


def _first_not_none(*values):
    for value in values:
        if value is not None:
            return value
    return None
