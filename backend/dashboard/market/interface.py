"""Abstract interface for provider adapters."""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from typing import Any, ClassVar

from .errors import ErrorCode, ProviderError
from .models import ApiProvider, AssetType, Tick

logger = logging.getLogger(__name__)

TickCallback = Callable[[list[Tick]], None]
ErrorCallback = Callable[[ProviderError], None]


def coerce_price(value: Any) -> float:
    """Parse a provider price (number or numeric string). Raises ValueError if unusable."""
    if isinstance(value, bool) or value is None:
        raise ValueError(f"not a price: {value!r}")
    price = float(value)
    if not math.isfinite(price) or price <= 0:
        raise ValueError(f"not a positive price: {value!r}")
    return price


def coerce_optional(value: Any) -> float | None:
    """Parse an optional numeric field; unusable values become None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


class Subscription(ABC):
    """Handle for an open streaming subscription."""

    @abstractmethod
    async def close(self) -> None:
        """Close the stream. Safe to call multiple times.

        After close() returns, no further callbacks are made.
        """


class QuoteAdapter(ABC):
    """Contract for provider adapters.

    An adapter translates one provider's wire format into Ticks. It never
    computes change fields and never touches the snapshot; the transport
    manager drives it and forwards its ticks.

    Lifecycle:
        adapter = create_adapter(ApiProvider.BINANCE, settings)
        ticks = await adapter.fetch_once()                 # polling
        sub = await adapter.subscribe(on_tick, on_error)   # streaming
        ...
        await sub.close()
        await adapter.aclose()
    """

    provider: ClassVar[ApiProvider]
    asset_type: ClassVar[AssetType]
    supports_streaming: ClassVar[bool] = False

    @abstractmethod
    async def fetch_once(self) -> list[Tick]:
        """Fetch one batch of quotes.

        Malformed records are skipped with a warning. Failures of the whole
        request raise ProviderError.
        """

    async def subscribe(self, on_tick: TickCallback, on_error: ErrorCallback) -> Subscription:
        """Open a stream; returns once the provider acknowledged it.

        on_tick receives each parsed batch; on_error receives exactly one
        ProviderError when the stream fails or is closed by the remote end.
        """
        raise ProviderError(
            "streaming is not supported",
            code=ErrorCode.UNSUPPORTED,
            provider=self.provider.value,
            retryable=False,
        )

    async def aclose(self) -> None:
        """Release network resources. Safe to call multiple times."""

    def parse_records(self, records: Iterable[Any], parse: Callable[[Any], Tick | None]) -> list[Tick]:
        """Apply parse() to each record, dropping the ones that fail."""
        ticks: list[Tick] = []
        for record in records:
            try:
                tick = parse(record)
            except (KeyError, IndexError, TypeError, ValueError, AttributeError) as e:
                logger.warning("%s: skipping malformed record: %s", self.provider.value, e)
                continue
            if tick is not None:
                ticks.append(tick)
        return ticks
