"""Test doubles for market data tests.

The fake adapters stand in for real providers in transport and hub tests.
They count calls, can be slowed down or made to fail, and expose the
callbacks handed to subscribe() so tests can push ticks or errors.
"""

import asyncio
from types import SimpleNamespace

import pytest

from dashboard.market.errors import ErrorCode, ProviderError
from dashboard.market.factory import PROVIDERS
from dashboard.market.interface import QuoteAdapter, Subscription
from dashboard.market.models import ApiProvider, AssetType, Tick

DEFAULT_TICKS = {
    AssetType.STOCK: [Tick(symbol="RELIANCE", price=2900.0)],
    AssetType.CRYPTO: [Tick(symbol="BTCUSDT", price=61000.0)],
}


class FakeSubscription(Subscription):
    def __init__(self) -> None:
        self.closed = False

    async def close(self) -> None:
        self.closed = True


class FakeAdapter(QuoteAdapter):
    """Polling double. responses items are tick lists or exceptions to raise."""

    provider = ApiProvider.COINGECKO
    asset_type = AssetType.CRYPTO

    def __init__(self, provider=None, responses=None, delay: float = 0.0) -> None:
        if provider is not None:
            self.provider = provider
            self.asset_type = PROVIDERS[provider].asset_type
        self.responses = list(responses or [])
        self.delay = delay
        self.calls = 0
        self.active = 0
        self.max_active = 0
        self.closed = False

    async def fetch_once(self) -> list[Tick]:
        self.calls += 1
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            item = self.responses.pop(0) if self.responses else DEFAULT_TICKS[self.asset_type]
        finally:
            self.active -= 1
        if isinstance(item, BaseException):
            raise item
        return list(item)

    async def aclose(self) -> None:
        self.closed = True


class FakeStreamingAdapter(FakeAdapter):
    """Streaming double.

    subscribe_errors are raised by successive subscribe() calls,
    subscribe_delays slow them down, and the first `drops` subscriptions
    report a closed stream right after the ack.
    """

    provider = ApiProvider.BINANCE
    supports_streaming = True

    def __init__(
        self,
        provider=None,
        responses=None,
        delay: float = 0.0,
        subscribe_errors=None,
        subscribe_delays=None,
        drops: int = 0,
    ) -> None:
        super().__init__(provider, responses, delay)
        self.subscribe_errors = list(subscribe_errors or [])
        self.subscribe_delays = list(subscribe_delays or [])
        self.drops = drops
        self.subscribe_calls = 0
        self.subscriptions: list[FakeSubscription] = []
        self.on_tick = None
        self.on_error = None

    async def subscribe(self, on_tick, on_error) -> Subscription:
        self.subscribe_calls += 1
        if self.subscribe_delays:
            await asyncio.sleep(self.subscribe_delays.pop(0))
        if self.subscribe_errors:
            raise self.subscribe_errors.pop(0)
        self.on_tick, self.on_error = on_tick, on_error
        subscription = FakeSubscription()
        self.subscriptions.append(subscription)
        if self.drops:
            self.drops -= 1
            closed = ProviderError("stream closed", code=ErrorCode.STREAM_CLOSED, provider=self.provider.value)
            asyncio.get_running_loop().call_soon(on_error, closed)
        return subscription


class FakeAdapterFactory:
    """Drop-in for create_adapter that records every adapter it builds.

    builders maps a provider to a zero-argument callable returning the adapter.
    """

    def __init__(self, builders=None) -> None:
        self.builders = dict(builders or {})
        self.created: list[FakeAdapter] = []

    def __call__(self, provider, settings) -> FakeAdapter:
        if provider in self.builders:
            adapter = self.builders[provider]()
        elif PROVIDERS[provider].supports_streaming:
            adapter = FakeStreamingAdapter(provider)
        else:
            adapter = FakeAdapter(provider)
        self.created.append(adapter)
        return adapter


@pytest.fixture
def adapter_factory():
    return FakeAdapterFactory()


@pytest.fixture
def doubles():
    return SimpleNamespace(
        FakeAdapter=FakeAdapter,
        FakeStreamingAdapter=FakeStreamingAdapter,
        FakeAdapterFactory=FakeAdapterFactory,
    )


@pytest.fixture
def recorder():
    """Sink and status callback that record what the transport delivers."""

    class Recorder:
        def __init__(self) -> None:
            self.batches: list[tuple[AssetType, list[Tick]]] = []
            self.statuses = []

        def sink(self, asset_type, ticks) -> None:
            self.batches.append((asset_type, list(ticks)))

        def on_status(self, status) -> None:
            self.statuses.append(status)

        def ticks(self, asset_type):
            return [t for kind, batch in self.batches if kind is asset_type for t in batch]

        def states(self):
            return [s.state for s in self.statuses]

    return Recorder()
