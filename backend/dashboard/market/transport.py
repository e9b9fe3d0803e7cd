"""Transport manager: runs one generation of polling, streaming or synthetic lanes."""

from __future__ import annotations

import asyncio
import logging
import random
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass

from .config import MarketSettings
from .errors import ErrorCode, ProviderError
from .factory import create_adapter, provider_spec
from .interface import QuoteAdapter, Subscription
from .models import (
    ApiProvider,
    AssetType,
    Configuration,
    ConnectionMethod,
    ConnectionState,
    ConnectionStatus,
    Tick,
)
from .seed_prices import CRYPTO_SEEDS, STOCK_SEEDS
from .simulator import RandomWalkGenerator

logger = logging.getLogger(__name__)

TickSink = Callable[[AssetType, list[Tick]], None]
StatusCallback = Callable[[ConnectionStatus], None]
SeedAssets = Callable[[AssetType], dict[str, dict]]
AdapterFactory = Callable[[ApiProvider, MarketSettings], QuoteAdapter]

CATALOGS: dict[AssetType, dict[str, dict]] = {
    AssetType.STOCK: STOCK_SEEDS,
    AssetType.CRYPTO: CRYPTO_SEEDS,
}


class CancellationToken:
    """Marks which transport generation produced a tick or status change."""

    __slots__ = ("generation", "_cancelled")

    def __init__(self, generation: int) -> None:
        self.generation = generation
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


@dataclass(frozen=True)
class Backoff:
    """Exponential, capped, jittered retry delays.

    delay(n) = min(maximum, initial * factor ** (n - 1)) + U(0, jitter * that)
    """

    initial: float = 1.0
    factor: float = 2.0
    maximum: float = 30.0
    jitter: float = 0.1

    @classmethod
    def from_settings(cls, settings: MarketSettings) -> Backoff:
        return cls(
            initial=settings.backoff_initial,
            factor=settings.backoff_factor,
            maximum=settings.backoff_max,
            jitter=settings.backoff_jitter,
        )

    def delay(self, attempt: int) -> float:
        base = min(self.maximum, self.initial * self.factor ** max(attempt - 1, 0))
        if self.jitter > 0:
            base += random.uniform(0, self.jitter * base)
        return base


class TransportManager:
    """Owns exactly one active transport generation.

    start(config) builds one lane per asset class: the class served by the
    configured provider gets a polling or streaming lane, the other class (or
    both, in dummy mode) gets a synthetic lane at the same cadence.

    Every delivery and status change is tagged with the generation's
    CancellationToken; anything from a superseded generation is dropped, so
    a late response can never reach the aggregator after a restart.

    States: idle → connecting → connected ⇄ error / disconnected; stop() → idle.
    """

    def __init__(
        self,
        settings: MarketSettings,
        sink: TickSink,
        on_status: StatusCallback | None = None,
        seed_assets: SeedAssets | None = None,
        adapter_factory: AdapterFactory = create_adapter,
    ) -> None:
        self._settings = settings
        self._sink = sink
        self._on_status = on_status
        self._seed_assets = seed_assets
        self._adapter_factory = adapter_factory
        self._backoff = Backoff.from_settings(settings)

        self._generation = 0
        self._token: CancellationToken | None = None
        self._lanes: list[_Lane] = []
        self._adapters: list[QuoteAdapter] = []
        self._status = ConnectionStatus()

    # --- Public API ---

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def settings(self) -> MarketSettings:
        return self._settings

    @property
    def backoff(self) -> Backoff:
        return self._backoff

    @property
    def is_running(self) -> bool:
        return self._token is not None

    @property
    def adapters(self) -> list[QuoteAdapter]:
        """Live adapters of the current generation (empty in synthetic mode)."""
        return list(self._adapters)

    async def start(self, config: Configuration) -> None:
        """Stop whatever is running and start a new generation for config."""
        await self.stop()

        self._generation += 1
        token = CancellationToken(self._generation)

        method = config.connection_method
        interval = self._settings.poll_interval if method is ConnectionMethod.REST else self._settings.stream_interval

        live_class: AssetType | None = None
        if not config.is_synthetic:
            spec = provider_spec(config.api_provider)
            adapter = self._adapter_factory(config.api_provider, self._settings)
            self._adapters.append(adapter)
            live_class = spec.asset_type
            lane_cls = StreamingLane if method is ConnectionMethod.WEBSOCKET else PollingLane
            self._lanes.append(lane_cls(self, token, adapter, spec.label, interval))

        for asset_type in AssetType:
            if asset_type is not live_class:
                self._lanes.append(SyntheticLane(self, token, asset_type, self.make_generator(asset_type), interval))

        self._token = token

        if live_class is None:
            self.report(token, ConnectionStatus(ConnectionState.IDLE, "Using synthetic data"))
        else:
            self.report(
                token,
                ConnectionStatus(ConnectionState.CONNECTING, f"Connecting to {provider_spec(config.api_provider).label}"),
            )

        for lane in self._lanes:
            lane.start()
        logger.info(
            "Transport generation %d started: provider=%s method=%s dummy=%s",
            token.generation,
            config.api_provider.value,
            method.value,
            config.use_dummy_data,
        )

    async def stop(self) -> None:
        """Cancel pending work, close streams and adapters, go idle.

        Safe to call multiple times. When stop() returns, nothing from the
        stopped generation can reach the sink.
        """
        token, self._token = self._token, None
        if token is not None:
            token.cancel()

        lanes, self._lanes = self._lanes, []
        for lane in lanes:
            await lane.close()

        adapters, self._adapters = self._adapters, []
        for adapter in adapters:
            try:
                await adapter.aclose()
            except Exception:
                logger.exception("Closing %s adapter failed", adapter.provider.value)

        if token is not None:
            logger.info("Transport generation %d stopped", token.generation)
        self._set_status(ConnectionStatus(ConnectionState.IDLE, "Stopped"))

    def refresh(self) -> None:
        """Ask every lane for an immediate out-of-cycle update."""
        for lane in self._lanes:
            lane.refresh()

    def reject(self, reason: str) -> None:
        """Flag a rejected configuration change; the running transport is untouched."""
        logger.warning("Configuration rejected: %s", reason)
        self._set_status(ConnectionStatus(ConnectionState.ERROR, reason))

    # --- Used by lanes ---

    def is_current(self, token: CancellationToken) -> bool:
        return not token.cancelled and token is self._token

    def deliver(self, token: CancellationToken, asset_type: AssetType, ticks: list[Tick]) -> bool:
        """Forward ticks to the sink unless they come from a superseded generation."""
        if not self.is_current(token):
            logger.debug(
                "Discarding %d stale %s ticks from generation %d", len(ticks), asset_type.value, token.generation
            )
            return False
        self._sink(asset_type, ticks)
        return True

    def report(self, token: CancellationToken, status: ConnectionStatus) -> bool:
        if not self.is_current(token):
            return False
        self._set_status(status)
        return True

    def make_generator(self, asset_type: AssetType, snapshot_only: bool = False) -> RandomWalkGenerator:
        """Generator seeded from the catalog overlaid with the latest snapshot prices.

        snapshot_only=True (fallback) walks only the symbols already on screen,
        falling back to the catalog when nothing has been seen yet.
        """
        seen = self._seed_assets(asset_type) if self._seed_assets else {}
        catalog = CATALOGS[asset_type]
        if snapshot_only and seen:
            catalog = {symbol: meta for symbol, meta in catalog.items() if symbol in seen}
        generator = RandomWalkGenerator(
            catalog,
            volatility=self._settings.synthetic_volatility,
            seed=self._settings.synthetic_seed,
        )
        generator.reseed({symbol: meta["price"] for symbol, meta in seen.items()})
        return generator

    # --- Internals ---

    def _set_status(self, status: ConnectionStatus) -> None:
        if status == self._status:
            return
        self._status = status
        logger.debug("Connection status: %s (%s)", status.state.value, status.reason)
        if self._on_status:
            self._on_status(status)


class _Lane(ABC):
    """One asset class's source within a transport generation."""

    def __init__(self, manager: TransportManager, token: CancellationToken, asset_type: AssetType, interval: float) -> None:
        self._manager = manager
        self._token = token
        self.asset_type = asset_type
        self._interval = interval
        self._task: asyncio.Task | None = None
        self._wake = asyncio.Event()

    def start(self) -> None:
        name = f"{type(self).__name__.lower()}-{self.asset_type.value.lower()}-g{self._token.generation}"
        self._task = asyncio.create_task(self._run(), name=name)

    def refresh(self) -> None:
        self._wake.set()

    async def close(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None

    @abstractmethod
    async def _run(self) -> None:
        """Lane body; runs until cancelled."""

    async def _wait(self, delay: float) -> None:
        """Sleep for delay seconds, or until refresh() is called."""
        try:
            await asyncio.wait_for(self._wake.wait(), timeout=delay)
        except TimeoutError:
            pass
        self._wake.clear()

    def _deliver(self, ticks: list[Tick]) -> bool:
        return self._manager.deliver(self._token, self.asset_type, ticks)


class SyntheticLane(_Lane):
    """Feeds random-walk ticks at the transport's cadence."""

    def __init__(
        self,
        manager: TransportManager,
        token: CancellationToken,
        asset_type: AssetType,
        generator: RandomWalkGenerator,
        interval: float,
    ) -> None:
        super().__init__(manager, token, asset_type, interval)
        self._generator = generator

    async def _run(self) -> None:
        """Core loop: publish current prices, then step, deliver, sleep."""
        self._deliver(self._generator.current())
        while True:
            await self._wait(self._interval)
            try:
                self._deliver(self._generator.step())
            except Exception:
                logger.exception("Synthetic %s step failed", self.asset_type.value)


class _LiveLane(_Lane):
    """Shared retry / fallback handling for lanes backed by an adapter."""

    def __init__(
        self,
        manager: TransportManager,
        token: CancellationToken,
        adapter: QuoteAdapter,
        label: str,
        interval: float,
    ) -> None:
        super().__init__(manager, token, adapter.asset_type, interval)
        self._adapter = adapter
        self._label = label
        self._timeout = manager.settings.fetch_timeout
        self._attempt = 0
        self._fallback_task: asyncio.Task | None = None
        self._fetch_task: asyncio.Task | None = None
        self._retired: set[asyncio.Task] = set()  # Cancelled fallbacks not yet finished

    @property
    def fallback_active(self) -> bool:
        return self._fallback_task is not None

    async def close(self) -> None:
        await super().close()
        for task in (self._fetch_task, self._fallback_task, *self._retired):
            if task and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._fetch_task = None
        self._fallback_task = None
        self._retired.clear()

    async def _fetch(self) -> list[Tick]:
        """One bounded fetch_once(); every failure comes out as ProviderError."""
        try:
            return await asyncio.wait_for(self._adapter.fetch_once(), timeout=self._timeout)
        except TimeoutError as e:
            raise ProviderError(
                f"fetch timed out after {self._timeout:g}s",
                code=ErrorCode.TIMEOUT,
                provider=self._adapter.provider.value,
            ) from e
        except ProviderError:
            raise
        except Exception as e:
            logger.exception("%s fetch failed unexpectedly", self._label)
            raise ProviderError(str(e), provider=self._adapter.provider.value) from e

    def _succeeded(self) -> None:
        """Live data arrived: clear the retry count and any fallback."""
        self._attempt = 0
        self._stop_fallback()
        self._connected()

    def _connected(self) -> None:
        self._manager.report(
            self._token,
            ConnectionStatus(ConnectionState.CONNECTED, f"Connected to {self._label}", fallback=self.fallback_active),
        )

    def _failed(self, error: ProviderError, state: ConnectionState = ConnectionState.ERROR) -> float:
        """Record a failure, maybe engage the fallback, and return the retry delay."""
        settings = self._manager.settings
        self._attempt += 1
        if not error.retryable:
            self._attempt = max(self._attempt, settings.max_retries)
        delay = self._manager.backoff.delay(self._attempt)

        reason = str(error)
        if settings.fallback_to_synthetic and self._attempt >= settings.max_retries:
            self._start_fallback()
            reason = f"{reason}; {self._label} unavailable after {self._attempt} attempts, showing synthetic data"

        logger.warning("%s failed (attempt %d): %s; retrying in %.1fs", self._label, self._attempt, error, delay)
        self._manager.report(
            self._token,
            ConnectionStatus(state, reason, retry_in=round(delay, 3), fallback=self.fallback_active),
        )
        return delay

    def _start_fallback(self) -> None:
        if self._fallback_task is not None:
            return
        generator = self._manager.make_generator(self.asset_type, snapshot_only=True)
        self._fallback_task = asyncio.create_task(
            self._fallback_loop(generator),
            name=f"fallback-{self.asset_type.value.lower()}-g{self._token.generation}",
        )
        logger.warning("%s: falling back to synthetic %s data", self._label, self.asset_type.value)

    def _stop_fallback(self) -> None:
        task, self._fallback_task = self._fallback_task, None
        if task is None:
            return
        task.cancel()
        self._retired.add(task)
        task.add_done_callback(self._retired.discard)
        logger.info("%s recovered; synthetic fallback stopped", self._label)

    async def _fallback_loop(self, generator: RandomWalkGenerator) -> None:
        self._deliver(generator.current())
        while True:
            await asyncio.sleep(self._interval)
            self._deliver(generator.step())


class PollingLane(_LiveLane):
    """Fixed-interval fetch_once() with skip-on-overlap and backoff on failure.

    A timer tick that fires while the previous fetch is still outstanding is
    skipped, not queued. After a failure the next fetch waits for the backoff
    delay instead of the poll interval.
    """

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        while True:
            started = loop.time()
            self._fetch_task = asyncio.create_task(self._fetch())
            while True:
                done, _ = await asyncio.wait({self._fetch_task}, timeout=self._interval)
                if done:
                    break
                logger.debug("%s poll tick skipped: previous fetch still outstanding", self._label)

            fetch, self._fetch_task = self._fetch_task, None
            try:
                ticks = fetch.result()
            except ProviderError as e:
                delay = self._failed(e)
            else:
                self._deliver(ticks)
                self._succeeded()
                elapsed = loop.time() - started
                delay = self._interval - (elapsed % self._interval)
            await self._wait(delay)


class StreamingLane(_LiveLane):
    """Holds one subscription at a time; re-subscribes after backoff when it drops.

    The subscribe ack only reports CONNECTED. The retry count and any
    fallback are cleared once the stream delivers a tick or stays up for
    stable_after seconds, so an endpoint that accepts and then drops
    straight away still backs off and eventually falls back.
    """

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._subscription: Subscription | None = None
        self.stable_after = max(self._interval, self._manager.backoff.maximum)

    def refresh(self) -> None:
        # Out-of-cycle REST fetch alongside the stream; never two at once
        if self._fetch_task and not self._fetch_task.done():
            return
        self._fetch_task = asyncio.create_task(self._snapshot_fetch())

    async def _snapshot_fetch(self) -> None:
        try:
            self._deliver(await self._fetch())
        except ProviderError as e:
            logger.warning("%s snapshot fetch failed: %s", self._label, e)

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        while True:
            lost: asyncio.Future = loop.create_future()

            def on_error(error: ProviderError, lost: asyncio.Future = lost) -> None:
                if not lost.done():
                    lost.set_result(error)

            try:
                subscription = await asyncio.wait_for(
                    self._adapter.subscribe(self._on_stream_ticks, on_error), timeout=self._timeout
                )
            except TimeoutError:
                error = ProviderError(
                    f"subscribe timed out after {self._timeout:g}s",
                    code=ErrorCode.TIMEOUT,
                    provider=self._adapter.provider.value,
                )
            except ProviderError as e:
                error = e
            except Exception as e:
                logger.exception("%s subscribe failed unexpectedly", self._label)
                error = ProviderError(str(e), provider=self._adapter.provider.value)
            else:
                self._subscription = subscription
                self._connected()
                self.refresh()  # Fill every symbol now; trade streams only report symbols that trade
                try:
                    error = await self._hold(lost)
                finally:
                    self._subscription = None
                    await subscription.close()

            state = ConnectionState.DISCONNECTED if error.code is ErrorCode.STREAM_CLOSED else ConnectionState.ERROR
            await asyncio.sleep(self._failed(error, state))

    async def _hold(self, lost: asyncio.Future) -> ProviderError:
        """Wait for the subscription to drop, marking it healthy once it proves stable."""
        done, _ = await asyncio.wait({lost}, timeout=self.stable_after)
        if not done and self._attempt:
            self._succeeded()
        return await lost

    def _on_stream_ticks(self, ticks: list[Tick]) -> None:
        if self._deliver(ticks) and self._attempt:
            self._succeeded()
