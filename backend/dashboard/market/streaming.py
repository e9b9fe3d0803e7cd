"""WebSocket plumbing for streaming adapters."""

from __future__ import annotations

import asyncio
import json
import logging
from abc import abstractmethod
from typing import Any, ClassVar

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from .errors import ErrorCode, ProviderError
from .interface import ErrorCallback, Subscription, TickCallback
from .models import Tick
from .rest import HttpQuoteAdapter

logger = logging.getLogger(__name__)


class WebSocketSubscription(Subscription):
    """One open WebSocket plus the task reading from it."""

    def __init__(
        self,
        ws: Any,
        adapter: StreamingQuoteAdapter,
        on_tick: TickCallback,
        on_error: ErrorCallback,
    ) -> None:
        self._ws = ws
        self._adapter = adapter
        self._on_tick = on_tick
        self._on_error = on_error
        self._task: asyncio.Task | None = None
        self._closed = False

    def start(self) -> None:
        name = self._adapter.provider.value.lower()
        self._task = asyncio.create_task(self._read_loop(), name=f"{name}-stream")

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        await self._ws.close()
        logger.info("%s stream closed", self._adapter.provider.value)

    async def _read_loop(self) -> None:
        provider = self._adapter.provider.value
        try:
            async for raw in self._ws:
                ticks = self._adapter.decode(raw)
                if ticks and not self._closed:
                    self._on_tick(ticks)
            error = ProviderError("stream closed by remote end", code=ErrorCode.STREAM_CLOSED, provider=provider)
        except ConnectionClosed as e:
            error = ProviderError(f"stream closed: {e}", code=ErrorCode.STREAM_CLOSED, provider=provider)
        except ProviderError as e:
            error = e
        if not self._closed:
            self._on_error(error)


class StreamingQuoteAdapter(HttpQuoteAdapter):
    """HTTP adapter that can also stream ticks over a WebSocket.

    Subclasses provide stream_url(), optionally handshake() (send a subscribe
    message and wait for the provider's ack), and parse_message().
    """

    supports_streaming: ClassVar[bool] = True
    ping_interval: ClassVar[float] = 20.0

    @abstractmethod
    def stream_url(self) -> str:
        """Full WebSocket URL including any stream selection."""

    @abstractmethod
    def parse_message(self, message: Any) -> list[Tick]:
        """Decode one JSON message into ticks (possibly none).

        Raises ProviderError if the provider reports an error on the stream.
        """

    async def handshake(self, ws: Any) -> None:
        """Complete the subscription. Default: an open connection is the ack."""

    def decode(self, raw: str | bytes) -> list[Tick]:
        try:
            message = json.loads(raw)
        except ValueError:
            logger.warning("%s: skipping non-JSON stream message", self.provider.value)
            return []
        return self.parse_message(message)

    async def subscribe(self, on_tick: TickCallback, on_error: ErrorCallback) -> Subscription:
        name = self.provider.value
        url = self.stream_url()
        try:
            ws = await websockets.connect(
                url,
                open_timeout=self._timeout,
                ping_interval=self.ping_interval,
                ping_timeout=self.ping_interval,
            )
        except TimeoutError as e:
            raise ProviderError("stream connect timed out", code=ErrorCode.TIMEOUT, provider=name) from e
        except (OSError, WebSocketException) as e:
            raise ProviderError(f"cannot connect stream: {e}", code=ErrorCode.NETWORK, provider=name) from e

        try:
            await self.handshake(ws)
        except ConnectionClosed as e:
            await ws.close()
            raise ProviderError(
                f"stream closed during subscribe: {e}", code=ErrorCode.STREAM_CLOSED, provider=name
            ) from e
        except BaseException:
            await ws.close()
            raise

        subscription = WebSocketSubscription(ws, self, on_tick, on_error)
        subscription.start()
        logger.info("%s stream subscribed: %s", name, url)
        return subscription
