"""Shared httpx plumbing for REST adapters."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, ClassVar

import httpx

from .errors import ErrorCode, ProviderError
from .interface import QuoteAdapter

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (X11; Linux x86_64) market-dashboard/0.1"


class HttpQuoteAdapter(QuoteAdapter):
    """QuoteAdapter backed by an httpx.AsyncClient.

    The client is created lazily and closed in aclose(). Tests inject their
    own client (e.g. one wrapping httpx.MockTransport); injected clients are
    left open for the caller to close.
    """

    base_url: ClassVar[str]
    headers: ClassVar[dict[str, str]] = {}

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float = 8.0) -> None:
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                headers={"User-Agent": USER_AGENT, **self.headers},
                follow_redirects=True,
            )
        return self._client

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
        if self._owns_client:
            self._client = None

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """GET base_url + path and decode JSON, mapping failures to ProviderError."""
        name = self.provider.value
        url = f"{self.base_url}{path}"
        try:
            response = await self._http().get(url, params=params)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise ProviderError(f"request timed out: {url}", code=ErrorCode.TIMEOUT, provider=name) from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == 429:
                raise ProviderError("rate limited (HTTP 429)", code=ErrorCode.RATE_LIMITED, provider=name) from e
            if status in (401, 403):
                raise ProviderError(
                    f"access denied (HTTP {status})",
                    code=ErrorCode.AUTH_FAILED,
                    provider=name,
                    retryable=False,
                ) from e
            raise ProviderError(f"HTTP {status} from {url}", code=ErrorCode.NETWORK, provider=name) from e
        except httpx.HTTPError as e:
            raise ProviderError(f"network error: {e}", code=ErrorCode.NETWORK, provider=name) from e

        try:
            return response.json()
        except ValueError as e:
            raise ProviderError("response is not valid JSON", code=ErrorCode.MALFORMED_PAYLOAD, provider=name) from e

    async def _get_many(self, requests: dict[str, tuple[str, dict | None]]) -> list[tuple[str, Any]]:
        """Run one GET per key concurrently. Returns [(key, payload)] for the successes.

        Partial failures are logged; if every request failed the first error is raised.
        """
        keys = list(requests)
        results = await asyncio.gather(
            *(self._get_json(path, params) for path, params in requests.values()),
            return_exceptions=True,
        )

        payloads: list[tuple[str, Any]] = []
        failures: list[ProviderError] = []
        for key, result in zip(keys, results):
            if isinstance(result, ProviderError):
                failures.append(result)
            elif isinstance(result, BaseException):
                raise result
            else:
                payloads.append((key, result))

        if failures and not payloads:
            raise failures[0]
        if failures:
            logger.warning(
                "%s poll: %d/%d requests failed: %s", self.provider.value, len(failures), len(keys), failures[0]
            )
        return payloads
