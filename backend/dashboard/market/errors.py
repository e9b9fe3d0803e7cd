"""Error types for the market data subsystem."""

from __future__ import annotations

from enum import Enum


class ErrorCode(Enum):
    """Failure classification reported by provider adapters."""

    NETWORK = "network"
    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    AUTH_FAILED = "auth_failed"
    MALFORMED_PAYLOAD = "malformed_payload"
    STREAM_CLOSED = "stream_closed"
    UNSUPPORTED = "unsupported"


class MarketDataError(Exception):
    """Base class for all market data errors."""


class ProviderError(MarketDataError):
    """A provider fetch or stream failed.

    Attributes:
        code: Structured failure classification.
        provider: Name of the provider that failed (e.g. "BINANCE").
        retryable: Whether the transport should retry after a backoff delay.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.NETWORK,
        provider: str | None = None,
        retryable: bool = True,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.provider = provider
        self.retryable = retryable

    def __str__(self) -> str:
        base = super().__str__()
        if self.provider:
            return f"{self.provider}: {base}"
        return base


class ConfigurationConflict(MarketDataError, ValueError):
    """A requested configuration cannot be applied (e.g. streaming on a REST-only provider)."""
