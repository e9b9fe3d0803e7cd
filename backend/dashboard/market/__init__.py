"""Market data subsystem.

Public API:
    MarketDataHub         - Single read point for snapshot, configuration and status
    MarketSettings        - Transport, backoff and generator tunables (from env)
    Snapshot, Asset, Tick - Immutable market data records
    Configuration         - Provider / connection method / dummy-mode selection
    ConnectionStatus      - Current transport state with reason and retry delay
    QuoteAdapter          - Abstract interface for provider adapters
    create_adapter        - Factory that builds the live adapter for a provider
    create_market_router  - FastAPI router factory for the HTTP and SSE endpoints
"""

from .config import MarketSettings
from .errors import ConfigurationConflict, ErrorCode, MarketDataError, ProviderError
from .factory import create_adapter, validate_configuration
from .hub import MarketDataHub
from .interface import QuoteAdapter
from .models import (
    ApiProvider,
    Asset,
    AssetType,
    Configuration,
    ConnectionMethod,
    ConnectionState,
    ConnectionStatus,
    PricePoint,
    Snapshot,
    Tick,
)
from .stream import create_market_router

__all__ = [
    "ApiProvider",
    "Asset",
    "AssetType",
    "Configuration",
    "ConfigurationConflict",
    "ConnectionMethod",
    "ConnectionState",
    "ConnectionStatus",
    "ErrorCode",
    "MarketDataError",
    "MarketDataHub",
    "MarketSettings",
    "PricePoint",
    "ProviderError",
    "QuoteAdapter",
    "Snapshot",
    "Tick",
    "create_adapter",
    "create_market_router",
    "validate_configuration",
]
