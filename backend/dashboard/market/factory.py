"""Factory for provider adapters and the provider capability table."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .config import MarketSettings
from .errors import ConfigurationConflict
from .interface import QuoteAdapter
from .models import ApiProvider, AssetType, Configuration, ConnectionMethod

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderSpec:
    asset_type: AssetType | None  # None for DUMMY (serves both classes)
    supports_streaming: bool
    label: str


PROVIDERS: dict[ApiProvider, ProviderSpec] = {
    ApiProvider.NSE: ProviderSpec(AssetType.STOCK, False, "National Stock Exchange of India"),
    ApiProvider.BSE: ProviderSpec(AssetType.STOCK, False, "Bombay Stock Exchange"),
    ApiProvider.MASSIVE: ProviderSpec(AssetType.STOCK, False, "Massive (US stocks)"),
    ApiProvider.BINANCE: ProviderSpec(AssetType.CRYPTO, True, "Binance"),
    ApiProvider.COINGECKO: ProviderSpec(AssetType.CRYPTO, False, "CoinGecko"),
    ApiProvider.COINBASE: ProviderSpec(AssetType.CRYPTO, True, "Coinbase Exchange"),
    ApiProvider.DUMMY: ProviderSpec(None, True, "Synthetic data"),
}


def provider_spec(provider: ApiProvider) -> ProviderSpec:
    return PROVIDERS[provider]


def validate_configuration(config: Configuration) -> None:
    """Raise ConfigurationConflict if the configuration cannot run.

    Checked even in dummy mode, so turning dummy data off later can never
    activate an invalid combination.
    """
    spec = provider_spec(config.api_provider)
    if config.connection_method is ConnectionMethod.WEBSOCKET and not spec.supports_streaming:
        raise ConfigurationConflict(
            f"{config.api_provider.value} does not support streaming; use REST polling"
        )


def create_adapter(provider: ApiProvider, settings: MarketSettings) -> QuoteAdapter:
    """Create the adapter for a live provider.

    Returns an unconnected adapter. Caller owns it and must await adapter.aclose().
    """
    timeout = settings.fetch_timeout

    if provider is ApiProvider.NSE:
        from .exchange_clients import NseAdapter

        adapter: QuoteAdapter = NseAdapter(timeout=timeout)
    elif provider is ApiProvider.BSE:
        from .exchange_clients import BseAdapter

        adapter = BseAdapter(timeout=timeout)
    elif provider is ApiProvider.MASSIVE:
        from .massive_client import MassiveAdapter

        adapter = MassiveAdapter(api_key=settings.massive_api_key, tickers=list(settings.massive_tickers))
    elif provider is ApiProvider.BINANCE:
        from .binance_client import BinanceAdapter

        adapter = BinanceAdapter(timeout=timeout)
    elif provider is ApiProvider.COINGECKO:
        from .coingecko_client import CoinGeckoAdapter

        adapter = CoinGeckoAdapter(timeout=timeout)
    elif provider is ApiProvider.COINBASE:
        from .coinbase_client import CoinbaseAdapter

        adapter = CoinbaseAdapter(timeout=timeout)
    else:
        raise ConfigurationConflict(f"{provider.value} has no live adapter")

    logger.info("Market data adapter: %s", provider_spec(provider).label)
    return adapter
