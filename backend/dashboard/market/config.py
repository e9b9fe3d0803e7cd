"""Market data settings, read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from .models import ApiProvider, Configuration, ConnectionMethod
from .seed_prices import TICK_VOLATILITY, US_STOCK_SEEDS


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    return float(raw) if raw else default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    return int(raw) if raw else default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class MarketSettings:
    """Tunables for transports, backoff and the synthetic generator.

    Backoff: the n-th consecutive failure waits
    min(backoff_max, backoff_initial * backoff_factor ** (n - 1)) seconds,
    plus up to backoff_jitter * delay of random jitter.
    """

    # Initial configuration
    api_provider: ApiProvider = ApiProvider.DUMMY
    connection_method: ConnectionMethod = ConnectionMethod.WEBSOCKET
    use_dummy_data: bool = True

    # Transport cadence
    poll_interval: float = 10.0
    stream_interval: float = 1.5  # Synthetic tick cadence in WEBSOCKET mode
    fetch_timeout: float = 8.0

    # Reconnect / retry
    backoff_initial: float = 1.0
    backoff_factor: float = 2.0
    backoff_max: float = 30.0
    backoff_jitter: float = 0.1
    max_retries: int = 5
    fallback_to_synthetic: bool = True

    # Synthetic generator
    synthetic_volatility: float = TICK_VOLATILITY
    synthetic_seed: int | None = None

    # Provider credentials / universes
    massive_api_key: str = ""
    massive_tickers: tuple[str, ...] = field(default_factory=lambda: tuple(US_STOCK_SEEDS))

    @property
    def initial_configuration(self) -> Configuration:
        return Configuration(
            api_provider=self.api_provider,
            connection_method=self.connection_method,
            use_dummy_data=self.use_dummy_data,
        )

    @classmethod
    def from_env(cls) -> MarketSettings:
        """Build settings from MARKET_* environment variables (plus MASSIVE_*)."""
        defaults = cls()
        tickers = tuple(
            t.strip().upper() for t in os.environ.get("MASSIVE_TICKERS", "").split(",") if t.strip()
        )
        seed = os.environ.get("MARKET_SYNTHETIC_SEED", "").strip()
        return cls(
            api_provider=ApiProvider(
                os.environ.get("MARKET_API_PROVIDER", defaults.api_provider.value).strip().upper()
            ),
            connection_method=ConnectionMethod(
                os.environ.get("MARKET_CONNECTION_METHOD", defaults.connection_method.value).strip().upper()
            ),
            use_dummy_data=_env_bool("MARKET_USE_DUMMY_DATA", defaults.use_dummy_data),
            poll_interval=_env_float("MARKET_POLL_INTERVAL", defaults.poll_interval),
            stream_interval=_env_float("MARKET_STREAM_INTERVAL", defaults.stream_interval),
            fetch_timeout=_env_float("MARKET_FETCH_TIMEOUT", defaults.fetch_timeout),
            backoff_initial=_env_float("MARKET_BACKOFF_INITIAL", defaults.backoff_initial),
            backoff_factor=_env_float("MARKET_BACKOFF_FACTOR", defaults.backoff_factor),
            backoff_max=_env_float("MARKET_BACKOFF_MAX", defaults.backoff_max),
            backoff_jitter=_env_float("MARKET_BACKOFF_JITTER", defaults.backoff_jitter),
            max_retries=_env_int("MARKET_MAX_RETRIES", defaults.max_retries),
            fallback_to_synthetic=_env_bool("MARKET_FALLBACK_TO_SYNTHETIC", defaults.fallback_to_synthetic),
            synthetic_volatility=_env_float("MARKET_SYNTHETIC_VOLATILITY", defaults.synthetic_volatility),
            synthetic_seed=int(seed) if seed else None,
            massive_api_key=os.environ.get("MASSIVE_API_KEY", "").strip(),
            massive_tickers=tickers or defaults.massive_tickers,
        )
