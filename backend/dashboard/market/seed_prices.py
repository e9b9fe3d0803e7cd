"""Seed catalog and per-asset parameters for the synthetic generator and adapters."""

# Indian equities (canonical symbol = NSE symbol). "bse" is the BSE scrip code.
STOCK_SEEDS: dict[str, dict] = {
    "RELIANCE": {"name": "Reliance Industries", "price": 2896.45, "volume": 7_520_000, "market_cap": 1_958_721_000_000, "sector": "Energy", "bse": "500325"},
    "TCS": {"name": "Tata Consultancy Services", "price": 3548.25, "volume": 3_210_000, "market_cap": 1_308_612_000_000, "sector": "Technology", "bse": "532540"},
    "HDFCBANK": {"name": "HDFC Bank", "price": 1678.55, "volume": 8_942_000, "market_cap": 934_512_000_000, "sector": "Financial Services", "bse": "500180"},
    "INFY": {"name": "Infosys", "price": 1512.30, "volume": 6_731_000, "market_cap": 634_891_000_000, "sector": "Technology", "bse": "500209"},
    "ICICIBANK": {"name": "ICICI Bank", "price": 965.20, "volume": 9_821_000, "market_cap": 672_345_000_000, "sector": "Financial Services", "bse": "532174"},
    "HINDUNILVR": {"name": "Hindustan Unilever", "price": 2478.65, "volume": 2_143_000, "market_cap": 582_405_000_000, "sector": "Consumer Goods", "bse": "500696"},
    "BHARTIARTL": {"name": "Bharti Airtel", "price": 885.40, "volume": 5_246_000, "market_cap": 493_578_000_000, "sector": "Telecommunications", "bse": "532454"},
    "SBIN": {"name": "State Bank of India", "price": 625.85, "volume": 12_450_000, "market_cap": 558_723_000_000, "sector": "Financial Services", "bse": "500112"},
    "ASIANPAINT": {"name": "Asian Paints", "price": 3245.10, "volume": 1_862_000, "market_cap": 312_456_000_000, "sector": "Consumer Goods", "bse": "500820"},
    "WIPRO": {"name": "Wipro", "price": 423.75, "volume": 7_891_000, "market_cap": 232_568_000_000, "sector": "Technology", "bse": "507685"},
}

# US equities served by the Massive provider
US_STOCK_SEEDS: dict[str, dict] = {
    "AAPL": {"name": "Apple Inc.", "price": 190.00, "sector": "Technology"},
    "GOOGL": {"name": "Alphabet Inc.", "price": 175.00, "sector": "Technology"},
    "MSFT": {"name": "Microsoft Corp.", "price": 420.00, "sector": "Technology"},
    "AMZN": {"name": "Amazon.com Inc.", "price": 185.00, "sector": "Consumer Goods"},
    "TSLA": {"name": "Tesla Inc.", "price": 250.00, "sector": "Consumer Goods"},
    "NVDA": {"name": "NVIDIA Corp.", "price": 800.00, "sector": "Technology"},
    "META": {"name": "Meta Platforms Inc.", "price": 500.00, "sector": "Technology"},
    "JPM": {"name": "JPMorgan Chase & Co.", "price": 195.00, "sector": "Financial Services"},
    "V": {"name": "Visa Inc.", "price": 280.00, "sector": "Financial Services"},
    "NFLX": {"name": "Netflix Inc.", "price": 600.00, "sector": "Technology"},
}

# Crypto pairs (canonical symbol = Binance pair). Coinbase products and
# CoinGecko ids map back to the canonical symbol.
CRYPTO_SEEDS: dict[str, dict] = {
    "BTCUSDT": {"name": "Bitcoin", "price": 61240.85, "volume": 32_500_000_000, "market_cap": 1_198_567_000_000, "coinbase": "BTC-USD", "coingecko": "bitcoin"},
    "ETHUSDT": {"name": "Ethereum", "price": 3452.70, "volume": 15_780_000_000, "market_cap": 414_324_000_000, "coinbase": "ETH-USD", "coingecko": "ethereum"},
    "BNBUSDT": {"name": "Binance Coin", "price": 612.35, "volume": 2_580_000_000, "market_cap": 92_480_000_000, "coinbase": None, "coingecko": "binancecoin"},
    "XRPUSDT": {"name": "Ripple", "price": 0.63, "volume": 3_250_000_000, "market_cap": 33_950_000_000, "coinbase": "XRP-USD", "coingecko": "ripple"},
    "ADAUSDT": {"name": "Cardano", "price": 0.48, "volume": 1_250_000_000, "market_cap": 16_780_000_000, "coinbase": "ADA-USD", "coingecko": "cardano"},
    "SOLUSDT": {"name": "Solana", "price": 138.20, "volume": 4_680_000_000, "market_cap": 59_420_000_000, "coinbase": "SOL-USD", "coingecko": "solana"},
    "DOGEUSDT": {"name": "Dogecoin", "price": 0.163, "volume": 2_140_000_000, "market_cap": 21_820_000_000, "coinbase": "DOGE-USD", "coingecko": "dogecoin"},
    "DOTUSDT": {"name": "Polkadot", "price": 7.85, "volume": 680_000_000, "market_cap": 9_750_000_000, "coinbase": "DOT-USD", "coingecko": "polkadot"},
    "AVAXUSDT": {"name": "Avalanche", "price": 36.70, "volume": 1_520_000_000, "market_cap": 12_860_000_000, "coinbase": "AVAX-USD", "coingecko": "avalanche-2"},
    "MATICUSDT": {"name": "Polygon", "price": 0.72, "volume": 890_000_000, "market_cap": 6_720_000_000, "coinbase": "MATIC-USD", "coingecko": "matic-network"},
}

# Per-tick volatility for the live-style random walk (~1% max move per tick)
TICK_VOLATILITY = 0.01

# Chart volatility per sector; crypto moves more
SECTOR_CHART_VOLATILITY: dict[str, float] = {
    "Technology": 0.03,
    "Financial Services": 0.02,
}
DEFAULT_STOCK_CHART_VOLATILITY = 0.025
CRYPTO_CHART_VOLATILITY = 0.05

# Mini price line shown on asset cards
SPARKLINE_POINTS = 20
SPARKLINE_VOLATILITY = 0.02

# Timeframe -> (points, volatility scale)
CHART_TIMEFRAMES: dict[str, tuple[int, float]] = {
    "1D": (24, 0.2),
    "1W": (7, 0.4),
    "1M": (30, 0.6),
    "3M": (90, 0.8),
    "1Y": (365, 1.0),
}


def coinbase_products() -> dict[str, str]:
    """{coinbase product id: canonical symbol}."""
    return {seed["coinbase"]: symbol for symbol, seed in CRYPTO_SEEDS.items() if seed["coinbase"]}


def coingecko_ids() -> dict[str, str]:
    """{coingecko id: canonical symbol}."""
    return {seed["coingecko"]: symbol for symbol, seed in CRYPTO_SEEDS.items()}


def bse_scrip_codes() -> dict[str, str]:
    """{bse scrip code: canonical symbol}."""
    return {seed["bse"]: symbol for symbol, seed in STOCK_SEEDS.items()}
