"""Cache configuration and TTL settings"""
import hashlib
from typing import Iterable, List

# Cache TTL (Time To Live) configurations in seconds
CACHE_TTL = {
    # Market lists and coin pages
    "crypto_markets": 300,      # 5 minutes
    "home_top_cryptos": 300,    # 5 minutes
    "coin_detail": 300,         # 5 minutes
    "chart": 300,               # 5 minutes

    # Rarely changing coin info used when buying
    "coin_info": 3600,          # 1 hour

    # Portfolio valuation - needs frequent updates
    "portfolio_prices": 120,    # 2 minutes
    "portfolio_coins": 600,     # 10 minutes
    "portfolio": 120,           # 2 minutes

    "leaderboard_prices": 300,  # 5 minutes
}

# Cache key patterns
CACHE_KEYS = {
    "crypto_markets": "crypto-markets",
    "home_top_cryptos": "home-top-cryptos",
    "coin_detail": "coin-detail-{}",
    "chart": "chart-{}-{}",
    "chart_days": "chart-{}-days-{}",
    "coin_info": "coin-info-{}",
    "portfolio_prices": "portfolio-prices-{}",
    "portfolio_coins": "portfolio-coins-{}",
    "portfolio": "portfolio:{}",
    "leaderboard_prices": "lb-prices-{}",
}

# Derived keys to delete when a mutation changes the data behind them
INVALIDATION_PATTERNS = {
    "trade_execution": [
        "portfolio:{}",
    ],
}

MAX_COIN_LIST_KEY_LENGTH = 50


def build_key(name: str, *parts) -> str:
    return CACHE_KEYS[name].format(*parts)


def join_coin_ids(coin_ids: Iterable[str]) -> str:
    """Sorted, de-duplicated, comma-joined coin ids."""
    return ",".join(sorted({coin_id for coin_id in coin_ids if coin_id}))


def coin_list_key(name: str, coin_ids: Iterable[str], max_length: int = 0) -> str:
    """Key for a query over a coin list; long lists are replaced by their digest."""
    joined = join_coin_ids(coin_ids)
    if max_length and len(joined) > max_length:
        joined = hashlib.md5(joined.encode()).hexdigest()
    return build_key(name, joined)


def invalidation_keys(event: str, *parts) -> List[str]:
    return [pattern.format(*parts) for pattern in INVALIDATION_PATTERNS[event]]
