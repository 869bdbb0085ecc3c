"""Placeholder market data served when CoinGecko is unreachable."""
import random
import time
from datetime import datetime, timezone
from typing import Optional, Union

from chainxchange.core.constants import DEFAULT_COIN_IMAGE

BASE_PRICES = {
    "bitcoin": 65000,
    "ethereum": 3500,
    "binancecoin": 600,
    "ripple": 0.6,
    "cardano": 0.5,
    "solana": 150,
    "dogecoin": 0.1,
    "matic-network": 1.2,
    "avalanche-2": 35,
    "chainlink": 12,
    "litecoin": 85,
    "bitcoin-cash": 140,
    "stellar": 0.12,
    "vechain": 0.03,
    "filecoin": 6,
    "tron": 0.08,
    "ethereum-classic": 22,
    "monero": 160,
    "algorand": 0.2,
    "cosmos": 8,
}
DEFAULT_BASE_PRICE = 100

FALLBACK_COINS = [
    {
        "id": "bitcoin",
        "symbol": "btc",
        "name": "Bitcoin",
        "current_price": 45000,
        "market_cap_rank": 1,
        "price_change_percentage_24h": 2.5,
        "market_cap": 800000000000,
        "total_volume": 30000000000,
        "image": "https://assets.coingecko.com/coins/images/1/large/bitcoin.png",
    },
    {
        "id": "ethereum",
        "symbol": "eth",
        "name": "Ethereum",
        "current_price": 3000,
        "market_cap_rank": 2,
        "price_change_percentage_24h": 1.8,
        "market_cap": 350000000000,
        "total_volume": 15000000000,
        "image": "https://assets.coingecko.com/coins/images/279/large/ethereum.png",
    },
]

HOUR_MS = 60 * 60 * 1000
DAY_MS = 24 * HOUR_MS


def get_base_price(coin_id: str) -> float:
    return BASE_PRICES.get(coin_id, DEFAULT_BASE_PRICE)


def coin_display_name(coin_id: str) -> str:
    return coin_id[:1].upper() + coin_id[1:]


def coin_display_symbol(coin_id: str) -> str:
    return coin_id.upper()[:4]


def _parse_days(days: Union[str, int, None]) -> int:
    if days == "max":
        return 365
    try:
        return max(int(days), 1)
    except (TypeError, ValueError):
        return 1


def generate_mock_chart(base_price: float, days: Union[str, int, None], rng: Optional[random.Random] = None) -> dict:
    """Random walk of at most +/-5% per step, floored at 10% of ``base_price``.

    One day gives hourly points, up to a week 6-hourly points, beyond that
    daily points capped at a year.
    """
    rng = rng or random
    day_count = _parse_days(days)

    if day_count <= 1:
        points, interval = 24, HOUR_MS
    elif day_count <= 7:
        points, interval = day_count * 4, 6 * HOUR_MS
    else:
        points, interval = min(day_count, 365), DAY_MS

    now = int(time.time() * 1000)
    price = base_price
    prices = []
    for i in range(points):
        price *= 1 + (rng.random() - 0.5) * 0.1
        price = max(price, base_price * 0.1)
        prices.append([now - (points - 1 - i) * interval, round(price, 8)])

    return {"prices": prices}


def fallback_coin_detail(coin_id: str) -> dict:
    base_price = get_base_price(coin_id)
    now = datetime.now(timezone.utc).isoformat()
    return {
        "id": coin_id,
        "name": coin_display_name(coin_id),
        "symbol": coin_display_symbol(coin_id),
        "image": DEFAULT_COIN_IMAGE,
        "current_price": base_price,
        "price_change_24h": base_price * 0.025,
        "price_change_percentage_24h": 2.5,
        "market_cap": base_price * 1000000,
        "market_cap_rank": 1,
        "total_volume": base_price * 50000,
        "high_24h": base_price * 1.05,
        "low_24h": base_price * 0.95,
        "ath": base_price * 1.2,
        "ath_date": now,
        "atl": base_price * 0.8,
        "atl_date": now,
        "circulating_supply": 1000000,
        "total_supply": 1000000,
        "max_supply": 1000000,
        "description": "No description available.",
        "genesis_date": None,
    }
