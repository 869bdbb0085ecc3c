"""Cached, rate-limited access to CoinGecko market data.

Callers never talk to the upstream directly. ``fetch_with_cache`` looks the
key up in the cache store and, on a miss, pushes the request through the
single-worker queue, which runs it under the retry policy. The cache is an
optimization only: every store failure degrades to a miss (reads) or to
skipping the write.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Iterable, Optional

from chainxchange.core.cache import CacheBackend, create_cache_backend
from chainxchange.core.cache_config import (
    CACHE_TTL,
    MAX_COIN_LIST_KEY_LENGTH,
    build_key,
    coin_list_key,
    join_coin_ids,
)
from chainxchange.core.config import settings
from chainxchange.core.constants import CHART_TIMEFRAMES, DEFAULT_CHART_DAYS
from chainxchange.core.exceptions import NoDataError
from chainxchange.services.coingecko import CoinGeckoClient, is_empty_payload
from chainxchange.services.request_queue import SerializedRequestQueue
from chainxchange.services.retry import RetryPolicy

logger = logging.getLogger(__name__)

_MISS = object()


class MarketDataService:

    def __init__(
        self,
        cache_backend: CacheBackend,
        client: CoinGeckoClient,
        retry_policy: Optional[RetryPolicy] = None,
        cache_enabled: bool = True,
    ):
        self.cache = cache_backend
        self.client = client
        self.retry_policy = retry_policy or RetryPolicy()
        self.queue = SerializedRequestQueue(self._fetch_upstream)
        self.cache_enabled = cache_enabled
        self.counters = {
            "hits": 0,
            "misses": 0,
            "store_errors": 0,
            "upstream_calls": 0,
        }

    @classmethod
    def create(cls) -> "MarketDataService":
        return cls(
            cache_backend=create_cache_backend(),
            client=CoinGeckoClient(),
            retry_policy=RetryPolicy(settings.COINGECKO_MAX_ATTEMPTS),
            cache_enabled=settings.CACHE_ENABLED,
        )

    async def connect(self):
        await self.cache.connect()
        await self.client.connect()

    async def close(self):
        await self.queue.close()
        await self.client.close()
        await self.cache.close()

    # ============ READ-THROUGH CACHE ============

    async def _fetch_upstream(self, url: str, params: Optional[dict]) -> Any:
        self.counters["upstream_calls"] += 1
        return await self.retry_policy.run(lambda: self.client.get(url, params))

    async def fetch(self, endpoint: str, params: Optional[dict] = None) -> Any:
        """Uncached fetch, still serialized and retried."""
        return await self.queue.submit(endpoint, params)

    async def fetch_with_cache(
        self,
        endpoint: str,
        params: Optional[dict],
        cache_key: str,
        ttl_seconds: int,
    ) -> Any:
        cached = await self._read(cache_key)
        if cached is not _MISS:
            self.counters["hits"] += 1
            logger.debug(f"Cache HIT for key: {cache_key}")
            return cached

        self.counters["misses"] += 1
        logger.debug(f"Cache MISS for key: {cache_key}")

        data = await self.fetch(endpoint, params)
        if is_empty_payload(data):
            raise NoDataError(f"No data received from CoinGecko for {cache_key}")

        await self._write(cache_key, ttl_seconds, data)
        return data

    async def get_cached(self, cache_key: str) -> Optional[Any]:
        cached = await self._read(cache_key)
        return None if cached is _MISS else cached

    async def store(self, cache_key: str, ttl_seconds: int, value: Any) -> bool:
        return await self._write(cache_key, ttl_seconds, value)

    async def invalidate(self, *cache_keys: str) -> int:
        deleted = 0
        for key in cache_keys:
            try:
                if await self.cache.delete(key):
                    deleted += 1
            except Exception as e:
                self.counters["store_errors"] += 1
                logger.error(f"Cache DEL error for key {key}: {e}")
        logger.debug(f"Invalidated {deleted}/{len(cache_keys)} cache entries")
        return deleted

    async def _read(self, cache_key: str) -> Any:
        if not self.cache_enabled:
            return _MISS
        try:
            raw = await self.cache.get(cache_key)
        except Exception as e:
            self.counters["store_errors"] += 1
            logger.error(f"Cache GET error for key {cache_key}: {e}")
            return _MISS
        if not raw:
            return _MISS
        try:
            return json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.error(f"Discarding undecodable cache entry {cache_key}: {e}")
            return _MISS

    async def _write(self, cache_key: str, ttl_seconds: int, value: Any) -> bool:
        if not self.cache_enabled:
            return False
        try:
            await self.cache.setex(cache_key, ttl_seconds, json.dumps(value, default=str))
            return True
        except Exception as e:
            self.counters["store_errors"] += 1
            logger.error(f"Cache SETEX error for key {cache_key}: {e}")
            return False

    def stats(self) -> Dict[str, Any]:
        return {
            "cache_enabled": self.cache_enabled,
            **self.counters,
            "queue": self.queue.stats(),
        }

    # ============ COINGECKO QUERIES ============

    async def get_markets(self, per_page: int = 100) -> list:
        url = self.client.build_url("/coins/markets", {
            "vs_currency": "usd",
            "order": "market_cap_desc",
            "per_page": per_page,
            "page": 1,
            "sparkline": "false",
            "locale": "en",
        })
        return await self.fetch_with_cache(
            url, None, build_key("crypto_markets"), CACHE_TTL["crypto_markets"]
        )

    async def get_home_top_cryptos(self) -> list:
        url = self.client.build_url("/coins/markets", {
            "vs_currency": "usd",
            "order": "market_cap_desc",
            "per_page": 100,
            "page": 1,
            "sparkline": "false",
            "price_change_percentage": "24h",
            "locale": "en",
        })
        return await self.fetch_with_cache(
            url, None, build_key("home_top_cryptos"), CACHE_TTL["home_top_cryptos"]
        )

    async def get_coin_info(self, coin_id: str) -> dict:
        url = self.client.build_url(f"/coins/{coin_id}")
        return await self.fetch_with_cache(
            url, None, build_key("coin_info", coin_id), CACHE_TTL["coin_info"]
        )

    async def get_coin_detail(self, coin_id: str) -> dict:
        url = self.client.build_url(f"/coins/{coin_id}", {
            "localization": "false",
            "tickers": "false",
            "community_data": "false",
            "developer_data": "false",
        })
        return await self.fetch_with_cache(
            url, None, build_key("coin_detail", coin_id), CACHE_TTL["coin_detail"]
        )

    async def get_market_chart(self, coin_id: str, timeframe: str, days: Optional[str] = None) -> dict:
        selected = CHART_TIMEFRAMES.get(timeframe) or {"days": days or DEFAULT_CHART_DAYS}
        params = {"vs_currency": "usd", "days": selected["days"]}
        if selected.get("interval"):
            params["interval"] = selected["interval"]
        url = self.client.build_url(f"/coins/{coin_id}/market_chart", params)
        if timeframe in CHART_TIMEFRAMES:
            cache_key = build_key("chart", coin_id, timeframe)
        else:
            # Unknown timeframes are queried by days, so key them by days
            cache_key = build_key("chart_days", coin_id, selected["days"])
        return await self.fetch_with_cache(url, None, cache_key, CACHE_TTL["chart"])

    async def get_portfolio_prices(self, coin_ids: Iterable[str]) -> dict:
        coin_ids = list(coin_ids)
        joined = join_coin_ids(coin_ids)
        url = self.client.build_url("/simple/price", {
            "ids": joined,
            "vs_currencies": "usd",
            "include_24hr_change": "true",
        })
        return await self.fetch_with_cache(
            url, None, coin_list_key("portfolio_prices", coin_ids), CACHE_TTL["portfolio_prices"]
        )

    async def get_portfolio_coins(self, coin_ids: Iterable[str]) -> list:
        coin_ids = list(coin_ids)
        joined = join_coin_ids(coin_ids)
        url = self.client.build_url("/coins/markets", {
            "ids": joined,
            "vs_currency": "usd",
            "order": "market_cap_desc",
            "per_page": 250,
            "page": 1,
        })
        return await self.fetch_with_cache(
            url, None, coin_list_key("portfolio_coins", coin_ids), CACHE_TTL["portfolio_coins"]
        )

    async def get_leaderboard_prices(self, coin_ids: Iterable[str]) -> dict:
        coin_ids = list(coin_ids)
        joined = join_coin_ids(coin_ids)
        url = self.client.build_url("/simple/price", {"ids": joined, "vs_currencies": "usd"})
        return await self.fetch_with_cache(
            url,
            None,
            coin_list_key("leaderboard_prices", coin_ids, max_length=MAX_COIN_LIST_KEY_LENGTH),
            CACHE_TTL["leaderboard_prices"],
        )


async def with_timeout(awaitable, seconds: Optional[float] = None):
    """Caller-side ceiling around a market-data read."""
    return await asyncio.wait_for(awaitable, timeout=seconds or settings.CALLER_TIMEOUT_SECONDS)
