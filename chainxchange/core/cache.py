import asyncio
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional
import logging

from chainxchange.core.config import settings

logger = logging.getLogger(__name__)

class CacheBackend(ABC):
    """Key/value store holding serialized strings with per-key expiry.

    Every operation may raise; callers decide whether a failure matters.
    """

    async def connect(self) -> None:
        pass

    async def close(self) -> None:
        pass

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    async def setex(self, key: str, ttl: int, value: str) -> None:
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        pass

    @abstractmethod
    async def ttl(self, key: str) -> Optional[float]:
        pass

    @abstractmethod
    async def clear(self) -> None:
        pass

    @abstractmethod
    async def ping(self) -> bool:
        pass

    @abstractmethod
    async def stats(self) -> Dict[str, Any]:
        pass

    async def exists(self, key: str) -> bool:
        return await self.get(key) is not None

class MemoryCacheBackend(CacheBackend):
    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._cache: Dict[str, Dict] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            self._cleanup_expired()
            item = self._cache.get(key)
            return item["value"] if item else None

    async def setex(self, key: str, ttl: int, value: str) -> None:
        if ttl <= 0:
            raise ValueError(f"TTL must be positive, got {ttl}")
        async with self._lock:
            now = self._clock()
            self._cache[key] = {
                "value": value,
                "expiry": now + ttl,
                "created_at": now
            }

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._cache.pop(key, None) is not None

    async def ttl(self, key: str) -> Optional[float]:
        async with self._lock:
            self._cleanup_expired()
            item = self._cache.get(key)
            if not item:
                return None
            return item["expiry"] - self._clock()

    async def clear(self) -> None:
        async with self._lock:
            self._cache.clear()

    async def ping(self) -> bool:
        return True

    async def stats(self) -> Dict[str, Any]:
        async with self._lock:
            self._cleanup_expired()
            return {
                "backend": "memory",
                "entries": len(self._cache),
                "keys": sorted(self._cache.keys())[:10]
            }

    def _cleanup_expired(self):
        current_time = self._clock()
        expired_keys = [
            key for key, item in self._cache.items()
            if current_time >= item["expiry"]
        ]
        for key in expired_keys:
            del self._cache[key]

class RedisCacheBackend(CacheBackend):
    def __init__(self, redis_url: str):
        import redis.asyncio as redis

        options: Dict[str, Any] = {"decode_responses": True}
        # Managed providers hand out rediss:// URLs with certificates we cannot verify
        if redis_url.startswith("rediss://"):
            options["ssl_cert_reqs"] = "none"
        self.redis_url = redis_url
        self.redis = redis.from_url(redis_url, **options)

    async def connect(self) -> None:
        try:
            await self.redis.ping()
            logger.info(f"Connected to Redis at {self._display_host()}")
        except Exception as e:
            # The store is optional; reads and writes degrade to misses until it comes back
            logger.warning(f"Redis at {self._display_host()} is unreachable: {e}")

    async def close(self) -> None:
        await self.redis.aclose()

    async def get(self, key: str) -> Optional[str]:
        return await self.redis.get(key)

    async def setex(self, key: str, ttl: int, value: str) -> None:
        await self.redis.setex(key, ttl, value)

    async def delete(self, key: str) -> bool:
        return await self.redis.delete(key) > 0

    async def ttl(self, key: str) -> Optional[float]:
        remaining = await self.redis.ttl(key)
        return float(remaining) if remaining >= 0 else None

    async def exists(self, key: str) -> bool:
        return await self.redis.exists(key) > 0

    async def clear(self) -> None:
        await self.redis.flushdb()

    async def ping(self) -> bool:
        return bool(await self.redis.ping())

    async def stats(self) -> Dict[str, Any]:
        info = await self.redis.info()
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "backend": "redis",
            "redis_version": info.get("redis_version"),
            "used_memory": info.get("used_memory_human"),
            "connected_clients": info.get("connected_clients"),
            "keyspace_hits": hits,
            "keyspace_misses": misses,
            "hit_ratio": round(hits / max(hits + misses, 1), 4)
        }

    def _display_host(self) -> str:
        if "localhost" in self.redis_url or "127.0.0.1" in self.redis_url:
            return "localhost"
        return "cloud instance"

def create_cache_backend(redis_url: Optional[str] = None) -> CacheBackend:
    redis_url = redis_url if redis_url is not None else settings.REDIS_URL
    if redis_url:
        logger.info("Initializing Redis cache backend")
        return RedisCacheBackend(redis_url)

    logger.info("Using in-memory cache backend")
    return MemoryCacheBackend()
