"""
Cache strategies using Strategy Pattern.
Allows switching between different cache backends (Redis, In-Memory, Null).

The tracking pipeline uses the cache for geolocation lookups, which are
metered by the external provider.
"""

import logging
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Optional, Tuple

logger = logging.getLogger(__name__)


class CacheStrategy(ABC):
    """
    Abstract base class for cache strategies.
    
    All methods are async because cache operations involve I/O (network for Redis).
    """
    
    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """
        Get value from cache.
        
        Returns:
            Cached value or None if missing or expired
        """
        pass
    
    @abstractmethod
    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        """
        Set value in cache with TTL (seconds).
        
        Returns:
            True if successful, False otherwise
        """
        pass
    
    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete key. Returns False if it didn't exist"""
        pass
    
    @abstractmethod
    async def clear(self) -> bool:
        """Clear all cache entries"""
        pass


class RedisCache(CacheStrategy):
    """
    Redis cache implementation.
    
    Shared between worker processes, so one lookup per IP serves the
    whole deployment until the TTL runs out. Errors are logged and
    treated as a cache miss.
    """
    
    def __init__(self, redis_client, prefix: str = "tracking:"):
        """
        Args:
            redis_client: Redis client instance (redis.Redis)
            prefix: Namespace prepended to every key
        """
        self.redis = redis_client
        self.prefix = prefix
    
    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"
    
    async def get(self, key: str) -> Optional[str]:
        try:
            value = self.redis.get(self._key(key))
            return value.decode("utf-8") if value else None
        except Exception as e:
            logger.warning("Redis get error for %s: %s", key, e)
            return None
    
    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        try:
            return bool(self.redis.setex(self._key(key), ttl, value))
        except Exception as e:
            logger.warning("Redis set error for %s: %s", key, e)
            return False
    
    async def delete(self, key: str) -> bool:
        try:
            return bool(self.redis.delete(self._key(key)))
        except Exception as e:
            logger.warning("Redis delete error for %s: %s", key, e)
            return False
    
    async def clear(self) -> bool:
        """Delete only keys under our prefix"""
        try:
            keys = list(self.redis.scan_iter(match=f"{self.prefix}*"))
            if keys:
                self.redis.delete(*keys)
            return True
        except Exception as e:
            logger.warning("Redis clear error: %s", e)
            return False


class InMemoryCache(CacheStrategy):
    """
    Bounded in-process cache with per-entry TTL.
    
    Entries expire lazily on read; once ``max_entries`` is reached the
    least recently written entry is evicted.
    
    Used in development/testing and as the fallback when Redis is down.
    """
    
    def __init__(self, max_entries: int = 10000, clock=time.monotonic):
        self.max_entries = max_entries
        self._clock = clock
        self._cache: "OrderedDict[str, Tuple[float, str]]" = OrderedDict()
    
    async def get(self, key: str) -> Optional[str]:
        entry = self._cache.get(key)
        if entry is None:
            return None
        
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._cache[key]
            return None
        return value
    
    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        self._cache.pop(key, None)
        self._cache[key] = (self._clock() + ttl, value)
        while len(self._cache) > self.max_entries:
            self._cache.popitem(last=False)
        return True
    
    async def delete(self, key: str) -> bool:
        return self._cache.pop(key, None) is not None
    
    async def clear(self) -> bool:
        self._cache.clear()
        return True
    
    def __len__(self) -> int:
        return len(self._cache)


class NullCache(CacheStrategy):
    """
    Null Object Pattern - cache that does nothing.
    
    Every geolocation request goes to the provider.
    """
    
    async def get(self, key: str) -> Optional[str]:
        return None
    
    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        return True
    
    async def delete(self, key: str) -> bool:
        return True
    
    async def clear(self) -> bool:
        return True
