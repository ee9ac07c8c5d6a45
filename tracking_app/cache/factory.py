"""
Factory for creating cache instances.
Simple factory with singleton caching.
"""

import logging
from enum import Enum
from .strategies import CacheStrategy, RedisCache, InMemoryCache, NullCache
from tracking_app.config import settings

logger = logging.getLogger(__name__)


class CacheBackend(Enum):
    """Available cache backends"""
    REDIS = "redis"
    MEMORY = "memory"
    NULL = "null"


class CacheFactory:
    """
    Creates the process-wide cache once and reuses it.
    
    Configuration comes from settings, not parameters.
    """
    
    _instance: CacheStrategy = None
    
    @classmethod
    def create(cls, backend: CacheBackend) -> CacheStrategy:
        """
        Create or return the cached cache instance.
        
        A Redis backend that cannot be reached falls back to the
        in-memory cache so tracking keeps working.
        """
        if cls._instance is not None:
            return cls._instance
        
        if backend == CacheBackend.REDIS:
            import redis
            
            try:
                redis_client = redis.from_url(
                    settings.redis_url,
                    decode_responses=False,
                    socket_connect_timeout=2,
                    socket_timeout=2,
                )
                redis_client.ping()
                
                cls._instance = RedisCache(redis_client)
                logger.info("Redis cache initialized")
                
            except Exception as e:
                logger.warning("Redis connection failed (%s), falling back to in-memory cache", e)
                cls._instance = cls._memory()
            
        elif backend == CacheBackend.MEMORY:
            cls._instance = cls._memory()
            logger.info("In-memory cache initialized")
            
        elif backend == CacheBackend.NULL:
            cls._instance = NullCache()
            logger.info("Null cache initialized")
            
        else:
            raise ValueError(f"Unknown cache backend: {backend}")
        
        return cls._instance
    
    @staticmethod
    def _memory() -> InMemoryCache:
        return InMemoryCache(max_entries=settings.geolocation_cache_max_entries)
    
    @classmethod
    def clear_instance(cls):
        """Clear cached instance (for testing)"""
        cls._instance = None
