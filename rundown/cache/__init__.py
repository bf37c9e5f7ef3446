"""Redis caching layer."""

from .redis_client import CacheClient, cache, get_redis, close_redis

__all__ = ["CacheClient", "cache", "get_redis", "close_redis"]
