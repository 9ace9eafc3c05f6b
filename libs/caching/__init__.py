"""
Caching utilities for the legal agent.

This module provides:
- Redis client management
- Namespaced cache stores (file and Redis backed) for responder results
"""

from libs.caching.redis_client import close_redis_client, get_redis_client
from libs.caching.store import CacheStore, FileCacheStore, RedisCacheStore, build_cache_store

__all__ = ["close_redis_client", "get_redis_client", "CacheStore", "FileCacheStore", "RedisCacheStore", "build_cache_store"]
