"""
Namespaced key/value cache for responder results.

Entries are JSON payloads with no expiry. Readers treat any missing,
unreadable or corrupt entry as a miss; writers log failures and move on.
Each store is built once at startup and handed to the responders, which
each take their own namespace.
"""

from __future__ import annotations

import asyncio
import json
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Optional

import redis.asyncio as redis
import structlog

from libs.caching.redis_client import get_redis_client
from libs.common.settings import Settings

logger = structlog.get_logger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


def safe_key(key: str) -> str:
    """Map a cache key onto a filesystem- and Redis-safe name."""
    cleaned = _UNSAFE_KEY_CHARS.sub("_", key.strip())
    return cleaned or "_"


class CacheStore:
    """Interface shared by the cache backends."""

    namespace_name: str = ""

    async def get(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    async def put(self, key: str, payload: Any) -> None:
        raise NotImplementedError

    def namespace(self, name: str) -> "CacheStore":
        raise NotImplementedError


class FileCacheStore(CacheStore):
    """One JSON file per key under ``<root>/<namespace>/``.

    Writes go to a temporary file in the same directory and are renamed
    into place, so concurrent writers of one key leave a single complete
    value (last writer wins).
    """

    def __init__(self, root: Path | str, namespace_name: str = "default"):
        self.root = Path(root)
        self.namespace_name = safe_key(namespace_name)

    @property
    def directory(self) -> Path:
        return self.root / self.namespace_name

    def namespace(self, name: str) -> "FileCacheStore":
        return FileCacheStore(self.root, name)

    def _path(self, key: str) -> Path:
        return self.directory / f"{safe_key(key)}.json"

    def _read(self, path: Path) -> Optional[Any]:
        try:
            with path.open("r", encoding="utf-8") as fh:
                return json.load(fh)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning("Unreadable cache entry treated as miss", path=str(path), error=str(e))
            return None

    def _write(self, path: Path, payload: Any) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(payload, fh, ensure_ascii=False, default=str)
            os.replace(tmp_name, path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise

    async def get(self, key: str) -> Optional[Any]:
        payload = await asyncio.to_thread(self._read, self._path(key))
        logger.debug("Cache lookup", namespace=self.namespace_name, key=key, hit=payload is not None)
        return payload

    async def put(self, key: str, payload: Any) -> None:
        try:
            await asyncio.to_thread(self._write, self._path(key), payload)
        except (OSError, TypeError, ValueError) as e:
            logger.warning("Cache write failed", namespace=self.namespace_name, key=key, error=str(e))


class RedisCacheStore(CacheStore):
    """Stores JSON strings under ``cache:<namespace>:<key>`` without expiry."""

    def __init__(self, client: redis.Redis, namespace_name: str = "default"):
        self.client = client
        self.namespace_name = safe_key(namespace_name)

    def namespace(self, name: str) -> "RedisCacheStore":
        return RedisCacheStore(self.client, name)

    def _redis_key(self, key: str) -> str:
        return f"cache:{self.namespace_name}:{safe_key(key)}"

    async def get(self, key: str) -> Optional[Any]:
        try:
            raw = await self.client.get(self._redis_key(key))
        except redis.RedisError as e:
            logger.warning("Redis cache read failed", key=key, error=str(e))
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError as e:
            logger.warning("Corrupt Redis cache entry treated as miss", key=key, error=str(e))
            return None

    async def put(self, key: str, payload: Any) -> None:
        try:
            await self.client.set(self._redis_key(key), json.dumps(payload, ensure_ascii=False, default=str))
        except (redis.RedisError, TypeError, ValueError) as e:
            logger.warning("Redis cache write failed", key=key, error=str(e))


async def build_cache_store(settings: Settings) -> CacheStore:
    """Build the configured cache backend.

    A Redis backend that cannot connect falls back to the file store.
    """
    if settings.cache_backend == "redis":
        client = await get_redis_client(settings.redis_url)
        if client is not None:
            logger.info("Using Redis cache store")
            return RedisCacheStore(client)
        logger.warning("Redis unavailable, using file cache store", cache_dir=str(settings.cache_dir))
    return FileCacheStore(settings.cache_dir)
