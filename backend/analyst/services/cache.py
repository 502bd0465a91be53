"""
Layered Analysis Cache

Implements the three caches used by the analysis pipeline on top of a
pluggable key-value backend:
- Query Cache (1hr TTL): generated query sets, keyed by profile content hash
- Score Cache (1hr TTL): per (profile, opportunity) scoring results
- Embedding Cache (24hr TTL): embedding vectors, keyed by text hash

Cache Key Patterns:
    - queries:{content_hash} - Query generation results
    - score:{profile_id}:{opportunity_id} - Scoring results
    - emb:{content_hash} - Embedding vectors

Backends:
    - InMemoryCache: process-local dict with TTL expiry (default)
    - RedisCache: shared Redis instance, degrades to misses when unavailable

Concurrency:
    Backends only guarantee key-level get/set atomicity. Two requests racing
    on the same uncached key both compute and the last write wins; the
    computations are deterministic so this only costs duplicate work.

Usage:
    cache = AnalysisCache(InMemoryCache())

    cached = await cache.get_score(profile_id, opportunity_id)
    if cached is None:
        result = await score(...)
        await cache.set_score(profile_id, opportunity_id, result.model_dump(mode="json"))

    # Weight change: every cached score is stale
    await cache.clear_layer(CacheLayer.SCORE)
"""

import json
import hashlib
import logging
import time
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Tuple, runtime_checkable

import redis.asyncio as redis

from analyst.config import Settings, get_settings
from analyst.exceptions import ConfigurationError
from analyst.middleware.metrics import record_cache_hit, record_cache_miss

logger = logging.getLogger(__name__)


class CacheLayer(Enum):
    """Cache layers with key prefix and TTL in seconds."""

    QUERY = ("query", "queries", 3600)       # 1 hour
    SCORE = ("score", "score", 3600)         # 1 hour
    EMBEDDING = ("embedding", "emb", 86400)  # 24 hours

    def __init__(self, layer_name: str, prefix: str, ttl: int):
        self.layer_name = layer_name
        self.prefix = prefix
        self._ttl = ttl

    @property
    def ttl(self) -> int:
        return self._ttl


def hash_content(*args: Any) -> str:
    """
    Generate a 16-character hex hash from content.

    Handles strings, dicts, lists, and other JSON-serializable types.
    Dict keys are sorted for consistent hashing.

    Args:
        *args: Content to hash (will be JSON serialized)

    Returns:
        16-character hex string
    """
    content = json.dumps(args, sort_keys=True, default=str)
    return hashlib.sha256(content.encode()).hexdigest()[:16]


@runtime_checkable
class CacheBackend(Protocol):
    """
    Key-value store used by AnalysisCache.

    Values are JSON strings. Implementations must not raise on
    connectivity problems; a failed read is a miss and a failed write
    returns False.
    """

    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, value: str, ttl: int) -> bool:
        ...

    async def delete_prefix(self, prefix: str) -> int:
        ...

    async def health_check(self) -> bool:
        ...

    async def close(self) -> None:
        ...


class InMemoryCache:
    """
    Process-local cache with per-key expiry.

    Expired entries are swept every ``purge_interval`` writes. When the
    store still holds ``max_entries`` keys, the oldest written key is evicted.
    """

    def __init__(self, max_entries: int = 10_000, purge_interval: int = 100) -> None:
        self._store: Dict[str, Tuple[float, str]] = {}
        self.max_entries = max_entries
        self.purge_interval = purge_interval
        self._writes = 0

    async def get(self, key: str) -> Optional[str]:
        entry = self._store.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if expires_at and expires_at < time.monotonic():
            self._store.pop(key, None)
            return None
        return value

    async def set(self, key: str, value: str, ttl: int) -> bool:
        now = time.monotonic()
        self._writes += 1
        if self._writes % self.purge_interval == 0 or len(self._store) >= self.max_entries:
            self.purge_expired(now)

        # Re-inserting moves the key to the end of the eviction order
        self._store.pop(key, None)
        while self._store and len(self._store) >= self.max_entries:
            del self._store[next(iter(self._store))]

        expires_at = now + ttl if ttl > 0 else 0.0
        self._store[key] = (expires_at, value)
        return True

    def purge_expired(self, now: Optional[float] = None) -> int:
        """Drop every expired entry and return how many were removed."""
        now = time.monotonic() if now is None else now
        expired = [k for k, (expires_at, _) in self._store.items() if expires_at and expires_at < now]
        for key in expired:
            del self._store[key]
        if expired:
            logger.debug(f"Purged {len(expired)} expired cache entries")
        return len(expired)

    async def delete_prefix(self, prefix: str) -> int:
        keys = [k for k in self._store if k.startswith(prefix)]
        for key in keys:
            self._store.pop(key, None)
        return len(keys)

    async def health_check(self) -> bool:
        return True

    async def close(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)


class RedisCache:
    """
    Redis-backed cache.

    Provides graceful degradation when Redis is unavailable,
    returning None/False/0 instead of raising exceptions.

    Attributes:
        redis: Async Redis client (created lazily)
    """

    def __init__(self, redis_url: str):
        self.redis_url = redis_url
        self.redis: Optional[redis.Redis] = None

    async def _ensure_connected(self) -> Optional[redis.Redis]:
        """Ensure Redis connection is established."""
        if self.redis is None:
            try:
                self.redis = redis.from_url(
                    self.redis_url,
                    encoding="utf-8",
                    decode_responses=True
                )
            except Exception as e:
                logger.warning(f"Failed to connect to Redis: {e}")
                return None
        return self.redis

    async def get(self, key: str) -> Optional[str]:
        try:
            client = await self._ensure_connected()
            if not client:
                return None
            return await client.get(key)
        except Exception as e:
            logger.warning(f"Redis get error ({key}): {e}")
            return None

    async def set(self, key: str, value: str, ttl: int) -> bool:
        try:
            client = await self._ensure_connected()
            if not client:
                return False
            await client.setex(key, ttl, value)
            return True
        except Exception as e:
            logger.warning(f"Redis set error ({key}): {e}")
            return False

    async def delete_prefix(self, prefix: str) -> int:
        """
        Delete every key starting with prefix.

        Uses SCAN rather than KEYS so large keyspaces do not block Redis.
        """
        try:
            client = await self._ensure_connected()
            if not client:
                return 0

            keys = [key async for key in client.scan_iter(match=f"{prefix}*")]
            if keys:
                return await client.delete(*keys)
            return 0
        except Exception as e:
            logger.warning(f"Redis delete error ({prefix}*): {e}")
            return 0

    async def health_check(self) -> bool:
        try:
            client = await self._ensure_connected()
            if not client:
                return False
            await client.ping()
            return True
        except Exception as e:
            logger.warning(f"Redis health check failed: {e}")
            return False

    async def close(self) -> None:
        """Close Redis connection."""
        if self.redis:
            await self.redis.close()
            self.redis = None


class AnalysisCache:
    """
    Typed access to the query, score and embedding cache layers.

    Attributes:
        backend: Underlying key-value store
    """

    def __init__(self, backend: Optional[CacheBackend] = None):
        self.backend: CacheBackend = backend if backend is not None else InMemoryCache()

    async def _get(self, layer: CacheLayer, key: str) -> Optional[Any]:
        raw = await self.backend.get(key)
        if raw is None:
            record_cache_miss(layer.layer_name)
            return None
        try:
            value = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning(f"Discarding corrupt cache entry {key}: {e}")
            record_cache_miss(layer.layer_name)
            return None
        record_cache_hit(layer.layer_name)
        return value

    async def _set(self, layer: CacheLayer, key: str, value: Any) -> bool:
        return await self.backend.set(key, json.dumps(value), layer.ttl)

    # ==================== Query Cache ====================

    async def get_queries(self, content_hash: str) -> Optional[Dict[str, Any]]:
        return await self._get(CacheLayer.QUERY, f"{CacheLayer.QUERY.prefix}:{content_hash}")

    async def set_queries(self, content_hash: str, result: Dict[str, Any]) -> bool:
        return await self._set(CacheLayer.QUERY, f"{CacheLayer.QUERY.prefix}:{content_hash}", result)

    # ==================== Score Cache ====================

    @staticmethod
    def score_key(profile_id: str, opportunity_id: str) -> str:
        return f"{CacheLayer.SCORE.prefix}:{profile_id}:{opportunity_id}"

    async def get_score(self, profile_id: str, opportunity_id: str) -> Optional[Dict[str, Any]]:
        return await self._get(CacheLayer.SCORE, self.score_key(profile_id, opportunity_id))

    async def set_score(
        self,
        profile_id: str,
        opportunity_id: str,
        result: Dict[str, Any]
    ) -> bool:
        return await self._set(CacheLayer.SCORE, self.score_key(profile_id, opportunity_id), result)

    # ==================== Embedding Cache ====================

    async def get_embedding(self, content_hash: str) -> Optional[List[float]]:
        return await self._get(CacheLayer.EMBEDDING, f"{CacheLayer.EMBEDDING.prefix}:{content_hash}")

    async def set_embedding(self, content_hash: str, embedding: List[float]) -> bool:
        return await self._set(
            CacheLayer.EMBEDDING, f"{CacheLayer.EMBEDDING.prefix}:{content_hash}", embedding
        )

    # ==================== Invalidation & Health ====================

    async def clear_layer(self, layer: CacheLayer) -> int:
        """
        Remove every entry of one layer.

        Returns:
            Number of keys deleted
        """
        deleted = await self.backend.delete_prefix(f"{layer.prefix}:")
        logger.info(f"Cleared {deleted} entries from {layer.layer_name} cache")
        return deleted

    async def health_check(self) -> bool:
        return await self.backend.health_check()

    async def close(self) -> None:
        await self.backend.close()


def create_cache(settings: Optional[Settings] = None) -> AnalysisCache:
    """
    Build an AnalysisCache for the configured backend.

    Args:
        settings: Settings to read cache_backend/redis_url from (defaults to get_settings())

    Raises:
        ConfigurationError: If cache_backend is unknown
    """
    settings = settings or get_settings()
    backend_name = settings.cache_backend.lower()

    if backend_name == "memory":
        return AnalysisCache(InMemoryCache())
    elif backend_name == "redis":
        return AnalysisCache(RedisCache(redis_url=settings.redis_url))
    else:
        raise ConfigurationError(
            f"Unknown cache backend: {settings.cache_backend}. "
            f"Supported: memory, redis"
        )
