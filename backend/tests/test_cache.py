"""
Tests for the Layered Analysis Cache

Tests cover:
- Query cache (1hr TTL)
- Score cache (1hr TTL)
- Embedding cache (24hr TTL)
- Layer invalidation
- Hash functions for key generation
- In-memory expiry
- Connection handling (with Redis unavailable)
"""

import pytest
import json
from unittest.mock import AsyncMock, MagicMock, patch
from typing import List

from analyst.services.cache import (
    AnalysisCache,
    CacheLayer,
    InMemoryCache,
    RedisCache,
    create_cache,
    hash_content,
)


class TestHashContent:
    """Test content hashing for cache keys."""

    def test_hash_content_returns_16_char_hex(self):
        """Hash should return 16-character hex string."""
        result = hash_content("test content")
        assert len(result) == 16
        assert all(c in "0123456789abcdef" for c in result)

    def test_hash_content_deterministic(self):
        """Same content should produce same hash."""
        content = "Oil painter seeking residencies"
        assert hash_content(content) == hash_content(content)

    def test_hash_content_different_for_different_input(self):
        """Different content should produce different hashes."""
        assert hash_content("painting") != hash_content("sculpture")

    def test_hash_content_handles_dict(self):
        """Dict ordering shouldn't matter."""
        assert hash_content({"a": 1, "b": 2}) == hash_content({"b": 2, "a": 1})

    def test_hash_content_multiple_args(self):
        """Argument boundaries are part of the hash."""
        assert hash_content("mock", "text") != hash_content("mocktext")


class TestCacheLayer:
    """Test CacheLayer enum and TTL values."""

    def test_query_cache_ttl(self):
        assert CacheLayer.QUERY.ttl == 3600

    def test_score_cache_ttl(self):
        assert CacheLayer.SCORE.ttl == 3600

    def test_embedding_cache_ttl(self):
        """Embedding cache should have 24 hour TTL."""
        assert CacheLayer.EMBEDDING.ttl == 86400


class AsyncIteratorMock:
    """Mock async iterator for scan_iter."""

    def __init__(self, items: List):
        self.items = items
        self.index = 0

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self.index >= len(self.items):
            raise StopAsyncIteration
        item = self.items[self.index]
        self.index += 1
        return item


@pytest.fixture
def mock_redis():
    """Create a mock Redis client."""
    redis = AsyncMock()
    redis.get = AsyncMock(return_value=None)
    redis.setex = AsyncMock(return_value=True)
    redis.delete = AsyncMock(return_value=1)
    redis.scan_iter = MagicMock(return_value=AsyncIteratorMock([]))
    redis.ping = AsyncMock(return_value=True)
    redis.close = AsyncMock()
    return redis


@pytest.fixture
def redis_cache(mock_redis):
    """Create AnalysisCache over a RedisCache with mock Redis."""
    backend = RedisCache(redis_url="redis://localhost:6379")
    backend.redis = mock_redis
    return AnalysisCache(backend)


class TestQueryCache:
    """Test query cache operations."""

    @pytest.mark.asyncio
    async def test_get_queries_cache_miss(self, redis_cache, mock_redis):
        """Should return None on cache miss."""
        result = await redis_cache.get_queries("abc123")

        assert result is None
        mock_redis.get.assert_called_once_with("queries:abc123")

    @pytest.mark.asyncio
    async def test_get_queries_cache_hit(self, redis_cache, mock_redis):
        cached = {"queries": [], "source_distribution": {"websearch": 2}}
        mock_redis.get.return_value = json.dumps(cached)

        assert await redis_cache.get_queries("abc123") == cached

    @pytest.mark.asyncio
    async def test_set_queries_with_correct_ttl(self, redis_cache, mock_redis):
        await redis_cache.set_queries("abc123", {"queries": []})

        mock_redis.setex.assert_called_once()
        call_args = mock_redis.setex.call_args
        assert call_args[0][0] == "queries:abc123"
        assert call_args[0][1] == 3600


class TestScoreCache:
    """Test score cache operations."""

    @pytest.mark.asyncio
    async def test_score_key_format(self, redis_cache, mock_redis):
        await redis_cache.get_score("artist-1", "opp-9")

        key = mock_redis.get.call_args[0][0]
        assert key == "score:artist-1:opp-9"

    @pytest.mark.asyncio
    async def test_set_score_round_trip(self):
        cache = AnalysisCache(InMemoryCache())
        entry = {"weights": "fp", "result": {"overall_score": 0.7}}

        assert await cache.set_score("artist-1", "opp-9", entry) is True
        assert await cache.get_score("artist-1", "opp-9") == entry


class TestEmbeddingCache:
    """Test embedding cache operations."""

    @pytest.mark.asyncio
    async def test_set_embedding_with_correct_ttl(self, redis_cache, mock_redis):
        await redis_cache.set_embedding("deadbeef", [0.1, 0.2])

        call_args = mock_redis.setex.call_args
        assert call_args[0][0] == "emb:deadbeef"
        assert call_args[0][1] == 86400
        assert json.loads(call_args[0][2]) == [0.1, 0.2]

    @pytest.mark.asyncio
    async def test_corrupt_entry_is_a_miss(self, redis_cache, mock_redis):
        mock_redis.get.return_value = "{not json"

        assert await redis_cache.get_embedding("deadbeef") is None


class TestInvalidation:
    """Test layer invalidation."""

    @pytest.mark.asyncio
    async def test_clear_layer_scans_prefix(self, redis_cache, mock_redis):
        mock_redis.scan_iter.return_value = AsyncIteratorMock(["score:a:1", "score:a:2"])
        mock_redis.delete.return_value = 2

        deleted = await redis_cache.clear_layer(CacheLayer.SCORE)

        assert deleted == 2
        mock_redis.scan_iter.assert_called_once_with(match="score:*")
        mock_redis.delete.assert_called_once_with("score:a:1", "score:a:2")

    @pytest.mark.asyncio
    async def test_clear_empty_layer(self, redis_cache, mock_redis):
        assert await redis_cache.clear_layer(CacheLayer.QUERY) == 0
        mock_redis.delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_in_memory_clear_only_touches_layer(self):
        cache = AnalysisCache(InMemoryCache())
        await cache.set_score("p", "o", {"result": {}})
        await cache.set_embedding("h", [1.0])

        assert await cache.clear_layer(CacheLayer.SCORE) == 1
        assert await cache.get_embedding("h") == [1.0]


class TestInMemoryCache:
    """Test the process-local backend."""

    @pytest.mark.asyncio
    async def test_entries_expire(self):
        backend = InMemoryCache()
        with patch("analyst.services.cache.time.monotonic", return_value=1000.0):
            await backend.set("k", "v", ttl=10)
        with patch("analyst.services.cache.time.monotonic", return_value=1005.0):
            assert await backend.get("k") == "v"
        with patch("analyst.services.cache.time.monotonic", return_value=1011.0):
            assert await backend.get("k") is None
        assert len(backend) == 0

    @pytest.mark.asyncio
    async def test_unread_expired_entries_are_swept(self):
        backend = InMemoryCache()
        with patch("analyst.services.cache.time.monotonic", return_value=1000.0):
            for i in range(1000):
                await backend.set(f"old:{i}", "v", ttl=60)
        with patch("analyst.services.cache.time.monotonic", return_value=11000.0):
            for i in range(1000):
                await backend.set(f"new:{i}", "v", ttl=60)

        assert len(backend) == 1000

    @pytest.mark.asyncio
    async def test_size_capped_oldest_first(self):
        backend = InMemoryCache(max_entries=3)
        for key in ("a", "b", "c"):
            await backend.set(key, key, ttl=0)
        await backend.set("a", "a2", ttl=0)
        await backend.set("d", "d", ttl=0)

        assert len(backend) == 3
        assert await backend.get("b") is None
        assert await backend.get("a") == "a2"
        assert await backend.get("d") == "d"

    @pytest.mark.asyncio
    async def test_close_clears(self):
        backend = InMemoryCache()
        await backend.set("k", "v", ttl=10)
        await backend.close()
        assert len(backend) == 0


class TestRedisConnectionHandling:
    """Test Redis connection handling."""

    @pytest.mark.asyncio
    async def test_graceful_degradation_on_redis_unavailable(self, redis_cache, mock_redis):
        """Should return None and not raise when Redis unavailable."""
        mock_redis.get.side_effect = ConnectionError("Redis unavailable")

        result = await redis_cache.get_score("p", "o")

        assert result is None

    @pytest.mark.asyncio
    async def test_set_returns_false_on_error(self, redis_cache, mock_redis):
        mock_redis.setex.side_effect = ConnectionError("Redis unavailable")

        assert await redis_cache.set_embedding("h", [1.0]) is False

    @pytest.mark.asyncio
    async def test_logs_warning_on_connection_error(self, redis_cache, mock_redis):
        """Should log warning when Redis connection fails."""
        mock_redis.get.side_effect = ConnectionError("Redis unavailable")

        with patch("analyst.services.cache.logger") as mock_logger:
            await redis_cache.get_queries("abc")
            mock_logger.warning.assert_called()

    @pytest.mark.asyncio
    async def test_health_check(self, redis_cache, mock_redis):
        assert await redis_cache.health_check() is True

    @pytest.mark.asyncio
    async def test_health_check_returns_false_on_error(self, redis_cache, mock_redis):
        """Should return False when Redis ping fails."""
        mock_redis.ping.side_effect = ConnectionError("Connection refused")

        assert await redis_cache.health_check() is False

    @pytest.mark.asyncio
    async def test_close(self, redis_cache, mock_redis):
        await redis_cache.close()

        mock_redis.close.assert_called_once()
        assert redis_cache.backend.redis is None


class TestCreateCache:
    """Test cache factory function."""

    def test_memory_backend(self, settings):
        cache = create_cache(settings)
        assert isinstance(cache.backend, InMemoryCache)

    def test_redis_backend_uses_settings_url(self, settings):
        settings.cache_backend = "redis"
        settings.redis_url = "redis://custom:6379"

        cache = create_cache(settings)

        assert isinstance(cache.backend, RedisCache)
        assert cache.backend.redis_url == "redis://custom:6379"

    def test_unknown_backend(self, settings):
        from analyst.exceptions import ConfigurationError

        settings.cache_backend = "memcached"
        with pytest.raises(ConfigurationError):
            create_cache(settings)
