"""Match Cache - TTL caching for semantic match results.

Two interchangeable backends behind the ``MatchCache`` protocol:
- InMemoryMatchCache: process-local TTL + LRU cache
- RedisMatchCache: shared cache in Redis, JSON payloads with TTL
"""
import json
import logging
import threading
import time
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List, Protocol, Callable, Tuple, runtime_checkable
from urllib.parse import urlparse

from redis import Redis

from matching.models import MatchResult

logger = logging.getLogger(__name__)

# 30 minutes in seconds
CACHE_TTL_SECONDS = 30 * 60
CACHE_MAX_ENTRIES = 10000
KEY_PREFIX = "match:"


def _sanitize_url(url: str) -> str:
    """Remove credentials from URL for safe logging."""
    try:
        parsed = urlparse(url)
        if parsed.password:
            sanitized = parsed._replace(
                netloc=f"{parsed.username or ''}:*@{parsed.hostname}:{parsed.port or 6379}"
            )
            return sanitized.geturl()
        return url
    except Exception:
        return url


@runtime_checkable
class MatchCache(Protocol):
    """Protocol for caching match results by key."""

    def get(self, key: str) -> Optional[List[MatchResult]]:
        """Return cached results, or None on miss/expiry."""
        ...

    def set(self, key: str, value: List[MatchResult], ttl_seconds: Optional[int] = None) -> bool:
        """Store results with a TTL. Returns True when stored."""
        ...


class InMemoryMatchCache:
    """
    Process-local cache with per-entry TTL and LRU eviction.

    Reads and writes are guarded by a lock; concurrent identical requests may
    still both miss and recompute.
    """

    def __init__(
        self,
        ttl_seconds: int = CACHE_TTL_SECONDS,
        max_entries: int = CACHE_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[float, List[MatchResult]]]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[List[MatchResult]]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug(f"Cache miss for {key[:16]}...")
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                logger.debug(f"Cache entry expired for {key[:16]}...")
                return None
            self._entries.move_to_end(key)
            logger.debug(f"Cache hit for {key[:16]}...")
            return list(value)

    def set(self, key: str, value: List[MatchResult], ttl_seconds: Optional[int] = None) -> bool:
        ttl = ttl_seconds if ttl_seconds is not None else self.ttl_seconds
        with self._lock:
            self._entries[key] = (self._clock() + ttl, list(value))
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Evicted {evicted[:16]}... from cache")
        return True

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class RedisMatchCache:
    """
    Shared match cache backed by Redis.

    Results are stored as JSON under ``match:<key>`` with SETEX. Every Redis
    error is logged and treated as a miss.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        password: Optional[str] = None,
        ttl_seconds: int = CACHE_TTL_SECONDS
    ):
        self.redis_url = redis_url
        self.password = password
        self.ttl_seconds = ttl_seconds
        self._redis: Optional[Redis] = None
        self._available = False

        try:
            self._redis = Redis.from_url(
                redis_url,
                password=password,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5
            )
            self._redis.ping()
            self._available = True
            logger.info(f"Match cache connected to Redis at {_sanitize_url(redis_url)}")
        except Exception as e:
            logger.warning(f"Match cache Redis unavailable: {e}")
            self._redis = None
            self._available = False

    @property
    def is_available(self) -> bool:
        """Check if cache is available."""
        if not self._available or not self._redis:
            return False
        try:
            return self._redis.ping()
        except Exception:
            return False

    def _make_key(self, key: str) -> str:
        return f"{KEY_PREFIX}{key}"

    def get(self, key: str) -> Optional[List[MatchResult]]:
        if not self.is_available:
            return None

        try:
            data = self._redis.get(self._make_key(key))
            if not data:
                logger.debug(f"Cache miss for {key[:16]}...")
                return None

            cache_entry = json.loads(data)
            logger.debug(f"Cache hit for {key[:16]}...")
            return [MatchResult.from_dict(item) for item in cache_entry.get("data", [])]

        except Exception as e:
            logger.warning(f"Error reading from match cache: {e}")
            return None

    def set(self, key: str, value: List[MatchResult], ttl_seconds: Optional[int] = None) -> bool:
        if not self.is_available:
            return False

        try:
            ttl = ttl_seconds if ttl_seconds is not None else self.ttl_seconds
            cache_entry = {
                "data": [match.to_dict() for match in value],
                "cached_at": datetime.now(timezone.utc).isoformat(),
                "ttl_seconds": ttl
            }
            self._redis.setex(self._make_key(key), ttl, json.dumps(cache_entry))
            logger.debug(f"Cached {len(value)} matches under {key[:16]}... (TTL: {ttl}s)")
            return True

        except Exception as e:
            logger.warning(f"Error writing to match cache: {e}")
            return False

    def delete(self, key: str) -> bool:
        if not self.is_available:
            return False

        try:
            self._redis.delete(self._make_key(key))
            return True
        except Exception as e:
            logger.warning(f"Error deleting from match cache: {e}")
            return False

    def get_cache_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        if not self.is_available:
            return {"available": False}

        try:
            info = self._redis.info()
            key_count = 0
            cursor = 0
            while True:
                cursor, keys = self._redis.scan(cursor=cursor, match=f"{KEY_PREFIX}*", count=1000)
                key_count += len(keys)
                if cursor == 0:
                    break
            return {
                "available": True,
                "used_memory_human": info.get("used_memory_human", "unknown"),
                "match_cache_keys": key_count,
                "ttl_seconds": self.ttl_seconds,
                "ttl_human": f"{self.ttl_seconds // 60} minutes"
            }
        except Exception as e:
            logger.warning(f"Error getting cache stats: {e}")
            return {"available": False, "error": str(e)}

    def clear_all(self) -> bool:
        """Clear all cached matches."""
        if not self.is_available:
            return False

        try:
            cursor = 0
            deleted = 0

            while True:
                cursor, keys = self._redis.scan(cursor=cursor, match=f"{KEY_PREFIX}*", count=100)
                if keys:
                    self._redis.delete(*keys)
                    deleted += len(keys)
                if cursor == 0:
                    break

            logger.info(f"Cleared {deleted} entries from match cache")
            return True

        except Exception as e:
            logger.warning(f"Error clearing match cache: {e}")
            return False
