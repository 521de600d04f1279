"""Cache Module - Caching services."""
from matching.cache.match_cache import (
    MatchCache,
    InMemoryMatchCache,
    RedisMatchCache,
    CACHE_TTL_SECONDS
)

__all__ = [
    'MatchCache',
    'InMemoryMatchCache',
    'RedisMatchCache',
    'CACHE_TTL_SECONDS'
]
