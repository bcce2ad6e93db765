"""Path and extraction caching."""

from .path_cache import (
    CacheMetrics,
    ExtractionCacheEntry,
    PathCache,
    PathCacheEntry,
    path_complexity,
)

__all__ = [
    "CacheMetrics",
    "ExtractionCacheEntry",
    "PathCache",
    "PathCacheEntry",
    "path_complexity",
]
