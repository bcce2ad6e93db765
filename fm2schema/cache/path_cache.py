"""In-memory cache for parsed property paths and extraction results.

The cache is process-lifetime state shared by every pipeline run that is
handed the same instance. All reads and writes go through a lock so
documents processed on worker threads can use it safely. Eviction happens
synchronously on ``set`` when the cache is full and removes a fixed share of
entries per pass; expired entries are dropped when read or by ``cleanup``.
"""

import copy
import hashlib
import json
import math
import sys
import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ..core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_SIZE = 1000
DEFAULT_TTL_SECONDS = 300.0


@dataclass
class PathCacheEntry:
    """A parsed property path."""

    path: str
    segments: tuple[Any, ...]
    parse_time: float
    access_count: int
    last_accessed: float
    complexity: int


@dataclass
class ExtractionCacheEntry:
    """The values a path produced for one data snapshot."""

    result: Any
    data_hash: str
    path_hash: str
    timestamp: float
    access_count: int
    last_accessed: float
    complexity: int = 1


@dataclass(frozen=True)
class CacheMetrics:
    """Point-in-time view of cache counters."""

    hits: int
    misses: int
    evictions: int
    expirations: int
    size: int

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


def path_complexity(path: str) -> int:
    """Score a path by segment count, with array expansions weighing double."""
    segments = [s for s in path.split(".") if s]
    return len(segments) + path.count("[")


class PathCache:
    """Thread-safe TTL cache with LRU or complexity-weighted eviction."""

    def __init__(
        self,
        max_size: int = DEFAULT_MAX_SIZE,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        complexity_eviction: bool = False,
        eviction_fraction: float = 0.1,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        if not 0 < eviction_fraction <= 1:
            raise ValueError("eviction_fraction must be in (0, 1]")
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self.complexity_eviction = complexity_eviction
        self.eviction_fraction = eviction_fraction
        self._clock = clock
        self._entries: OrderedDict[str, PathCacheEntry | ExtractionCacheEntry] = (
            OrderedDict()
        )
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expirations = 0

    @classmethod
    def from_settings(cls, settings: Any) -> "PathCache":
        """Build a cache from PipelineSettings."""
        return cls(
            max_size=settings.cache_max_size,
            ttl_seconds=settings.cache_ttl_seconds,
            complexity_eviction=settings.cache_complexity_eviction,
            eviction_fraction=settings.cache_eviction_fraction,
        )

    # Keys

    @staticmethod
    def hash_data(data: Any) -> str:
        """Stable content hash of JSON-compatible data."""
        encoded = json.dumps(data, sort_keys=True, default=str).encode("utf-8")
        return hashlib.sha256(encoded).hexdigest()[:16]

    @staticmethod
    def hash_path(path: str) -> str:
        return hashlib.sha256(path.encode("utf-8")).hexdigest()[:12]

    @staticmethod
    def path_key(path: str) -> str:
        return f"path:{path}"

    @staticmethod
    def extraction_key(data_hash: str, path_hash: str) -> str:
        return f"extract:{data_hash}:{path_hash}"

    # Generic access

    def get(self, key: str) -> PathCacheEntry | ExtractionCacheEntry | None:
        """Return a live entry and record the access, or None."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            now = self._clock()
            if self._is_expired(entry, now):
                del self._entries[key]
                self._expirations += 1
                self._misses += 1
                return None
            entry.access_count += 1
            entry.last_accessed = now
            self._entries.move_to_end(key)
            self._hits += 1
            return entry

    def set(self, key: str, entry: PathCacheEntry | ExtractionCacheEntry) -> None:
        """Store an entry, evicting first when the cache is full."""
        with self._lock:
            if key not in self._entries and len(self._entries) >= self.max_size:
                self._evict()
            self._entries[key] = entry
            self._entries.move_to_end(key)

    def has(self, key: str) -> bool:
        """Check for a live entry without recording an access."""
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and not self._is_expired(entry, self._clock())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0
            self._expirations = 0

    def cleanup(self) -> int:
        """Drop expired entries and return how many were removed."""
        with self._lock:
            now = self._clock()
            expired = [k for k, e in self._entries.items() if self._is_expired(e, now)]
            for key in expired:
                del self._entries[key]
            self._expirations += len(expired)
            return len(expired)

    # Typed helpers

    def get_path(self, path: str) -> PathCacheEntry | None:
        entry = self.get(self.path_key(path))
        return entry if isinstance(entry, PathCacheEntry) else None

    def set_path(
        self, path: str, segments: tuple[Any, ...], parse_time: float | None = None
    ) -> None:
        """Cache parsed segments. ``parse_time`` defaults to now on the cache clock."""
        now = self._clock()
        parse_time = now if parse_time is None else parse_time
        self.set(
            self.path_key(path),
            PathCacheEntry(
                path=path,
                segments=segments,
                parse_time=parse_time,
                access_count=0,
                last_accessed=now,
                complexity=path_complexity(path),
            ),
        )

    def get_extraction(self, data_hash: str, path: str) -> tuple[bool, Any]:
        """Look up a cached extraction.

        Returns:
            ``(True, result)`` on a hit, ``(False, None)`` otherwise. The
            result is a copy, so callers may modify it freely.
        """
        entry = self.get(self.extraction_key(data_hash, self.hash_path(path)))
        if not isinstance(entry, ExtractionCacheEntry):
            return False, None
        return True, copy.deepcopy(entry.result)

    def set_extraction(self, data_hash: str, path: str, result: Any) -> None:
        now = self._clock()
        path_hash = self.hash_path(path)
        self.set(
            self.extraction_key(data_hash, path_hash),
            ExtractionCacheEntry(
                result=copy.deepcopy(result),
                data_hash=data_hash,
                path_hash=path_hash,
                timestamp=now,
                access_count=0,
                last_accessed=now,
                complexity=path_complexity(path),
            ),
        )

    # Introspection

    @property
    def metrics(self) -> CacheMetrics:
        with self._lock:
            return CacheMetrics(
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
                expirations=self._expirations,
                size=len(self._entries),
            )

    def estimate_memory_bytes(self) -> int:
        """Rough memory footprint of keys and cached values."""
        with self._lock:
            total = 0
            for key, entry in self._entries.items():
                total += sys.getsizeof(key)
                if isinstance(entry, PathCacheEntry):
                    total += sys.getsizeof(entry.path) + sys.getsizeof(entry.segments)
                else:
                    total += len(json.dumps(entry.result, default=str))
            return total

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # Internals

    def _is_expired(
        self, entry: PathCacheEntry | ExtractionCacheEntry, now: float
    ) -> bool:
        created = (
            entry.timestamp
            if isinstance(entry, ExtractionCacheEntry)
            else entry.parse_time
        )
        return now - created > self.ttl_seconds

    def _evict(self) -> None:
        count = max(1, math.ceil(len(self._entries) * self.eviction_fraction))
        if self.complexity_eviction:
            # Most complex first, oldest access breaks ties
            victims = sorted(
                self._entries.items(),
                key=lambda item: (-item[1].complexity, item[1].last_accessed),
            )[:count]
            keys = [key for key, _ in victims]
        else:
            keys = list(self._entries.keys())[:count]

        for key in keys:
            del self._entries[key]
        self._evictions += len(keys)
        logger.debug("Path cache eviction", removed=len(keys), size=len(self._entries))
