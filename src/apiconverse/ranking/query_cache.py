"""Bounded, TTL-based cache of query embeddings.

Purely a performance layer: a hit returns exactly the vector a cold lookup
would have computed, so rankings never depend on cache state.
"""

from __future__ import annotations

from typing import Optional

from src.utils.logger import get_logger

from ..scheduler import Clock, MonotonicClock
from .models import QueryCacheEntry

logger = get_logger("QueryCache")


class QueryEmbeddingCache:
    """Maps normalized query text to its embedding.

    Eviction drops expired entries first; if the cache is still over
    capacity, the entries with the highest hit counts survive (ties go to
    the most recently used).
    """

    def __init__(
        self,
        max_size: int = 100,
        ttl_seconds: float = 30 * 60,
        clock: Optional[Clock] = None,
    ) -> None:
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._clock = clock or MonotonicClock()
        self._entries: dict[str, QueryCacheEntry] = {}
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def _expired(self, entry: QueryCacheEntry, now: float) -> bool:
        return now - entry.last_access >= self.ttl_seconds

    def get(self, key: str) -> Optional[list[float]]:
        """Return the cached embedding and record the hit, or None."""
        entry = self._entries.get(key)
        now = self._clock.now()
        if entry is None or self._expired(entry, now):
            if entry is not None:
                del self._entries[key]
            self.misses += 1
            return None
        entry.last_access = now
        entry.hit_count += 1
        self.hits += 1
        return entry.embedding

    def put(self, key: str, embedding: list[float]) -> None:
        """Store an embedding. Overflowing max_size triggers a sweep."""
        existing = self._entries.get(key)
        now = self._clock.now()
        if existing is not None:
            existing.embedding = embedding
            existing.last_access = now
            return
        self._entries[key] = QueryCacheEntry(embedding=embedding, last_access=now)
        if len(self._entries) > self.max_size:
            self.sweep()

    def sweep(self) -> int:
        """Evict expired entries, then trim to max_size. Returns the number removed."""
        now = self._clock.now()
        before = len(self._entries)
        valid = {k: e for k, e in self._entries.items() if not self._expired(e, now)}

        if len(valid) > self.max_size:
            ranked = sorted(
                valid.items(),
                key=lambda item: (item[1].hit_count, item[1].last_access),
                reverse=True,
            )
            valid = dict(ranked[: self.max_size])

        self._entries = valid
        removed = before - len(valid)
        if removed:
            logger.debug(f"🧹 Query cache sweep removed {removed}, kept {len(valid)} entries")
        return removed

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def stats(self) -> dict[str, float]:
        lookups = self.hits + self.misses
        return {
            "size": len(self._entries),
            "max_size": self.max_size,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": (self.hits / lookups) if lookups else 0.0,
        }
