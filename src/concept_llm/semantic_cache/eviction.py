"""
Semantic Cache Eviction

Two bounded stores back the cache:

- Persistent rows: hard ceiling per (provider, model) partition. When a write
  finds the partition full, the least-recently-used rows are deleted in one
  batch, down to ``max_cache_size - reclaim_batch``.
- Embedding memo: small in-memory LRU (cachetools) of (embedding model, query)
  -> vector so a ``get`` followed by a ``put`` for the same query embeds it
  once.
"""

import logging
from collections.abc import Sequence
from typing import Any

from cachetools import LRUCache

logger = logging.getLogger(__name__)


class CacheStats:
    """Statistics tracker for the semantic cache."""

    def __init__(self) -> None:
        """Initialize stats counters."""
        self.hits: int = 0
        self.misses: int = 0
        self.stores: int = 0
        self.evictions: int = 0
        self.errors: int = 0
        self.memo_hits: int = 0

    def reset(self) -> None:
        """Reset all counters."""
        self.hits = 0
        self.misses = 0
        self.stores = 0
        self.evictions = 0
        self.errors = 0
        self.memo_hits = 0

    def get_hit_rate(self) -> float:
        """Calculate cache hit rate."""
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert stats to dictionary."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "stores": self.stores,
            "evictions": self.evictions,
            "errors": self.errors,
            "memo_hits": self.memo_hits,
            "hit_rate": self.get_hit_rate(),
        }


class EvictionPolicy:
    """
    Batch LRU eviction for one partition.

    Config:
        max_cache_size: Hard row ceiling per partition (default: 1000)
        reclaim_batch: Rows reclaimed below the ceiling per eviction (default: 100)
    """

    def __init__(self, max_cache_size: int = 1000, reclaim_batch: int = 100):
        if max_cache_size < 1:
            raise ValueError("max_cache_size must be >= 1")
        if not 0 <= reclaim_batch < max_cache_size:
            raise ValueError("reclaim_batch must be in [0, max_cache_size)")
        self.max_cache_size = max_cache_size
        self.reclaim_batch = reclaim_batch

    @property
    def target_size(self) -> int:
        """Rows left in a partition after eviction, before the new insert."""
        # At least one slot is freed so the insert cannot exceed the ceiling
        return min(self.max_cache_size - self.reclaim_batch, self.max_cache_size - 1)

    def needs_eviction(self, row_count: int) -> bool:
        return row_count >= self.max_cache_size

    def rows_to_evict(self, row_count: int) -> int:
        """
        Number of least-recently-used rows to delete before inserting.

        Args:
            row_count: Current partition size

        Returns:
            0 when the partition is below the ceiling
        """
        if not self.needs_eviction(row_count):
            return 0
        return row_count - self.target_size


class EmbeddingMemo:
    """
    In-memory LRU of (embedding model, query text) -> embedding vector.

    Vectors from different embedding models live under different keys, so a
    provider switch on the embedder never reuses a vector from the old space.
    """

    def __init__(self, maxsize: int = 256) -> None:
        self.maxsize = maxsize
        self._cache: LRUCache[tuple[str, str], tuple[float, ...]] | None = (
            LRUCache(maxsize=maxsize) if maxsize > 0 else None
        )

    def get(self, query: str, embedding_model: str = "") -> list[float] | None:
        if self._cache is None:
            return None
        vector = self._cache.get((embedding_model, query))
        return list(vector) if vector is not None else None

    def put(self, query: str, vector: Sequence[float], embedding_model: str = "") -> None:
        if self._cache is None:
            return
        self._cache[(embedding_model, query)] = tuple(vector)

    def clear(self) -> None:
        if self._cache is not None:
            self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache) if self._cache is not None else 0
