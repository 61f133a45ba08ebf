"""
Semantic Cache Implementation

SQLite-backed response cache keyed by embedding similarity.

- Rows are partitioned per (provider, model); lookups never cross partitions
- Lookup scans the most-recently-used candidates of a partition with cosine similarity
- Hits bump ``last_used_at``; full partitions are trimmed in LRU batches
- Every cache failure is logged and degrades to a miss / no-op
"""

import json
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Protocol

from sqlalchemy import delete, func, select, update

from ..errors import CacheError, truncate_prompt
from .config import SemanticCacheConfig
from .database import CacheDatabase
from .eviction import CacheStats, EmbeddingMemo, EvictionPolicy
from .models import CacheEntry
from .vectors import cosine_similarity, decode_vector, encode_vector

logger = logging.getLogger(__name__)


class Embedder(Protocol):
    """
    Anything that turns text into a vector (normally an LLMClient).

    An embedder whose embedding model can change (an LLMClient switching
    providers) should expose it as ``embedding_model``; the embedding memo is
    keyed on it.
    """

    async def embed(self, text: str) -> list[float]: ...


def _partition_key(provider: str | Enum) -> str:
    return str(provider.value) if isinstance(provider, Enum) else str(provider)


class SemanticCache:
    """
    Semantic cache with embedding similarity lookup and batch LRU eviction.

    Usage:
        >>> cache = SemanticCache(embedder=client, config=config.semantic_cache)
        >>> cached = await cache.get("Leadership principles", "gemini", "gemini-3-pro-preview")
        >>> if cached is None:
        ...     result = await client.complete_json(prompt)
        ...     await cache.put("Leadership principles", result, "gemini", "gemini-3-pro-preview")
    """

    def __init__(
        self,
        embedder: Embedder,
        database: CacheDatabase | None = None,
        config: SemanticCacheConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Initialize semantic cache.

        Args:
            embedder: Source of query embeddings
            database: Cache database (defaults to one at ``config.db_path``)
            config: Semantic cache configuration
            clock: Returns the current UTC time (injectable for tests)
        """
        self.config = config or SemanticCacheConfig()
        self.database = database or CacheDatabase(self.config.db_path)
        self._embedder = embedder
        self._clock = clock or (lambda: datetime.now(UTC))
        self._policy = EvictionPolicy(self.config.max_cache_size, self.config.reclaim_batch)
        self._memo = EmbeddingMemo(self.config.embedding_memo_size)
        self.stats = CacheStats()

    async def _embed(self, query: str) -> list[float]:
        embedding_model = str(getattr(self._embedder, "embedding_model", ""))
        vector = self._memo.get(query, embedding_model)
        if vector is not None:
            self.stats.memo_hits += 1
            return vector

        vector = await self._embedder.embed(query)
        if not vector:
            raise CacheError(
                "Embedder returned an empty vector",
                details={"query": truncate_prompt(query, 100), "embedding_model": embedding_model},
            )
        self._memo.put(query, vector, embedding_model)
        return vector

    def _resolve_threshold(self, threshold: float | None) -> float:
        return self.config.similarity_threshold if threshold is None else threshold

    async def get(
        self,
        query: str,
        provider: str | Enum,
        model: str,
        threshold: float | None = None,
    ) -> dict[str, Any] | None:
        """
        Get cached response by semantic similarity.

        Args:
            query: Query text
            provider: Provider the response must come from
            model: Model the response must come from
            threshold: Minimum cosine similarity (uses config default if None)

        Returns:
            Cached response of the best match at or above threshold, or None
        """
        if not self.config.enabled:
            return None

        provider_key = _partition_key(provider)
        threshold = self._resolve_threshold(threshold)

        try:
            embedding = await self._embed(query)

            async with self.database.get_session() as session:
                result = await session.execute(
                    select(CacheEntry)
                    .where(CacheEntry.provider == provider_key, CacheEntry.model == model)
                    .order_by(CacheEntry.last_used_at.desc())
                    .limit(self.config.candidate_limit)
                )
                candidates = result.scalars().all()

                best_entry: CacheEntry | None = None
                best_similarity = threshold
                for entry in candidates:
                    similarity = cosine_similarity(embedding, decode_vector(entry.query_embedding))
                    if similarity >= best_similarity and (best_entry is None or similarity > best_similarity):
                        best_entry = entry
                        best_similarity = similarity

                if best_entry is None:
                    self.stats.misses += 1
                    logger.debug(
                        "Semantic cache miss",
                        extra={
                            "provider": provider_key,
                            "model": model,
                            "candidates": len(candidates),
                            "query": truncate_prompt(query, 100),
                        },
                    )
                    return None

                response = best_entry.decoded_response()
                await session.execute(
                    update(CacheEntry).where(CacheEntry.id == best_entry.id).values(last_used_at=self._clock())
                )

            self.stats.hits += 1
            logger.debug(
                "Semantic cache hit",
                extra={
                    "provider": provider_key,
                    "model": model,
                    "similarity": best_similarity,
                    "entry_id": best_entry.id,
                },
            )
            return response

        except Exception as e:
            self.stats.errors += 1
            self.stats.misses += 1
            logger.warning(
                f"Semantic cache lookup failed: {e}",
                extra={"provider": provider_key, "model": model, "error": str(e)},
            )
            return None

    async def put(
        self,
        query: str,
        response: dict[str, Any],
        provider: str | Enum,
        model: str,
    ) -> bool:
        """
        Store a response in the cache.

        Only JSON objects are cached, so a stored value can never be confused
        with the ``None`` of a miss.

        Args:
            query: Query text (embedded as the lookup key)
            response: JSON-serializable object
            provider: Provider that produced the response
            model: Model that produced the response

        Returns:
            True if stored
        """
        if not self.config.enabled:
            return False

        provider_key = _partition_key(provider)

        if not isinstance(response, dict):
            logger.warning(
                f"Semantic cache only stores JSON objects, got {type(response).__name__}",
                extra={"provider": provider_key, "model": model},
            )
            return False

        try:
            payload = json.dumps(response)
            embedding = await self._embed(query)

            async with self.database.get_session() as session:
                evicted = await self._evict_if_full(session, provider_key, model)

                now = self._clock()
                session.add(
                    CacheEntry(
                        query_embedding=encode_vector(embedding),
                        query_text=query,
                        response=payload,
                        provider=provider_key,
                        model=model,
                        created_at=now,
                        last_used_at=now,
                    )
                )

            self.stats.stores += 1
            self.stats.evictions += evicted
            return True

        except Exception as e:
            self.stats.errors += 1
            logger.warning(
                f"Semantic cache store failed: {e}",
                extra={"provider": provider_key, "model": model, "error": str(e)},
            )
            return False

    async def _evict_if_full(self, session: Any, provider: str, model: str) -> int:
        """Delete least-recently-used rows of a full partition. Returns rows deleted."""
        partition = (CacheEntry.provider == provider, CacheEntry.model == model)

        row_count = await session.scalar(select(func.count()).select_from(CacheEntry).where(*partition))
        to_evict = self._policy.rows_to_evict(row_count or 0)
        if to_evict <= 0:
            return 0

        oldest = await session.execute(
            select(CacheEntry.id)
            .where(*partition)
            .order_by(CacheEntry.last_used_at.asc(), CacheEntry.created_at.asc())
            .limit(to_evict)
        )
        ids = list(oldest.scalars().all())
        await session.execute(delete(CacheEntry).where(CacheEntry.id.in_(ids)))

        logger.info(
            f"Evicted {len(ids)} semantic cache entries",
            extra={"provider": provider, "model": model, "row_count": row_count, "evicted": len(ids)},
        )
        return len(ids)

    async def get_or_compute(
        self,
        query: str,
        provider: str | Enum,
        model: str,
        compute: Callable[[], Awaitable[dict[str, Any]]],
        threshold: float | None = None,
    ) -> dict[str, Any]:
        """
        Return the cached response, or compute, store and return a fresh one.

        Errors raised by ``compute`` propagate; cache errors never do.
        """
        cached = await self.get(query, provider, model, threshold)
        if cached is not None:
            return cached

        result = await compute()
        await self.put(query, result, provider, model)
        return result

    async def clear(self, provider: str | Enum | None = None, model: str | None = None) -> int:
        """
        Delete cache rows.

        Args:
            provider: Limit to one provider (all rows if None)
            model: Limit to one model of ``provider``

        Returns:
            Number of rows deleted
        """
        stmt = delete(CacheEntry)
        filters: dict[str, str] = {}
        if provider is not None:
            filters["provider"] = _partition_key(provider)
            stmt = stmt.where(CacheEntry.provider == filters["provider"])
        if model is not None:
            filters["model"] = model
            stmt = stmt.where(CacheEntry.model == model)

        try:
            async with self.database.get_session() as session:
                result = await session.execute(stmt)
                deleted = result.rowcount or 0
        except Exception as e:
            self.stats.errors += 1
            logger.warning(f"Semantic cache clear failed: {e}", extra={**filters, "error": str(e)})
            return 0

        self._memo.clear()
        logger.info(f"Cleared {deleted} semantic cache entries", extra=filters)
        return deleted

    async def count(self, provider: str | Enum | None = None, model: str | None = None) -> int:
        """Count cache rows, optionally for one provider or partition."""
        stmt = select(func.count()).select_from(CacheEntry)
        if provider is not None:
            stmt = stmt.where(CacheEntry.provider == _partition_key(provider))
        if model is not None:
            stmt = stmt.where(CacheEntry.model == model)

        async with self.database.get_session() as session:
            return (await session.scalar(stmt)) or 0

    async def get_stats(self) -> dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dictionary with counters, hit rate and total row count
        """
        try:
            total_entries = await self.count()
        except Exception as e:
            logger.warning(f"Semantic cache count failed: {e}", extra={"error": str(e)})
            total_entries = None

        return {
            "enabled": self.config.enabled,
            "total_entries": total_entries,
            "similarity_threshold": self.config.similarity_threshold,
            "max_cache_size": self.config.max_cache_size,
            "memo_entries": len(self._memo),
            **self.stats.to_dict(),
        }

    async def close(self) -> None:
        """Release database connections."""
        self._memo.clear()
        await self.database.close()
