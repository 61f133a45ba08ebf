"""
Semantic Cache Module

Memoizes generative responses by embedding similarity, persisted in SQLite and
partitioned per (provider, model).

Public API:
    - SemanticCache: Main cache interface
    - SemanticCacheConfig: Configuration schema
    - CacheDatabase: Async SQLite engine/session manager
    - CacheEntry: Persisted row model
    - cosine_similarity, encode_vector, decode_vector: Vector helpers

Usage:
    >>> from concept_llm.semantic_cache import SemanticCache, SemanticCacheConfig
    >>>
    >>> cache = SemanticCache(embedder=client, config=SemanticCacheConfig(db_path="./data/llm_cache.db"))
    >>> themes = await cache.get_or_compute(
    ...     "Leadership principles",
    ...     provider="gemini",
    ...     model="gemini-3-pro-preview",
    ...     compute=lambda: client.complete_json(prompt),
    ...     threshold=0.95,
    ... )
"""

from .cache import Embedder, SemanticCache
from .config import SemanticCacheConfig
from .database import CacheDatabase
from .eviction import CacheStats, EmbeddingMemo, EvictionPolicy
from .models import CacheEntry
from .vectors import cosine_similarity, decode_vector, encode_vector

__all__ = [
    "SemanticCache",
    "SemanticCacheConfig",
    "Embedder",
    "CacheDatabase",
    "CacheEntry",
    "CacheStats",
    "EvictionPolicy",
    "EmbeddingMemo",
    "cosine_similarity",
    "encode_vector",
    "decode_vector",
]
