"""
Semantic Cache Configuration

Defines typed configuration for the embedding-similarity response cache.
Rows are stored in SQLite and partitioned per (provider, model).
"""

from pydantic import BaseModel, Field, model_validator

DEFAULT_SIMILARITY_THRESHOLD = 0.95
MAX_CACHE_SIZE = 1000
RECLAIM_BATCH = 100
CANDIDATE_LIMIT = 100


class SemanticCacheConfig(BaseModel):
    """Configuration for semantic cache system."""

    enabled: bool = Field(default=True, description="Enable semantic caching")

    db_path: str = Field(default="./data/llm_cache.db", description="SQLite file holding cache rows")

    similarity_threshold: float = Field(
        default=DEFAULT_SIMILARITY_THRESHOLD,
        ge=-1.0,
        le=1.0,
        description="Default minimum cosine similarity for a hit (callers may pass their own per call)",
    )

    max_cache_size: int = Field(
        default=MAX_CACHE_SIZE,
        ge=1,
        description="Hard row ceiling per (provider, model) partition",
    )
    reclaim_batch: int = Field(
        default=RECLAIM_BATCH,
        ge=0,
        description="Rows reclaimed below the ceiling when eviction runs",
    )
    candidate_limit: int = Field(
        default=CANDIDATE_LIMIT,
        ge=1,
        description="Most-recently-used rows scanned per lookup",
    )

    embedding_memo_size: int = Field(
        default=256,
        ge=0,
        description="In-memory query->embedding memo entries (0 = disabled)",
    )

    @model_validator(mode="after")
    def validate_reclaim(self) -> "SemanticCacheConfig":
        """Eviction must leave room for the incoming row."""
        if self.reclaim_batch >= self.max_cache_size:
            raise ValueError("reclaim_batch must be smaller than max_cache_size")
        return self
