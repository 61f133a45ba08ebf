"""
Semantic Cache Database Models

SQLAlchemy models for persistent response caching. One table holds every
partition; rows are matched only within their (provider, model) pair.
"""

import json
import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import DateTime, Index, LargeBinary, String, Text
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _new_id() -> str:
    return uuid.uuid4().hex


class Base(AsyncAttrs, DeclarativeBase):
    """Base class for all database models."""

    pass


class CacheEntry(Base):
    """
    Cached generative response.

    Schema optimized for:
    - Partition scans (indexed by provider + model)
    - LRU ordering and eviction (indexed by last_used_at)
    - Compact vectors (float32 little-endian BLOB)
    """

    __tablename__ = "llm_cache"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    query_embedding: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    query_text: Mapped[str] = mapped_column(Text, nullable=False)
    response: Mapped[str] = mapped_column(Text, nullable=False)  # JSON string
    provider: Mapped[str] = mapped_column(String(32), nullable=False)
    model: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    last_used_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        Index("idx_llm_cache_provider_model", "provider", "model"),
        Index("idx_llm_cache_last_used_at", "last_used_at"),
    )

    def decoded_response(self) -> dict[str, Any]:
        """Parse the stored JSON response."""
        return json.loads(self.response)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation (embedding omitted)."""
        return {
            "id": self.id,
            "query_text": self.query_text,
            "response": self.decoded_response(),
            "provider": self.provider,
            "model": self.model,
            "created_at": self.created_at.isoformat(),
            "last_used_at": self.last_used_at.isoformat(),
        }
