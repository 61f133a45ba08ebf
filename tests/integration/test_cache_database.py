"""
Integration tests for CacheDatabase sessions on a temporary SQLite file.
"""

from collections.abc import AsyncGenerator

import pytest
from sqlalchemy import func, select

from concept_llm.semantic_cache import CacheDatabase, CacheEntry


def entry(query: str = "Leadership principles") -> CacheEntry:
    return CacheEntry(
        query_embedding=b"\x00\x00\x80\x3f",
        query_text=query,
        response='{"creator": "Drucker"}',
        provider="gemini",
        model="gemini-3-pro-preview",
    )


async def row_count(database: CacheDatabase) -> int:
    async with database.get_session() as session:
        return await session.scalar(select(func.count()).select_from(CacheEntry))


@pytest.fixture
async def database(tmp_path) -> AsyncGenerator[CacheDatabase, None]:
    db = CacheDatabase(str(tmp_path / "nested" / "cache.db"))
    yield db
    await db.close()


class TestCacheDatabase:
    """Test schema creation and transactional sessions."""

    async def test_first_session_creates_schema_and_directory(self, database: CacheDatabase) -> None:
        assert not database.initialized

        assert await row_count(database) == 0
        assert database.initialized
        assert database.db_path.exists()

    async def test_initialize_is_idempotent(self, database: CacheDatabase) -> None:
        await database.initialize()
        await database.initialize()

        assert database.initialized

    async def test_clean_exit_commits(self, database: CacheDatabase) -> None:
        async with database.get_session() as session:
            session.add(entry())

        assert await row_count(database) == 1

    async def test_error_rolls_back(self, database: CacheDatabase) -> None:
        with pytest.raises(RuntimeError, match="embedding outage"):
            async with database.get_session() as session:
                session.add(entry())
                await session.flush()
                raise RuntimeError("embedding outage")

        assert await row_count(database) == 0

    async def test_rollback_keeps_earlier_commits(self, database: CacheDatabase) -> None:
        async with database.get_session() as session:
            session.add(entry("kept"))

        with pytest.raises(ValueError):
            async with database.get_session() as session:
                session.add(entry("discarded"))
                await session.flush()
                raise ValueError("bad payload")

        async with database.get_session() as session:
            queries = (await session.scalars(select(CacheEntry.query_text))).all()

        assert queries == ["kept"]

    async def test_close_then_reuse(self, database: CacheDatabase) -> None:
        async with database.get_session() as session:
            session.add(entry())

        await database.close()

        assert not database.initialized
        assert await row_count(database) == 1
