"""
Semantic Cache Storage

SQLite engine and transactional sessions for cache rows. Every session is one
unit of work: committed when the block exits cleanly, rolled back when it
raises.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .models import Base

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "./data/llm_cache.db"


def _apply_sqlite_pragmas(dbapi_connection: Any, _connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.close()


class CacheDatabase:
    """
    Owns the cache's SQLite file.

    The schema is created lazily on the first session; ``close()`` disposes
    the engine and a later session re-opens it.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH, echo: bool = False):
        self.db_path = Path(db_path).resolve()
        self.engine: AsyncEngine = create_async_engine(f"sqlite+aiosqlite:///{self.db_path}", echo=echo)
        event.listen(self.engine.sync_engine, "connect", _apply_sqlite_pragmas)

        self.sessionmaker: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        self._schema_ready = False
        self._schema_lock = asyncio.Lock()

    @property
    def initialized(self) -> bool:
        return self._schema_ready

    async def initialize(self) -> None:
        """Create the cache table and its indexes (idempotent)."""
        if self._schema_ready:
            return
        async with self._schema_lock:
            if self._schema_ready:
                return
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            self._schema_ready = True
            logger.info("Semantic cache schema ready", extra={"db_path": str(self.db_path)})

    @asynccontextmanager
    async def get_session(self) -> AsyncIterator[AsyncSession]:
        """
        Transactional session.

        Example:
            async with db.get_session() as session:
                session.add(entry)
            # committed here; rolled back if the block raised
        """
        await self.initialize()

        session = self.sessionmaker()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def close(self) -> None:
        """Dispose pooled connections."""
        await self.engine.dispose()
        self._schema_ready = False
        logger.debug("Semantic cache database closed", extra={"db_path": str(self.db_path)})
