"""
asyncpg pool wrapper used by the pages repository.

Each helper borrows a pooled connection for a single statement; the sync
engine never holds a connection across provider calls.
"""

import json
import logging
from typing import Any

import asyncpg

from pagesync.config.settings import get_settings

logger = logging.getLogger(__name__)


async def _register_json_codecs(conn: asyncpg.Connection) -> None:
    """Decode JSONB to Python objects (tags, authors, meta)."""
    await conn.set_type_codec(
        "jsonb",
        encoder=json.dumps,
        decoder=json.loads,
        schema="pg_catalog",
    )


class Database:
    """
    Connection pool for the pages store.

    Usage:
        db = Database()
        await db.connect()
        try:
            await db.execute("DELETE FROM pages WHERE datasource_id = $1", "ds")
        finally:
            await db.close()
    """

    def __init__(
        self,
        database_url: str | None = None,
        min_size: int | None = None,
        max_size: int | None = None,
    ):
        settings = get_settings()
        self._dsn = database_url or str(settings.database_url)
        self._min_size = min_size or settings.db_pool_min_size
        self._max_size = max_size or settings.db_pool_max_size
        self._pool: asyncpg.Pool | None = None

    async def connect(self) -> None:
        """Open the pool. Safe to call twice."""
        if self._pool is not None:
            return
        try:
            self._pool = await asyncpg.create_pool(
                self._dsn,
                min_size=self._min_size,
                max_size=self._max_size,
                command_timeout=60,
                init=_register_json_codecs,
            )
        except Exception as e:
            logger.error("Could not open database pool: %s", e)
            raise
        logger.info("Database pool open (%d-%d)", self._min_size, self._max_size)

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info("Database pool closed")

    @property
    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._pool

    async def execute(self, query: str, *args: Any) -> str:
        """Run a statement; returns the command tag (e.g. ``"DELETE 3"``)."""
        async with self.pool.acquire() as conn:
            return await conn.execute(query, *args)

    async def fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        async with self.pool.acquire() as conn:
            return await conn.fetch(query, *args)

    async def fetchrow(self, query: str, *args: Any) -> asyncpg.Record | None:
        async with self.pool.acquire() as conn:
            return await conn.fetchrow(query, *args)

    async def fetchval(self, query: str, *args: Any) -> Any:
        async with self.pool.acquire() as conn:
            return await conn.fetchval(query, *args)

    async def health_check(self) -> bool:
        """True if ``SELECT 1`` succeeds."""
        try:
            return await self.fetchval("SELECT 1") == 1
        except Exception as e:
            logger.warning("Database health check failed: %s", e)
            return False
