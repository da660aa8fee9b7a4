"""
asyncpg pool wrapper used by the aggregate repository.

Sessions run with `timezone = 'UTC'` so bucket timestamps read back from
TIMESTAMPTZ columns compare equal to the UTC datetimes the aggregator
computes.
"""

import logging
from collections.abc import AsyncIterator, Iterable, Sequence
from contextlib import asynccontextmanager
from typing import Any

import asyncpg

from meme_radar.config.settings import get_settings

logger = logging.getLogger(__name__)

APPLICATION_NAME = "meme-radar"
COMMAND_TIMEOUT_SECONDS = 60


class Database:
    """
    Pooled PostgreSQL access.

    Usage:
        async with Database() as db:
            rows = await db.fetch("SELECT * FROM ticker_aggregates WHERE bucket = $1", bucket)
    """

    def __init__(
        self,
        database_url: str | None = None,
        min_size: int | None = None,
        max_size: int | None = None,
    ):
        settings = get_settings()

        self._dsn = database_url or str(settings.database_url)
        self._pool_size = (
            min_size or settings.db_pool_min_size,
            max_size or settings.db_pool_max_size,
        )
        self._pool: asyncpg.Pool | None = None

    async def connect(self) -> None:
        """Open the pool. Connection errors propagate to the caller."""
        low, high = self._pool_size
        try:
            self._pool = await asyncpg.create_pool(
                self._dsn,
                min_size=low,
                max_size=high,
                command_timeout=COMMAND_TIMEOUT_SECONDS,
                server_settings={
                    "application_name": APPLICATION_NAME,
                    "timezone": "UTC",
                },
            )
        except (OSError, asyncpg.PostgresError) as e:
            logger.error(f"Could not open Postgres pool: {e}")
            raise
        logger.info(f"Postgres pool open ({low}-{high} connections)")

    async def close(self) -> None:
        if self._pool is None:
            return
        await self._pool.close()
        self._pool = None
        logger.info("Postgres pool closed")

    async def __aenter__(self) -> "Database":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[asyncpg.Connection]:
        if self._pool is None:
            raise RuntimeError("Database is not connected; use `async with Database()`")
        async with self._pool.acquire() as conn:
            yield conn

    # ── Query helpers ───────────────────────────────────────

    async def execute(self, query: str, *args: Any) -> str:
        """Run a statement and return its status tag, e.g. "DELETE 3"."""
        async with self._connection() as conn:
            return await conn.execute(query, *args)

    async def executemany(self, query: str, args: Iterable[Sequence[Any]]) -> None:
        async with self._connection() as conn:
            await conn.executemany(query, args)

    async def fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        async with self._connection() as conn:
            return await conn.fetch(query, *args)

    async def fetchrow(self, query: str, *args: Any) -> asyncpg.Record | None:
        async with self._connection() as conn:
            return await conn.fetchrow(query, *args)

    async def fetchval(self, query: str, *args: Any) -> Any:
        async with self._connection() as conn:
            return await conn.fetchval(query, *args)

    async def health_check(self) -> bool:
        """True when a trivial query round-trips."""
        try:
            return await self.fetchval("SELECT 1") == 1
        except (RuntimeError, OSError, asyncpg.PostgresError) as e:
            logger.warning(f"Postgres health check failed: {e}")
            return False
