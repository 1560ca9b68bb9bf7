"""Shared asyncpg connection pool for the PostgreSQL-backed stores."""

from __future__ import annotations

import asyncio

import asyncpg
import structlog

from preppal.config import settings

logger = structlog.get_logger()

# Errors that mean "the database did not answer", as opposed to bad SQL.
CONNECTION_ERRORS: tuple[type[BaseException], ...] = (
    OSError,
    asyncpg.PostgresConnectionError,
    asyncpg.CannotConnectNowError,
    asyncpg.InterfaceError,
)


class DatabaseUnavailableError(Exception):
    """Raised when the connection pool cannot be opened."""


def pg_dsn(database_url: str | None = None) -> str:
    """Convert a SQLAlchemy-style URL to a plain PostgreSQL DSN for asyncpg."""
    url = database_url or settings.database_url
    return url.replace("postgresql+asyncpg://", "postgresql://")


class Database:
    """Lazily opened pool; ``close()`` is called from the app lifespan."""

    def __init__(self, dsn: str | None = None, pool: asyncpg.Pool | None = None) -> None:
        self._dsn = dsn or pg_dsn()
        self._pool = pool
        self._lock = asyncio.Lock()

    async def get_pool(self) -> asyncpg.Pool:
        if self._pool is not None:
            return self._pool
        async with self._lock:
            # another coroutine may have opened it while we waited
            if self._pool is None:
                try:
                    self._pool = await asyncpg.create_pool(
                        dsn=self._dsn,
                        min_size=settings.db_pool_min_size,
                        max_size=settings.db_pool_max_size,
                    )
                # auth and missing-database failures are server errors, not connection errors
                except (*CONNECTION_ERRORS, asyncpg.PostgresError) as exc:
                    raise DatabaseUnavailableError(f"Cannot connect to database: {exc}") from exc
                logger.info("db_pool_opened", max_size=settings.db_pool_max_size)
        return self._pool

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info("db_pool_closed")
