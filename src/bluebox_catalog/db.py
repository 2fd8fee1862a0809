"""Database connection pool management using psycopg3 AsyncConnectionPool."""

import logging
from contextlib import asynccontextmanager

from psycopg_pool import AsyncConnectionPool

from .config import Config

log = logging.getLogger(__name__)

_pool: AsyncConnectionPool | None = None


def conninfo_for(config: Config) -> str:
    """Build the libpq connection string for the configured database.

    search_path puts the configured schema first so that unqualified
    Pagila table names resolve there.
    """
    return (
        f"dbname={config.db_name} "
        f"host={config.db_host} "
        f"port={config.db_port} "
        f"user={config.db_user} "
        f"password={config.db_password} "
        f"options=-csearch_path={config.db_schema},public"
    )


async def init_pool(config: Config) -> AsyncConnectionPool:
    """Create and open the global connection pool."""
    global _pool

    log.info(
        "Initializing connection pool (%d-%d connections) to %s@%s:%d/%s",
        config.pool_min_size, config.pool_max_size,
        config.db_user, config.db_host, config.db_port, config.db_name,
    )

    _pool = AsyncConnectionPool(
        conninfo=conninfo_for(config),
        min_size=config.pool_min_size,
        max_size=config.pool_max_size,
        open=False,
    )
    await _pool.open(wait=True)

    return _pool


def get_pool() -> AsyncConnectionPool:
    """Return the global connection pool. Raises RuntimeError if not initialized."""
    if _pool is None:
        raise RuntimeError("Connection pool not initialized. Call init_pool() first.")
    return _pool


@asynccontextmanager
async def connection():
    """Borrow a connection from the global pool for the duration of the block."""
    pool = get_pool()
    async with pool.connection() as conn:
        yield conn


async def close_pool():
    """Close the global connection pool, releasing all connections."""
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None
        log.info("Connection pool closed")
