"""
Async database connection using asyncpg (NO ORM).

The pool is created once in the FastAPI lifespan and handed to request
handlers through the `get_db` dependency. Service functions always receive
the connection as their first argument, so tests can substitute it.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from uuid import UUID

import asyncpg

from civicpoll.core.config import Settings
from civicpoll.core.logging_config import get_logger

logger = get_logger(__name__)

# Global connection pool
_pool: asyncpg.Pool | None = None


async def init_db_pool(settings: Settings) -> asyncpg.Pool:
    """
    Initialize database connection pool on startup.

    Call this in the FastAPI lifespan event.
    """
    global _pool
    _pool = await asyncpg.create_pool(
        dsn=settings.DATABASE_URL,
        min_size=2,
        max_size=20,
        max_inactive_connection_lifetime=300,  # Close idle connections after 5 minutes
        timeout=30,  # Connection timeout in seconds
        command_timeout=60,  # Query timeout in seconds
    )
    logger.info(
        f"Database pool initialized: {_pool.get_size()} / {_pool.get_max_size()} connections"
    )
    return _pool


async def close_db_pool() -> None:
    """
    Close database connection pool on shutdown.

    Call this in the FastAPI lifespan event.
    """
    global _pool
    if _pool:
        await _pool.close()
        _pool = None
        logger.info("Database pool closed")


def get_pool() -> asyncpg.Pool | None:
    """Return the live pool, or None before startup."""
    return _pool


@asynccontextmanager
async def get_db_connection():
    """
    Get a database connection from the pool.

    Usage:
        async with get_db_connection() as conn:
            result = await conn.fetchrow("SELECT * FROM users WHERE id = $1", user_id)
    """
    if not _pool:
        raise RuntimeError("Database pool not initialized. Call init_db_pool() first.")

    async with _pool.acquire() as connection:
        yield connection


async def get_db() -> AsyncGenerator[asyncpg.Connection, None]:
    """
    FastAPI dependency for database connections.

    Usage in routes:
        @router.get("/polls")
        async def list_polls(conn: asyncpg.Connection = Depends(get_db)):
            ...
    """
    if not _pool:
        raise RuntimeError("Database pool not initialized. Call init_db_pool() first.")

    async with _pool.acquire() as connection:
        yield connection


# Helper functions to convert asyncpg.Record to dict
def record_to_dict(record: asyncpg.Record | dict | None) -> dict | None:
    """Convert asyncpg Record to dictionary with UUIDs as strings."""
    if record is None:
        return None
    result = dict(record)
    for key, value in result.items():
        if isinstance(value, UUID):
            result[key] = str(value)
    return result


def records_to_list(records: list[asyncpg.Record]) -> list[dict]:
    """Convert list of asyncpg Records to list of dictionaries."""
    return [record_to_dict(record) for record in records]
