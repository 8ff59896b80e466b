"""Database connection helper for the hosted Postgres backing store."""

import os
import asyncpg


class DatabaseConfigError(RuntimeError):
    """Raised when no database URL is configured."""


async def get_db_connection() -> asyncpg.Connection:
    """Open a connection to DATABASE_URL.

    The Supabase connection pooler runs in transaction mode, which does not
    support prepared statement caching, so the cache is disabled.
    """
    database_url = os.environ.get("DATABASE_URL")
    if not database_url:
        raise DatabaseConfigError("DATABASE_URL is not set")
    return await asyncpg.connect(database_url, statement_cache_size=0)
