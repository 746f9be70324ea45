"""
Database connection factory utilities for the wager analytics service.

Builds DSNs from settings and creates the async connection pool the data
gateway runs on. Nothing here is a process-wide singleton: callers construct
the pool from explicit settings and own its lifecycle, typically with
`async with create_async_pool(settings) as pool:`.

Includes retry logic for transient connection failures using tenacity.
"""

from __future__ import annotations

from typing import Optional
from urllib.parse import quote

import psycopg
from psycopg import Connection
from psycopg_pool import AsyncConnectionPool
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from wager_analytics.config import Settings, get_settings


def build_dsn(settings: Optional[Settings] = None) -> str:
    """
    Compose a DSN string from settings.

    DATABASE_URL wins when set; otherwise the DSN is assembled from the
    individual DB_* fields.
    """
    settings = settings or get_settings()
    if settings.database_url:
        return settings.database_url
    return (
        f"postgresql://{quote(settings.db_user, safe='')}:{quote(settings.db_password, safe='')}"
        f"@{settings.db_host}:{settings.db_port}/{settings.db_name}"
        f"?sslmode={settings.db_sslmode}"
    )


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
    reraise=True,
)
def get_sync_connection(settings: Optional[Settings] = None) -> Connection:
    """
    Acquire a dedicated synchronous connection with automatic retry.

    Retries up to 3 times with exponential backoff for transient connection errors.
    Used by the data loader and test fixtures; the query engine itself only
    talks to the async pool.

    Returns
    -------
    Connection
        A new psycopg connection instance.

    Raises
    ------
    psycopg.OperationalError
        If connection fails after all retry attempts.
    """
    return psycopg.connect(build_dsn(settings))


def create_async_pool(settings: Optional[Settings] = None) -> AsyncConnectionPool:
    """
    Create (but do not open) the asynchronous connection pool.

    Parameters
    ----------
    settings : Settings, optional
        Source of the DSN and pool sizing. Defaults to the cached settings.

    Returns
    -------
    AsyncConnectionPool
        A closed pool; open it with `async with` or `await pool.open()`.
    """
    settings = settings or get_settings()
    return AsyncConnectionPool(
        conninfo=build_dsn(settings),
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
        open=False,
    )


__all__ = [
    "build_dsn",
    "create_async_pool",
    "get_sync_connection",
]
