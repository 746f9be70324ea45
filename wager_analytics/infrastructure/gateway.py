"""
Data access gateway: the only contract the engine has with the store.

The engine submits a parameterized query and awaits rows or a scalar. The
Postgres implementation runs on a psycopg async pool; statement timeouts and
retries of transient connection failures are policies of this layer, not of
the engine.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Protocol, Sequence, runtime_checkable

import psycopg
from psycopg import sql
from psycopg.errors import QueryCanceled
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from wager_analytics.utils.logging import get_logger

log = get_logger(__name__)

Query = sql.Composable


@runtime_checkable
class DataGateway(Protocol):
    """
    Store contract consumed by the engine.

    Implementations must allow two calls to be in flight at once (the data
    query and the count query of one page).
    """

    async def fetch_all(self, query: Query, params: Sequence[Any]) -> List[Dict[str, Any]]:
        """Run `query` and return every row as a dict keyed by column name."""
        ...

    async def fetch_scalar(self, query: Query, params: Sequence[Any]) -> Any:
        """Run `query` and return the first column of the first row (or None)."""
        ...


def _is_transient(exc: BaseException) -> bool:
    # A cancelled statement is a timeout, not a connection problem.
    return isinstance(exc, psycopg.OperationalError) and not isinstance(exc, QueryCanceled)


class PostgresGateway:
    """
    `DataGateway` backed by a `psycopg_pool.AsyncConnectionPool`.

    Parameters
    ----------
    pool : AsyncConnectionPool
        An open pool shared by all concurrent requests.
    statement_timeout_ms : int
        Per-statement timeout applied to each query's transaction; 0 disables it.
    retry_attempts : int
        Total attempts for transient connection failures (1 disables retries).
    """

    def __init__(
        self,
        pool: AsyncConnectionPool,
        statement_timeout_ms: int = 0,
        retry_attempts: int = 3,
    ) -> None:
        self.pool = pool
        self.statement_timeout_ms = statement_timeout_ms
        self.retry_attempts = max(retry_attempts, 1)

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
            retry=retry_if_exception(_is_transient),
            before_sleep=before_sleep_log(log, logging.WARNING),
            reraise=True,
        )

    async def _apply_statement_timeout(self, cur: psycopg.AsyncCursor) -> None:
        if self.statement_timeout_ms > 0:
            await cur.execute(
                "SELECT set_config('statement_timeout', %s, true)",
                (str(self.statement_timeout_ms),),
            )

    async def _run(self, query: Query, params: Sequence[Any], scalar: bool) -> Any:
        async for attempt in self._retrying():
            with attempt:
                async with self.pool.connection() as conn:
                    async with conn.cursor(row_factory=dict_row) as cur:
                        await self._apply_statement_timeout(cur)
                        await cur.execute(query, tuple(params))
                        if not scalar:
                            return await cur.fetchall()
                        row = await cur.fetchone()
                        return next(iter(row.values())) if row else None
        return None  # pragma: no cover - AsyncRetrying either returns or raises

    async def fetch_all(self, query: Query, params: Sequence[Any]) -> List[Dict[str, Any]]:
        return await self._run(query, params, scalar=False)

    async def fetch_scalar(self, query: Query, params: Sequence[Any]) -> Any:
        return await self._run(query, params, scalar=True)


__all__ = ["DataGateway", "PostgresGateway"]
