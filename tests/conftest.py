"""
Pytest configuration for the wager analytics service.

Provides fixtures for:
- An in-memory stub of the data gateway for unit tests
- Engine/service wiring around that stub
- Database connection management and seeding for integration tests
"""

from __future__ import annotations

import asyncio
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional, Sequence

import psycopg
import pytest

from wager_analytics.auth import AuthGuard
from wager_analytics.builder import QuerySpecBuilder
from wager_analytics.compiler import QueryCompiler
from wager_analytics.config import Settings
from wager_analytics.engine import AnalyticsEngine
from wager_analytics.registry import ColumnRegistry, default_registry
from wager_analytics.service import AnalyticsService

TEST_SECRET = "s3cr3t-value"


class StubGateway:
    """
    Records every submitted query and replays canned results.

    `rows` is returned by fetch_all, `total` by fetch_scalar. Set `error` to
    make every call raise it.
    """

    def __init__(
        self,
        rows: Optional[List[Dict[str, Any]]] = None,
        total: Any = 0,
        error: Optional[BaseException] = None,
    ) -> None:
        self.rows = rows or []
        self.total = total
        self.error = error
        self.calls: List[tuple] = []

    async def fetch_all(self, query: Any, params: Sequence[Any]) -> List[Dict[str, Any]]:
        self.calls.append(("all", query, tuple(params)))
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return list(self.rows)

    async def fetch_scalar(self, query: Any, params: Sequence[Any]) -> Any:
        self.calls.append(("scalar", query, tuple(params)))
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return self.total


@pytest.fixture
def registry() -> ColumnRegistry:
    return default_registry()


@pytest.fixture
def builder(registry: ColumnRegistry) -> QuerySpecBuilder:
    return QuerySpecBuilder(registry, default_page_size=250, max_page_size=1000)


@pytest.fixture
def compiler() -> QueryCompiler:
    return QueryCompiler("bet_transactions")


@pytest.fixture
def stub_gateway() -> StubGateway:
    return StubGateway()


@pytest.fixture
def engine(stub_gateway: StubGateway, builder: QuerySpecBuilder, compiler: QueryCompiler) -> AnalyticsEngine:
    return AnalyticsEngine(stub_gateway, builder, compiler, AuthGuard(TEST_SECRET))


@pytest.fixture
def service(engine: AnalyticsEngine) -> AnalyticsService:
    return AnalyticsService(engine)


@pytest.fixture
def auth_headers() -> Dict[str, str]:
    return {"X-API-Secret": TEST_SECRET}


# -- integration ------------------------------------------------------------------


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "wager_analytics"),
        db_sslmode=os.getenv("DB_SSLMODE", "disable"),
        api_secret=TEST_SECRET,
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for tests.
    """
    return (
        f"postgresql://{test_settings.db_user}:{test_settings.db_password}"
        f"@{test_settings.db_host}:{test_settings.db_port}/{test_settings.db_name}"
    )


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return True
    except psycopg.Error:
        return False


@pytest.fixture(scope="session")
def db_connection(
    test_dsn: str, db_connection_available: bool
) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a session-scoped database connection for integration tests.

    Skips tests if database is not available.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    conn = psycopg.connect(test_dsn)
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="session")
def db_schema_initialized(db_connection: psycopg.Connection) -> bool:
    """
    Ensure the bet_transactions table exists by running db/init.sql.
    """
    init_sql_path = Path(__file__).parent.parent / "db" / "init.sql"
    with db_connection.cursor() as cur:
        cur.execute(init_sql_path.read_text(encoding="utf-8"))
    db_connection.commit()
    return True


@pytest.fixture(scope="function")
def clean_transactions_table(db_connection: psycopg.Connection, db_schema_initialized: bool):
    """
    Empty the fact table before and after each test function.
    """
    with db_connection.cursor() as cur:
        cur.execute("TRUNCATE TABLE public.bet_transactions RESTART IDENTITY;")
    db_connection.commit()
    yield
    with db_connection.cursor() as cur:
        cur.execute("TRUNCATE TABLE public.bet_transactions RESTART IDENTITY;")
    db_connection.commit()


@pytest.fixture(scope="function")
def seeded_db_small(
    db_connection: psycopg.Connection,
    clean_transactions_table,
    test_dsn: str,
) -> int:
    """
    Seed 500 deterministic wagers spread over January 2024.

    Returns the number of rows seeded.
    """
    rows_to_seed = 500

    with tempfile.TemporaryDirectory() as tmpdir:
        csv_path = Path(tmpdir) / "wagers.csv"

        from scripts.generate_data import _copy_into_db, _generate_rows_csv

        _generate_rows_csv(csv_path, rows=rows_to_seed, batch_size=100, seed=42, days=31)
        _copy_into_db(test_dsn, csv_path)

    with db_connection.cursor() as cur:
        cur.execute("SELECT COUNT(*) FROM public.bet_transactions;")
        count = cur.fetchone()[0]

    return count
