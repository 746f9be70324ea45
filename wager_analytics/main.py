from __future__ import annotations

import asyncio
import json
import sys
from contextlib import contextmanager
from typing import Any, Awaitable, Callable, Iterator, Optional, TypeVar

import typer

from wager_analytics.auth import AuthGuard
from wager_analytics.compiler import CompiledQuery
from wager_analytics.config import Settings, get_settings
from wager_analytics.domain.errors import AnalyticsError
from wager_analytics.domain.models import AggregationQuerySpec, QueryResultPage
from wager_analytics.engine import AnalyticsEngine, build_components
from wager_analytics.infrastructure.db_factory import create_async_pool
from wager_analytics.infrastructure.gateway import PostgresGateway
from wager_analytics.reporter import print_columns, print_page, print_rows
from wager_analytics.utils.logging import configure_logging

T = TypeVar("T")

app = typer.Typer(help="Wager analytics query CLI.")

_PAGE_OPTION = typer.Option(None, "--page", "-p", help="1-based page number (default 1).")
_PAGE_SIZE_OPTION = typer.Option(None, "--page-size", help="Rows per page (default from settings).")
_SQL_OPTION = typer.Option(False, "--sql", help="Print the compiled SQL and exit without querying.")
_TABLE_OPTION = typer.Option(False, "--table", "-t", help="Render rows as a table instead of JSON.")


def _setup() -> Settings:
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    return settings


@contextmanager
def _errors() -> Iterator[None]:
    """Turn engine errors into a one-line message and a non-zero exit code."""
    try:
        yield
    except AnalyticsError as exc:
        typer.echo(f"Error: {exc.public_message}", err=True)
        raise typer.Exit(code=2 if exc.status_code < 500 else 1) from None


def _run(settings: Settings, operation: Callable[[AnalyticsEngine], Awaitable[T]]) -> T:
    async def _main() -> T:
        async with create_async_pool(settings) as pool:
            gateway = PostgresGateway(
                pool,
                statement_timeout_ms=settings.db_statement_timeout_ms,
                retry_attempts=settings.db_retry_attempts,
            )
            return await operation(AnalyticsEngine.from_settings(settings, gateway))

    return asyncio.run(_main())


def _print_sql(compiled: CompiledQuery) -> None:
    typer.echo(compiled.as_text())
    typer.echo(f"-- data params: {list(compiled.data_params)!r}")
    typer.echo(f"-- count params: {list(compiled.count_params)!r}")


def _emit(result: Any, table: bool, title: str) -> None:
    if isinstance(result, QueryResultPage):
        if table:
            print_page(result, title=title)
        else:
            typer.echo(json.dumps(result.to_payload(), indent=2, default=str))
        return
    if table and result and isinstance(result[0], dict):
        print_rows(result, title=title)
    else:
        typer.echo(json.dumps(result, indent=2, default=str))


def _execute(
    settings: Settings,
    spec: AggregationQuerySpec,
    route: str,
    paginated: bool,
    sql: bool,
    table: bool,
) -> None:
    _, compiler = build_components(settings)
    if sql:
        _print_sql(compiler.compile(spec))
        return
    if paginated:
        result: Any = _run(settings, lambda engine: engine.run_page(spec, route=route))
    else:
        result = _run(settings, lambda engine: engine.run_rows(spec, route=route))
    _emit(result, table, title=route)


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    database = "DATABASE_URL" if settings.database_url else (
        f"{settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    )
    typer.echo(
        f"DB={database} | table={settings.fact_table} | "
        f"page_size={settings.default_page_size} (max {settings.max_page_size}) | "
        f"auth={'configured' if settings.api_secret else 'NOT configured'}"
    )


@app.command()
def columns(table: bool = _TABLE_OPTION) -> None:
    """
    List the columns queries may reference.
    """
    settings = _setup()
    builder, _ = build_components(settings)
    described = builder.registry.describe()
    if table:
        print_columns(described)
    else:
        typer.echo(json.dumps(described, indent=2))


@app.command("time-series")
def time_series(
    market_type: str = typer.Option(..., "--market-type", "-m", help="Market type to chart."),
    start_date: str = typer.Option(..., "--start-date", help="First day (YYYY-MM-DD), inclusive."),
    end_date: str = typer.Option(..., "--end-date", help="Last day (YYYY-MM-DD), inclusive."),
    client_id: Optional[str] = typer.Option(None, "--client-id", help="Restrict to one client."),
    page: Optional[int] = _PAGE_OPTION,
    page_size: Optional[int] = _PAGE_SIZE_OPTION,
    sql: bool = _SQL_OPTION,
    table: bool = _TABLE_OPTION,
) -> None:
    """
    Daily bet handle for a market type.
    """
    settings = _setup()
    with _errors():
        builder, _ = build_components(settings)
        spec = builder.build_time_series(
            market_type, start_date, end_date, client_id=client_id, page=page, page_size=page_size
        )
        _execute(settings, spec, "time-series", paginated=False, sql=sql, table=table)


@app.command()
def dimensional(
    dimension: str = typer.Option(..., "--dimension", "-d", help="Dimension column to break down by."),
    client_id: Optional[str] = typer.Option(None, "--client-id", help="Restrict to one client."),
    usage_id: Optional[str] = typer.Option(None, "--usage-id", help="Restrict to one usage scope."),
    page: Optional[int] = _PAGE_OPTION,
    page_size: Optional[int] = _PAGE_SIZE_OPTION,
    sql: bool = _SQL_OPTION,
    table: bool = _TABLE_OPTION,
) -> None:
    """
    Bet handle per value of a dimension, largest first.
    """
    settings = _setup()
    with _errors():
        builder, _ = build_components(settings)
        spec = builder.build_dimensional(
            dimension, client_id=client_id, usage_id=usage_id, page=page, page_size=page_size
        )
        _execute(settings, spec, "dimensional-analysis", paginated=False, sql=sql, table=table)


@app.command("custom-graph")
def custom_graph(
    y_column: Optional[str] = typer.Option(None, "--y", "-y", help="Metric column to aggregate."),
    x_columns: Optional[str] = typer.Option(None, "--x", "-x", help="Comma-separated dimension columns."),
    start_date: Optional[str] = typer.Option(None, "--start-date"),
    start_time: Optional[str] = typer.Option(None, "--start-time", help="HH:MM[:SS], combined with --start-date."),
    end_date: Optional[str] = typer.Option(None, "--end-date"),
    end_time: Optional[str] = typer.Option(None, "--end-time", help="HH:MM[:SS], combined with --end-date."),
    page: Optional[int] = _PAGE_OPTION,
    page_size: Optional[int] = _PAGE_SIZE_OPTION,
    sql: bool = _SQL_OPTION,
    table: bool = _TABLE_OPTION,
) -> None:
    """
    Any metric over any dimensions, paginated with a total page count.
    """
    settings = _setup()
    with _errors():
        builder, _ = build_components(settings)
        spec = builder.build_custom_graph(
            y_column,
            x_columns,
            start_date=start_date,
            start_time=start_time,
            end_date=end_date,
            end_time=end_time,
            page=page,
            page_size=page_size,
        )
        _execute(settings, spec, "custom-graph", paginated=True, sql=sql, table=table)


@app.command()
def sports(
    usage_id: Optional[str] = typer.Option(None, "--usage-id", help="Restrict to one usage scope."),
    page: Optional[int] = _PAGE_OPTION,
    page_size: Optional[int] = _PAGE_SIZE_OPTION,
) -> None:
    """
    Distinct sport names.
    """
    settings = _setup()
    with _errors():
        result = _run(settings, lambda engine: engine.sports(usage_id=usage_id, page=page, page_size=page_size))
    _emit(result, table=False, title="sports")


@app.command("stat-types")
def stat_types(
    usage_id: Optional[str] = typer.Option(None, "--usage-id", help="Restrict to one usage scope."),
    page: Optional[int] = _PAGE_OPTION,
    page_size: Optional[int] = _PAGE_SIZE_OPTION,
) -> None:
    """
    Distinct stat types.
    """
    settings = _setup()
    with _errors():
        result = _run(
            settings, lambda engine: engine.stat_types(usage_id=usage_id, page=page, page_size=page_size)
        )
    _emit(result, table=False, title="stat-types")


@app.command("sport-catalog")
def sport_catalog(table: bool = _TABLE_OPTION) -> None:
    """
    Sport ids with their names.
    """
    settings = _setup()
    with _errors():
        result = _run(settings, lambda engine: engine.sport_catalog())
    _emit(result, table=table, title="sport-catalog")


@app.command("auth-check")
def auth_check(secret: str = typer.Argument(..., help="Credential to test against API_SECRET.")) -> None:
    """
    Check a credential against the configured shared secret.
    """
    settings = get_settings()
    guard = AuthGuard(settings.api_secret)
    if not guard.configured:
        typer.echo("API_SECRET is not configured; every credential is rejected.", err=True)
    decision = guard.check(secret)
    typer.echo(decision.value)
    if not decision.allowed:
        raise typer.Exit(code=1)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
