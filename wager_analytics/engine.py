"""
Analytics engine: validates a request, compiles it, and runs it through the
data gateway.

Dependencies (gateway, registry, secret) are injected at construction so the
engine runs unchanged against Postgres or against a stub store in tests.

Usage:
    async with create_async_pool(settings) as pool:
        engine = AnalyticsEngine.from_settings(settings, PostgresGateway(pool))
        rows = await engine.time_series("player_prop", "2024-01-01", "2024-01-31")
"""

from __future__ import annotations

import logging
from datetime import date, time
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from wager_analytics.auth import AuthDecision, AuthGuard
from wager_analytics.builder import QuerySpecBuilder, RawValue
from wager_analytics.compiler import CompiledQuery, QueryCompiler
from wager_analytics.config import Settings
from wager_analytics.domain.errors import StoreFailure
from wager_analytics.domain.models import AggregationQuerySpec, QueryResultPage
from wager_analytics.infrastructure.gateway import DataGateway
from wager_analytics.pagination import fetch_page
from wager_analytics.registry import ColumnRegistry, default_registry
from wager_analytics.utils.logging import get_logger

log = get_logger(__name__)


def build_components(
    settings: Settings, registry: Optional[ColumnRegistry] = None
) -> Tuple[QuerySpecBuilder, QueryCompiler]:
    """Builder and compiler configured from settings; no I/O involved."""
    registry = registry or default_registry()
    builder = QuerySpecBuilder(
        registry,
        default_page_size=settings.default_page_size,
        max_page_size=settings.max_page_size,
    )
    return builder, QueryCompiler(settings.fact_table)


class AnalyticsEngine:
    """
    Runs validated aggregation queries against the fact table.

    Parameters
    ----------
    gateway : DataGateway
        Store the compiled queries are submitted to.
    builder : QuerySpecBuilder
        Validates raw parameters against the column registry.
    compiler : QueryCompiler
        Renders specs into parameterized SQL.
    auth : AuthGuard
        Shared-secret check used by `authenticate`/`authorize`.
    """

    def __init__(
        self,
        gateway: DataGateway,
        builder: QuerySpecBuilder,
        compiler: QueryCompiler,
        auth: AuthGuard,
    ) -> None:
        self.gateway = gateway
        self.builder = builder
        self.compiler = compiler
        self.auth = auth

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        gateway: DataGateway,
        registry: Optional[ColumnRegistry] = None,
    ) -> "AnalyticsEngine":
        builder, compiler = build_components(settings, registry)
        return cls(gateway, builder, compiler, AuthGuard(settings.api_secret))

    @property
    def registry(self) -> ColumnRegistry:
        return self.builder.registry

    # -- auth -----------------------------------------------------------------------

    def authenticate(self, credential: Optional[str]) -> AuthDecision:
        return self.auth.check(credential)

    def authorize(self, credential: Optional[str]) -> None:
        """Raise Unauthorized unless `credential` matches the configured secret."""
        self.auth.require(credential)

    # -- execution ------------------------------------------------------------------

    def compile(self, spec: AggregationQuerySpec) -> CompiledQuery:
        compiled = self.compiler.compile(spec)
        if log.isEnabledFor(logging.DEBUG):
            log.debug("Compiled query", extra={"sql": compiled.as_text()})
        return compiled

    async def run_rows(self, spec: AggregationQuerySpec, route: str = "query") -> List[Dict[str, Any]]:
        """Run only the data query and return its rows."""
        compiled = self.compile(spec)
        try:
            rows = await self.gateway.fetch_all(compiled.data, compiled.data_params)
        except Exception as exc:  # noqa: BLE001 - any store failure maps to StoreFailure
            log.exception(f"[QUERY FAILED] {route}", extra={"route": route})
            raise StoreFailure() from exc

        log.info(
            f"[QUERY] {route}",
            extra={"route": route, "page": spec.page, "page_size": spec.page_size, "rows": len(rows)},
        )
        return rows

    async def run_page(self, spec: AggregationQuerySpec, route: str = "query") -> QueryResultPage:
        """Run the data and count queries concurrently and assemble a page."""
        compiled = self.compile(spec)
        try:
            page = await fetch_page(self.gateway, compiled, spec)
        except Exception as exc:  # noqa: BLE001 - any store failure maps to StoreFailure
            log.exception(f"[QUERY FAILED] {route}", extra={"route": route})
            raise StoreFailure() from exc

        log.info(
            f"[QUERY] {route}",
            extra={
                "route": route,
                "page": page.current_page,
                "total_pages": page.total_pages,
                "page_size": spec.page_size,
                "rows": len(page.rows),
            },
        )
        return page

    # -- operations -----------------------------------------------------------------

    async def time_series(
        self,
        market_type: Optional[str],
        start_date: Union[str, date, None],
        end_date: Union[str, date, None],
        client_id: Optional[str] = None,
        page: RawValue = None,
        page_size: RawValue = None,
    ) -> List[Dict[str, Any]]:
        spec = self.builder.build_time_series(
            market_type, start_date, end_date, client_id=client_id, page=page, page_size=page_size
        )
        return await self.run_rows(spec, route="time-series")

    async def dimensional_analysis(
        self,
        dimension: Optional[str],
        client_id: Optional[str] = None,
        usage_id: Optional[str] = None,
        page: RawValue = None,
        page_size: RawValue = None,
    ) -> List[Dict[str, Any]]:
        spec = self.builder.build_dimensional(
            dimension, client_id=client_id, usage_id=usage_id, page=page, page_size=page_size
        )
        return await self.run_rows(spec, route="dimensional-analysis")

    async def custom_graph(
        self,
        y_column: Optional[str],
        x_columns: Union[str, Sequence[str], None],
        start_date: Union[str, date, None] = None,
        start_time: Union[str, time, None] = None,
        end_date: Union[str, date, None] = None,
        end_time: Union[str, time, None] = None,
        page: RawValue = None,
        page_size: RawValue = None,
    ) -> QueryResultPage:
        spec = self.builder.build_custom_graph(
            y_column,
            x_columns,
            start_date=start_date,
            start_time=start_time,
            end_date=end_date,
            end_time=end_time,
            page=page,
            page_size=page_size,
        )
        return await self.run_page(spec, route="custom-graph")

    async def distinct_values(
        self,
        column: str,
        usage_id: Optional[str] = None,
        page: RawValue = None,
        page_size: RawValue = None,
    ) -> List[Any]:
        spec = self.builder.build_distinct([column], usage_id=usage_id, page=page, page_size=page_size)
        rows = await self.run_rows(spec, route=f"distinct:{column}")
        return [row[column] for row in rows]

    async def sports(self, usage_id: Optional[str] = None, page: RawValue = None, page_size: RawValue = None) -> List[Any]:
        return await self.distinct_values("sport", usage_id=usage_id, page=page, page_size=page_size)

    async def stat_types(
        self, usage_id: Optional[str] = None, page: RawValue = None, page_size: RawValue = None
    ) -> List[Any]:
        return await self.distinct_values("stat_type", usage_id=usage_id, page=page, page_size=page_size)

    async def sport_catalog(self, page: RawValue = None, page_size: RawValue = None) -> List[Dict[str, Any]]:
        spec = self.builder.build_distinct(["sport_id", "sport"], page=page, page_size=page_size)
        rows = await self.run_rows(spec, route="sport-catalog")
        return [{"sportId": row["sport_id"], "sportName": row["sport"]} for row in rows]

    def columns(self) -> List[dict]:
        return self.registry.describe()


__all__ = ["AnalyticsEngine", "build_components"]
