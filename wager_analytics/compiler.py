"""
Query compiler: renders an `AggregationQuerySpec` into a parameterized data
query and a matching count query.

Identifiers (table and column names) are composed with `psycopg.sql.Identifier`
and only ever come from a spec whose columns were resolved against the
registry. Values (filter values, time bounds, limit, offset) are always bound
parameters. The two never share a path into the query text.

Usage:
    compiled = QueryCompiler("bet_transactions").compile(spec)
    rows = await gateway.fetch_all(compiled.data, compiled.data_params)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Tuple

from psycopg import sql

from wager_analytics.domain.models import (
    Aggregation,
    AggregationQuerySpec,
    DimensionRef,
    MetricRef,
    Ordering,
)

DEFAULT_TABLE = "bet_transactions"


@dataclass(frozen=True)
class CompiledQuery:
    """
    A data query and its count query, each with its bound parameters.
    """

    data: sql.Composed
    data_params: Tuple[Any, ...]
    count: sql.Composed
    count_params: Tuple[Any, ...]

    def as_text(self) -> str:
        """Render both statements for logs and dry runs (placeholders left as %s)."""
        return f"{self.data.as_string()};\n{self.count.as_string()};"


def _dimension_expr(dimension: DimensionRef) -> sql.Composable:
    column = sql.Identifier(dimension.column)
    if dimension.grain is None:
        return column
    return sql.SQL("date_trunc({grain}, {column})").format(
        grain=sql.Literal(dimension.grain.value), column=column
    )


def _metric_expr(metric: MetricRef) -> sql.Composable:
    if metric.aggregation is Aggregation.COUNT:
        return sql.SQL("COUNT(*)")
    return sql.SQL("SUM({})").format(sql.Identifier(metric.column))


def _aliased(expr: sql.Composable, name: str) -> sql.Composed:
    return sql.SQL("{} AS {}").format(expr, sql.Identifier(name))


class QueryCompiler:
    """
    Compile specs against a single fact table.

    Parameters
    ----------
    table : str
        Fact table name, optionally schema-qualified ("public.bet_transactions").
    """

    def __init__(self, table: str = DEFAULT_TABLE) -> None:
        parts = table.split(".")
        if not all(part.strip() for part in parts):
            raise ValueError(f"Invalid table name: {table!r}")
        self.table_name = table
        self.table = sql.Identifier(*parts)

    def _where(self, spec: AggregationQuerySpec) -> Tuple[sql.Composable, List[Any]]:
        """Shared filter predicate; the count query reuses it verbatim."""
        clauses: List[sql.Composable] = []
        params: List[Any] = []

        for column_filter in spec.filters:
            clauses.append(
                sql.SQL("{} = {}").format(sql.Identifier(column_filter.column), sql.Placeholder())
            )
            params.append(column_filter.value)

        time_range = spec.time_range
        if time_range is not None:
            column = sql.Identifier(time_range.column)
            if time_range.start is not None:
                clauses.append(sql.SQL("{} >= {}").format(column, sql.Placeholder()))
                params.append(time_range.start)
            if time_range.end is not None:
                clauses.append(sql.SQL("{} <= {}").format(column, sql.Placeholder()))
                params.append(time_range.end)

        if not clauses:
            return sql.SQL(""), params
        return sql.SQL(" WHERE ") + sql.SQL(" AND ").join(clauses), params

    def _order_by(self, spec: AggregationQuerySpec) -> sql.Composable:
        dimension_exprs = [_dimension_expr(d) for d in spec.dimensions]
        keys: List[sql.Composable] = []
        if spec.ordering is Ordering.METRIC_DESC and spec.metric is not None:
            keys.append(sql.SQL("{} DESC").format(_metric_expr(spec.metric)))
        keys.extend(sql.SQL("{} ASC").format(expr) for expr in dimension_exprs)
        if not keys:
            return sql.SQL("")
        return sql.SQL(" ORDER BY ") + sql.SQL(", ").join(keys)

    def compile(self, spec: AggregationQuerySpec) -> CompiledQuery:
        """
        Render the data query and the count query for `spec`.

        The data query groups by every dimension in order, orders per
        `spec.ordering`, and pages with bound LIMIT/OFFSET. The count query
        keeps only the filter predicate and counts the matching rows; it has
        no grouping, ordering, or paging.
        """
        where, params = self._where(spec)
        dimension_exprs = [_dimension_expr(d) for d in spec.dimensions]

        fields: List[sql.Composable] = []
        for dimension, expr in zip(spec.dimensions, dimension_exprs):
            if dimension.grain is not None or dimension.alias:
                fields.append(_aliased(expr, dimension.output_name))
            else:
                fields.append(expr)
        if spec.metric is not None:
            fields.append(_aliased(_metric_expr(spec.metric), spec.metric.output_name))

        data = sql.SQL("SELECT {fields} FROM {table}").format(
            fields=sql.SQL(", ").join(fields), table=self.table
        )
        data += where
        if dimension_exprs:
            data += sql.SQL(" GROUP BY ") + sql.SQL(", ").join(dimension_exprs)
        data += self._order_by(spec)
        data += sql.SQL(" LIMIT {} OFFSET {}").format(sql.Placeholder(), sql.Placeholder())

        count = sql.SQL("SELECT COUNT(*) AS total FROM {table}").format(table=self.table)
        count += where

        return CompiledQuery(
            data=data,
            data_params=tuple(params) + (spec.page_size, spec.offset),
            count=count,
            count_params=tuple(params),
        )


__all__ = ["CompiledQuery", "DEFAULT_TABLE", "QueryCompiler"]
