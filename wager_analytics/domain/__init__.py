"""
Domain package for the wager analytics engine.

Exports the record schema, query spec types, and error taxonomy used across
the builder, compiler, and engine. Keep this package focused on data
definitions and validation concerns.
"""

from wager_analytics.domain.errors import (
    AnalyticsError,
    InvalidColumn,
    InvalidDateRange,
    InvalidPagination,
    MissingParameter,
    NotFound,
    StoreFailure,
    Unauthorized,
)
from wager_analytics.domain.models import (
    Aggregation,
    AggregationQuerySpec,
    ColumnDescriptor,
    ColumnFilter,
    ColumnRole,
    DimensionRef,
    MetricRef,
    Ordering,
    QueryResultPage,
    TimeGrain,
    TimeRange,
    TransactionRecord,
    ValueType,
)

__all__ = [
    # Models
    "Aggregation",
    "AggregationQuerySpec",
    "ColumnDescriptor",
    "ColumnFilter",
    "ColumnRole",
    "DimensionRef",
    "MetricRef",
    "Ordering",
    "QueryResultPage",
    "TimeGrain",
    "TimeRange",
    "TransactionRecord",
    "ValueType",
    # Errors
    "AnalyticsError",
    "InvalidColumn",
    "InvalidDateRange",
    "InvalidPagination",
    "MissingParameter",
    "NotFound",
    "StoreFailure",
    "Unauthorized",
]
