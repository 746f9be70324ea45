"""
Domain models for the wager analytics engine.

Defines the fact-table record schema (aligned with `db/init.sql`), the column
descriptors the registry hands out, and the immutable query spec that flows
from the builder through the compiler to the pagination engine.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, model_validator

_FROZEN = {"frozen": True, "populate_by_name": True, "arbitrary_types_allowed": False}


class ColumnRole(str, Enum):
    DIMENSION = "dimension"
    METRIC = "metric"


class ValueType(str, Enum):
    NUMBER = "number"
    TEXT = "text"
    TIMESTAMP = "timestamp"
    BOOLEAN = "boolean"


class Aggregation(str, Enum):
    SUM = "sum"
    COUNT = "count"


class TimeGrain(str, Enum):
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class Ordering(str, Enum):
    """How a compiled query orders its groups."""

    DIMENSION_ASC = "dimension_asc"
    METRIC_DESC = "metric_desc"


class TransactionRecord(BaseModel):
    """
    Representation of a single row in the `bet_transactions` table.
    """

    accepted_datetime_utc: datetime = Field(..., description="When the wager was accepted (UTC).")
    market_type: str = Field(..., description="Market the wager was placed on.")
    book_risk_component: Decimal = Field(..., ge=0, description="Stake at risk for the book.")
    book_profit_gross: Decimal = Field(..., description="Gross profit; negative on losses.")
    sport_id: int
    sport: str
    stat_type: str
    bet_type: str
    team_abbr: Optional[str] = None
    position_abbr: Optional[str] = None
    player_id: Optional[int] = None
    player_name: Optional[str] = None
    client_id: str
    client_name: str
    usage_id: str
    in_play: bool = False
    line_movement: Decimal = Decimal("0")
    bet_price: Decimal

    model_config = _FROZEN


class ColumnDescriptor(BaseModel):
    """A column the engine is allowed to reference, and how."""

    name: str
    role: ColumnRole
    value_type: ValueType
    aggregation: Aggregation = Aggregation.SUM
    description: str = ""

    model_config = _FROZEN


class DimensionRef(BaseModel):
    column: str
    grain: Optional[TimeGrain] = None
    alias: Optional[str] = None

    model_config = _FROZEN

    @property
    def output_name(self) -> str:
        return self.alias or self.column


class MetricRef(BaseModel):
    column: str
    aggregation: Aggregation = Aggregation.SUM
    alias: Optional[str] = None

    model_config = _FROZEN

    @property
    def output_name(self) -> str:
        return self.alias or self.column


class ColumnFilter(BaseModel):
    """Equality predicate on a registered column; the value is always bound."""

    column: str
    value: str

    model_config = _FROZEN


class TimeRange(BaseModel):
    """Inclusive timestamp bounds. Either side may be open."""

    column: str = "accepted_datetime_utc"
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    model_config = _FROZEN

    @model_validator(mode="after")
    def _check_order(self) -> "TimeRange":
        if self.start is not None and self.end is not None and self.end < self.start:
            raise ValueError("time range end precedes start")
        return self

    @property
    def is_open(self) -> bool:
        return self.start is None and self.end is None


class AggregationQuerySpec(BaseModel):
    """
    Validated, immutable description of one aggregation query.

    Column names held here have already passed registry resolution; the
    compiler trusts them as identifiers.
    """

    metric: Optional[MetricRef] = None
    dimensions: Tuple[DimensionRef, ...] = ()
    time_range: Optional[TimeRange] = None
    filters: Tuple[ColumnFilter, ...] = ()
    ordering: Ordering = Ordering.DIMENSION_ASC
    page: int = Field(1, ge=1)
    page_size: int = Field(250, ge=1)

    model_config = _FROZEN

    @model_validator(mode="after")
    def _check_shape(self) -> "AggregationQuerySpec":
        if self.metric is None and not self.dimensions:
            raise ValueError("a query needs a metric or at least one dimension")
        if self.ordering is Ordering.METRIC_DESC and self.metric is None:
            raise ValueError("metric ordering requires a metric")
        return self

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def client_filter(self) -> Optional[str]:
        for f in self.filters:
            if f.column == "client_id":
                return f.value
        return None


class QueryResultPage(BaseModel):
    rows: List[Dict[str, Any]] = Field(default_factory=list)
    current_page: int = Field(..., ge=1)
    total_pages: int = Field(..., ge=1)

    model_config = {"frozen": True}

    def to_payload(self) -> Dict[str, Any]:
        return {
            "data": self.rows,
            "currentPage": self.current_page,
            "totalPages": self.total_pages,
        }


__all__ = [
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
]
