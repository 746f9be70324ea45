"""
Query spec builder: turns raw request parameters (mostly strings) into a
validated, immutable `AggregationQuerySpec`.

Every column name a caller supplies is resolved through the `ColumnRegistry`
here; nothing downstream accepts an unresolved identifier. All validation
happens before any store call is made.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Any, List, Optional, Sequence, Tuple, Union

from wager_analytics.domain.errors import (
    InvalidColumn,
    InvalidDateRange,
    InvalidPagination,
    MissingParameter,
)
from wager_analytics.domain.models import (
    Aggregation,
    AggregationQuerySpec,
    ColumnFilter,
    DimensionRef,
    MetricRef,
    Ordering,
    TimeGrain,
    TimeRange,
)
from wager_analytics.registry import RISK_COLUMN, TIMESTAMP_COLUMN, ColumnRegistry

DEFAULT_PAGE_SIZE = 250
MAX_PAGE_SIZE = 1000
# Largest OFFSET Postgres accepts (bigint).
MAX_OFFSET = 2**63 - 1

# Output aliases used by the fixed-shape endpoints.
HANDLE_ALIAS = "bet_handle"
DATE_ALIAS = "date"

RawValue = Union[str, int, None]


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _split_columns(raw: Union[str, Sequence[str], None]) -> List[str]:
    """Accept "a,b" or ["a", "b"]; blank entries are dropped."""
    if raw is None:
        return []
    items = raw.split(",") if isinstance(raw, str) else list(raw)
    return [item.strip() for item in items if isinstance(item, str) and item.strip()]


def _parse_date_part(name: str, raw: Union[str, date, datetime]) -> Union[date, datetime]:
    if isinstance(raw, (date, datetime)):
        return raw
    text = str(raw).strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        raise InvalidDateRange(f"{name} must be an ISO date (YYYY-MM-DD)") from None


def _parse_time_part(name: str, raw: Union[str, time]) -> time:
    if isinstance(raw, time):
        return raw
    try:
        return time.fromisoformat(str(raw).strip())
    except ValueError:
        raise InvalidDateRange(f"{name} must be a time of day (HH:MM[:SS])") from None


def _to_bound(
    date_name: str,
    date_raw: Union[str, date, datetime],
    time_name: str,
    time_raw: Union[str, time, None],
    end_of_day: bool,
) -> datetime:
    """
    Combine a date (or full timestamp) and an optional time into a UTC timestamp.

    A bare date expands to the first instant of the day for a lower bound and
    the last instant for an upper bound, so date ranges are inclusive.
    """
    parsed = _parse_date_part(date_name, date_raw)
    if isinstance(parsed, datetime):
        moment = parsed
        if not _is_missing(time_raw):
            moment = datetime.combine(parsed.date(), _parse_time_part(time_name, time_raw), parsed.tzinfo)
    elif not _is_missing(time_raw):
        moment = datetime.combine(parsed, _parse_time_part(time_name, time_raw))
    else:
        moment = datetime.combine(parsed, time.max if end_of_day else time.min)

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


class QuerySpecBuilder:
    """
    Validate request parameters against the column registry and build specs.

    Parameters
    ----------
    registry : ColumnRegistry
        Allow-list every identifier is resolved against.
    default_page_size : int
        Page size used when the caller does not supply one.
    max_page_size : int
        Upper bound for caller-supplied page sizes.
    """

    def __init__(
        self,
        registry: ColumnRegistry,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
    ) -> None:
        if not 1 <= default_page_size <= max_page_size:
            raise ValueError("default_page_size must be between 1 and max_page_size")
        self.registry = registry
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    # -- pagination -----------------------------------------------------------------

    @staticmethod
    def _positive_int(name: str, raw: RawValue, default: int) -> int:
        if _is_missing(raw):
            return default
        if isinstance(raw, bool):
            raise InvalidPagination(f"{name} must be a positive integer")
        if isinstance(raw, int):
            value = raw
        else:
            try:
                value = int(str(raw).strip())
            except ValueError:
                raise InvalidPagination(f"{name} must be a positive integer") from None
        if value < 1:
            raise InvalidPagination(f"{name} must be a positive integer")
        return value

    def parse_pagination(self, page: RawValue = None, page_size: RawValue = None) -> Tuple[int, int]:
        """
        Parse page/pageSize, applying defaults for absent values.

        Raises
        ------
        InvalidPagination
            If either value is non-numeric or non-positive, the page size
            exceeds the configured maximum, or the page lies beyond the
            largest offset the store accepts.
        """
        page_num = self._positive_int("page", page, 1)
        size = self._positive_int("pageSize", page_size, self.default_page_size)
        if size > self.max_page_size:
            raise InvalidPagination(f"pageSize must not exceed {self.max_page_size}")
        if (page_num - 1) * size > MAX_OFFSET:
            raise InvalidPagination("page is too large")
        return page_num, size

    # -- helpers --------------------------------------------------------------------

    def _filters(self, **values: Optional[str]) -> Tuple[ColumnFilter, ...]:
        filters = []
        for column, value in values.items():
            if _is_missing(value):
                continue
            self.registry.require_dimension(column)
            filters.append(ColumnFilter(column=column, value=str(value).strip()))
        return tuple(filters)

    def _handle_metric(self) -> MetricRef:
        descriptor = self.registry.require_metric(RISK_COLUMN)
        return MetricRef(column=descriptor.name, aggregation=Aggregation.SUM, alias=HANDLE_ALIAS)

    def _dimensions(self, names: Sequence[str]) -> Tuple[DimensionRef, ...]:
        seen = set()
        dimensions = []
        for name in names:
            descriptor = self.registry.require_dimension(name)
            if descriptor.name in seen:
                raise InvalidColumn(name, "is listed more than once")
            seen.add(descriptor.name)
            dimensions.append(DimensionRef(column=descriptor.name))
        return tuple(dimensions)

    # -- spec construction ----------------------------------------------------------

    def build_time_series(
        self,
        market_type: Optional[str],
        start_date: Union[str, date, None],
        end_date: Union[str, date, None],
        client_id: Optional[str] = None,
        page: RawValue = None,
        page_size: RawValue = None,
    ) -> AggregationQuerySpec:
        """
        Daily bet handle for one market type between two inclusive dates.
        """
        for name, value in (
            ("marketType", market_type),
            ("startDate", start_date),
            ("endDate", end_date),
        ):
            if _is_missing(value):
                raise MissingParameter(name)

        page_num, size = self.parse_pagination(page, page_size)
        start = _to_bound("startDate", start_date, "startTime", None, end_of_day=False)
        end = _to_bound("endDate", end_date, "endTime", None, end_of_day=True)
        if end < start:
            raise InvalidDateRange("endDate must not precede startDate")

        timestamp = self.registry.require_dimension(TIMESTAMP_COLUMN)
        return AggregationQuerySpec(
            metric=self._handle_metric(),
            dimensions=(DimensionRef(column=timestamp.name, grain=TimeGrain.DAY, alias=DATE_ALIAS),),
            time_range=TimeRange(column=timestamp.name, start=start, end=end),
            filters=self._filters(market_type=market_type, client_id=client_id),
            ordering=Ordering.DIMENSION_ASC,
            page=page_num,
            page_size=size,
        )

    def build_dimensional(
        self,
        dimension: Optional[str],
        client_id: Optional[str] = None,
        usage_id: Optional[str] = None,
        page: RawValue = None,
        page_size: RawValue = None,
    ) -> AggregationQuerySpec:
        """
        Bet handle per value of one caller-chosen dimension, largest first.
        """
        if _is_missing(dimension):
            raise MissingParameter("dimension")
        page_num, size = self.parse_pagination(page, page_size)
        descriptor = self.registry.require_dimension(dimension.strip())

        return AggregationQuerySpec(
            metric=self._handle_metric(),
            dimensions=(DimensionRef(column=descriptor.name),),
            filters=self._filters(client_id=client_id, usage_id=usage_id),
            ordering=Ordering.METRIC_DESC,
            page=page_num,
            page_size=size,
        )

    def build_custom_graph(
        self,
        y_column: Optional[str],
        x_columns: Union[str, Sequence[str], None],
        start_date: Union[str, date, None] = None,
        start_time: Union[str, time, None] = None,
        end_date: Union[str, date, None] = None,
        end_time: Union[str, time, None] = None,
        page: RawValue = None,
        page_size: RawValue = None,
    ) -> AggregationQuerySpec:
        """
        Arbitrary metric over arbitrary dimensions, optionally time-bounded.

        Each column is resolved individually: `y_column` must be a registered
        metric and every entry of `x_columns` a registered dimension.
        """
        x_names = _split_columns(x_columns)
        if _is_missing(y_column) and not x_names:
            raise MissingParameter("yColumn")
        if not _is_missing(start_time) and _is_missing(start_date):
            raise MissingParameter("startDate")
        if not _is_missing(end_time) and _is_missing(end_date):
            raise MissingParameter("endDate")

        page_num, size = self.parse_pagination(page, page_size)

        metric = None
        if not _is_missing(y_column):
            descriptor = self.registry.require_metric(y_column.strip())
            metric = MetricRef(column=descriptor.name, aggregation=descriptor.aggregation)
        dimensions = self._dimensions(x_names)

        start = end = None
        if not _is_missing(start_date):
            start = _to_bound("startDate", start_date, "startTime", start_time, end_of_day=False)
        if not _is_missing(end_date):
            end = _to_bound("endDate", end_date, "endTime", end_time, end_of_day=True)
        if start is not None and end is not None and end < start:
            raise InvalidDateRange("end must not precede start")

        time_range = None
        if start is not None or end is not None:
            timestamp = self.registry.require_dimension(TIMESTAMP_COLUMN)
            time_range = TimeRange(column=timestamp.name, start=start, end=end)

        return AggregationQuerySpec(
            metric=metric,
            dimensions=dimensions,
            time_range=time_range,
            ordering=Ordering.DIMENSION_ASC,
            page=page_num,
            page_size=size,
        )

    def build_distinct(
        self,
        columns: Union[str, Sequence[str]],
        usage_id: Optional[str] = None,
        page: RawValue = None,
        page_size: RawValue = None,
    ) -> AggregationQuerySpec:
        """
        Distinct combinations of one or more dimensions (no metric).
        """
        names = _split_columns(columns)
        if not names:
            raise MissingParameter("columns")
        page_num, size = self.parse_pagination(page, page_size)

        return AggregationQuerySpec(
            dimensions=self._dimensions(names),
            filters=self._filters(usage_id=usage_id),
            ordering=Ordering.DIMENSION_ASC,
            page=page_num,
            page_size=size,
        )


__all__ = [
    "DATE_ALIAS",
    "DEFAULT_PAGE_SIZE",
    "HANDLE_ALIAS",
    "MAX_PAGE_SIZE",
    "QuerySpecBuilder",
]
