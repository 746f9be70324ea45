"""
Column registry: the closed allow-list of identifiers the engine may put into
generated SQL.

The registry is built once from an explicit tuple of descriptors, never by
introspecting the live table. Any name coming from a caller must pass
`ColumnRegistry.resolve` before the compiler sees it.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from wager_analytics.domain.errors import InvalidColumn
from wager_analytics.domain.models import Aggregation, ColumnDescriptor, ColumnRole, ValueType

_D = ColumnRole.DIMENSION
_M = ColumnRole.METRIC

TIMESTAMP_COLUMN = "accepted_datetime_utc"
RISK_COLUMN = "book_risk_component"

TRANSACTION_COLUMNS: Tuple[ColumnDescriptor, ...] = (
    ColumnDescriptor(name=TIMESTAMP_COLUMN, role=_D, value_type=ValueType.TIMESTAMP,
                     description="Acceptance time of the wager (UTC)."),
    ColumnDescriptor(name="market_type", role=_D, value_type=ValueType.TEXT),
    ColumnDescriptor(name="sport_id", role=_D, value_type=ValueType.NUMBER),
    ColumnDescriptor(name="sport", role=_D, value_type=ValueType.TEXT),
    ColumnDescriptor(name="stat_type", role=_D, value_type=ValueType.TEXT),
    ColumnDescriptor(name="bet_type", role=_D, value_type=ValueType.TEXT),
    ColumnDescriptor(name="team_abbr", role=_D, value_type=ValueType.TEXT),
    ColumnDescriptor(name="position_abbr", role=_D, value_type=ValueType.TEXT),
    ColumnDescriptor(name="player_id", role=_D, value_type=ValueType.NUMBER),
    ColumnDescriptor(name="player_name", role=_D, value_type=ValueType.TEXT),
    ColumnDescriptor(name="client_id", role=_D, value_type=ValueType.TEXT),
    ColumnDescriptor(name="client_name", role=_D, value_type=ValueType.TEXT),
    ColumnDescriptor(name="usage_id", role=_D, value_type=ValueType.TEXT),
    ColumnDescriptor(name="in_play", role=_D, value_type=ValueType.BOOLEAN),
    ColumnDescriptor(name=RISK_COLUMN, role=_M, value_type=ValueType.NUMBER,
                     description="Stake at risk (bet handle)."),
    ColumnDescriptor(name="book_profit_gross", role=_M, value_type=ValueType.NUMBER),
    ColumnDescriptor(name="line_movement", role=_M, value_type=ValueType.NUMBER),
    ColumnDescriptor(name="bet_price", role=_M, value_type=ValueType.NUMBER),
    ColumnDescriptor(name="bet_count", role=_M, value_type=ValueType.NUMBER,
                     aggregation=Aggregation.COUNT,
                     description="Number of wagers; compiled as COUNT(*)."),
)


class ColumnRegistry:
    """
    Read-only lookup of column descriptors by exact, case-sensitive name.
    """

    def __init__(self, columns: Iterable[ColumnDescriptor]) -> None:
        by_name: Dict[str, ColumnDescriptor] = {}
        for column in columns:
            if column.name in by_name:
                raise ValueError(f"Duplicate column descriptor: {column.name}")
            by_name[column.name] = column
        self._columns: Mapping[str, ColumnDescriptor] = MappingProxyType(by_name)

    def __contains__(self, name: object) -> bool:
        return name in self._columns

    def __len__(self) -> int:
        return len(self._columns)

    def get(self, name: str) -> Optional[ColumnDescriptor]:
        return self._columns.get(name)

    def resolve(self, name: str) -> ColumnDescriptor:
        """
        Return the descriptor for `name` or raise InvalidColumn.
        """
        descriptor = self._columns.get(name) if isinstance(name, str) else None
        if descriptor is None:
            raise InvalidColumn(str(name))
        return descriptor

    def require_dimension(self, name: str) -> ColumnDescriptor:
        descriptor = self.resolve(name)
        if descriptor.role is not ColumnRole.DIMENSION:
            raise InvalidColumn(name, "is not a dimension")
        return descriptor

    def require_metric(self, name: str) -> ColumnDescriptor:
        descriptor = self.resolve(name)
        if descriptor.role is not ColumnRole.METRIC:
            raise InvalidColumn(name, "is not a metric")
        return descriptor

    def dimensions(self) -> List[ColumnDescriptor]:
        return [c for c in self._columns.values() if c.role is ColumnRole.DIMENSION]

    def metrics(self) -> List[ColumnDescriptor]:
        return [c for c in self._columns.values() if c.role is ColumnRole.METRIC]

    def describe(self) -> List[dict]:
        """JSON-ready listing of every registered column."""
        return [c.model_dump(mode="json") for c in self._columns.values()]


def default_registry() -> ColumnRegistry:
    return ColumnRegistry(TRANSACTION_COLUMNS)


__all__ = [
    "ColumnRegistry",
    "RISK_COLUMN",
    "TIMESTAMP_COLUMN",
    "TRANSACTION_COLUMNS",
    "default_registry",
]
