"""
Wager Analytics - read-only aggregation queries over a wagering fact table.

This package turns a handful of client parameters (dimension names, a metric
column, time ranges, page/pageSize) into safe, paginated SQL against a single
transactions table:

- Column registry: the closed allow-list of queryable identifiers
- Spec builder: validation of raw request parameters
- Query compiler: parameterized data and count queries via psycopg.sql
- Pagination engine: offset math and concurrent data/count execution
- Auth guard: shared-secret check in constant time
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from wager_analytics.auth import AuthDecision, AuthGuard
from wager_analytics.builder import QuerySpecBuilder
from wager_analytics.compiler import CompiledQuery, QueryCompiler
from wager_analytics.config import Settings, get_settings
from wager_analytics.engine import AnalyticsEngine, build_components
from wager_analytics.registry import ColumnRegistry, default_registry
from wager_analytics.service import AnalyticsService, Response
from wager_analytics.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Query engine
    "AnalyticsEngine",
    "build_components",
    "ColumnRegistry",
    "default_registry",
    "QuerySpecBuilder",
    "QueryCompiler",
    "CompiledQuery",
    # Auth
    "AuthDecision",
    "AuthGuard",
    # Request dispatch
    "AnalyticsService",
    "Response",
    # Logging
    "configure_logging",
    "get_logger",
]
