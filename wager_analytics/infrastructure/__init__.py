"""
Infrastructure package for the wager analytics service.

Centralizes database connectivity concerns (DSN building, pooling, the data
gateway). Keep this layer focused on I/O and resource management, decoupled
from query construction and engine logic.
"""

from wager_analytics.infrastructure.db_factory import (
    build_dsn,
    create_async_pool,
    get_sync_connection,
)
from wager_analytics.infrastructure.gateway import DataGateway, PostgresGateway

__all__ = [
    "DataGateway",
    "PostgresGateway",
    "build_dsn",
    "create_async_pool",
    "get_sync_connection",
]
