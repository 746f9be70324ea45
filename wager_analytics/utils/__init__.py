"""
Utilities package for the wager analytics service.

Exports shared helpers for logging and other cross-cutting concerns.
Keep this package lightweight and free of domain-specific logic.
"""

from wager_analytics.utils.logging import configure_logging, get_logger

__all__ = [
    "configure_logging",
    "get_logger",
]
