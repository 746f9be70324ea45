"""
Error taxonomy for the analytics engine.

Every failure the engine reports carries an HTTP-style status code and a
message that is safe to return to a caller. Store failures keep the original
exception as ``__cause__`` for logging but never expose it in the message.
"""

from __future__ import annotations

from typing import Optional


class AnalyticsError(Exception):
    """Base class for all errors surfaced by the engine."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None) -> None:
        self.public_message = message or self.default_message
        super().__init__(self.public_message)

    def to_payload(self) -> dict:
        return {"error": self.public_message}


class MissingParameter(AnalyticsError):
    status_code = 400
    default_message = "Missing required parameter"

    def __init__(self, parameter: str) -> None:
        self.parameter = parameter
        super().__init__(f"Missing required parameter: {parameter}")


class InvalidColumn(AnalyticsError):
    status_code = 400
    default_message = "Invalid column"

    def __init__(self, column: str, reason: str = "is not a known column") -> None:
        self.column = column
        super().__init__(f"Column {column!r} {reason}")


class InvalidDateRange(AnalyticsError):
    status_code = 400
    default_message = "Invalid date range"


class InvalidPagination(AnalyticsError):
    status_code = 400
    default_message = "Invalid pagination parameters"


class Unauthorized(AnalyticsError):
    status_code = 401
    default_message = "Unauthorized"


class NotFound(AnalyticsError):
    status_code = 404
    default_message = "Not found"


class StoreFailure(AnalyticsError):
    """The data store round trip failed; details stay in the logs."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self) -> None:
        super().__init__(None)


__all__ = [
    "AnalyticsError",
    "InvalidColumn",
    "InvalidDateRange",
    "InvalidPagination",
    "MissingParameter",
    "NotFound",
    "StoreFailure",
    "Unauthorized",
]
