"""
Offset pagination and page assembly.

The data query and the count query of a compiled spec are independent, so
`fetch_page` issues them concurrently in a task group and joins both before
building the page. A failure in one cancels the other.
A page past the end is not clamped: the data query simply returns no rows.
"""

from __future__ import annotations

import asyncio
import math
from typing import Any, Dict, List

from wager_analytics.compiler import CompiledQuery
from wager_analytics.domain.models import AggregationQuerySpec, QueryResultPage
from wager_analytics.infrastructure.gateway import DataGateway


def offset(page: int, page_size: int) -> int:
    """Rows to skip for a 1-based page."""
    if page < 1 or page_size < 1:
        raise ValueError("page and page_size must be positive")
    return (page - 1) * page_size


def total_pages(total_rows: int, page_size: int) -> int:
    """ceil(total_rows / page_size), never less than one page."""
    if page_size < 1:
        raise ValueError("page_size must be positive")
    return max(1, math.ceil(max(total_rows, 0) / page_size))


def assemble_page(
    spec: AggregationQuerySpec, rows: List[Dict[str, Any]], total_rows: int
) -> QueryResultPage:
    return QueryResultPage(
        rows=list(rows),
        current_page=spec.page,
        total_pages=total_pages(total_rows, spec.page_size),
    )


async def fetch_page(
    gateway: DataGateway, compiled: CompiledQuery, spec: AggregationQuerySpec
) -> QueryResultPage:
    """
    Run the data and count queries concurrently and assemble the page.

    Either query failing fails the page and cancels the other one before this
    returns; no partial result is returned. The first store error is re-raised
    as is rather than wrapped in an ExceptionGroup.
    """
    try:
        async with asyncio.TaskGroup() as group:
            rows_task = group.create_task(gateway.fetch_all(compiled.data, compiled.data_params))
            total_task = group.create_task(gateway.fetch_scalar(compiled.count, compiled.count_params))
    except ExceptionGroup as failed:
        raise failed.exceptions[0] from None
    total = total_task.result()
    return assemble_page(spec, rows_task.result(), int(total or 0))


__all__ = ["assemble_page", "fetch_page", "offset", "total_pages"]
