from __future__ import annotations

import asyncio

import pytest

from wager_analytics.builder import QuerySpecBuilder
from wager_analytics.compiler import QueryCompiler
from wager_analytics.pagination import assemble_page, fetch_page, offset, total_pages


@pytest.mark.parametrize(
    "page, page_size, expected",
    [(1, 250, 0), (2, 250, 250), (3, 50, 100), (10, 1, 9)],
)
def test_offset(page: int, page_size: int, expected: int):
    assert offset(page, page_size) == expected


@pytest.mark.parametrize("page, page_size", [(0, 10), (1, 0), (-1, 5)])
def test_offset_rejects_non_positive(page: int, page_size: int):
    with pytest.raises(ValueError):
        offset(page, page_size)


@pytest.mark.parametrize(
    "total, page_size, expected",
    [(0, 250, 1), (1, 250, 1), (250, 250, 1), (500, 250, 2), (501, 250, 3), (7, 3, 3)],
)
def test_total_pages(total: int, page_size: int, expected: int):
    assert total_pages(total, page_size) == expected


def test_assemble_page_keeps_requested_page(builder: QuerySpecBuilder):
    spec = builder.build_custom_graph("bet_count", "sport", page=5, page_size=10)
    page = assemble_page(spec, [], total_rows=12)

    assert page.rows == []
    assert page.current_page == 5
    assert page.total_pages == 2


class _OverlapGateway:
    """Data query only completes once the count query has started."""

    def __init__(self) -> None:
        self.count_started = asyncio.Event()

    async def fetch_all(self, query, params):
        await asyncio.wait_for(self.count_started.wait(), timeout=1)
        return [{"sport": "NBA", "bet_count": 3}]

    async def fetch_scalar(self, query, params):
        self.count_started.set()
        return 501


@pytest.mark.asyncio
async def test_fetch_page_runs_data_and_count_concurrently(
    builder: QuerySpecBuilder, compiler: QueryCompiler
):
    spec = builder.build_custom_graph("bet_count", "sport")
    page = await fetch_page(_OverlapGateway(), compiler.compile(spec), spec)

    assert page.rows == [{"sport": "NBA", "bet_count": 3}]
    assert page.current_page == 1
    assert page.total_pages == 3


@pytest.mark.asyncio
async def test_fetch_page_submits_matching_params(
    stub_gateway, builder: QuerySpecBuilder, compiler: QueryCompiler
):
    gateway = stub_gateway
    gateway.total = None
    spec = builder.build_dimensional("sport", usage_id="u-1", page=4, page_size=25)
    compiled = compiler.compile(spec)

    page = await fetch_page(gateway, compiled, spec)

    assert page.total_pages == 1
    assert page.current_page == 4
    submitted = {kind: params for kind, _, params in gateway.calls}
    assert submitted["all"] == ("u-1", 25, 75)
    assert submitted["scalar"] == ("u-1",)


@pytest.mark.asyncio
async def test_fetch_page_fails_when_either_query_fails(
    stub_gateway, builder: QuerySpecBuilder, compiler: QueryCompiler
):
    spec = builder.build_custom_graph("bet_count", "sport")
    gateway = stub_gateway
    gateway.error = RuntimeError("connection reset")

    with pytest.raises(RuntimeError, match="connection reset"):
        await fetch_page(gateway, compiler.compile(spec), spec)


class _FailingDataGateway:
    """Data query fails at once while the count query is still in flight."""

    def __init__(self) -> None:
        self.count_cancelled = False
        self.count_finished = False

    async def fetch_all(self, query, params):
        await asyncio.sleep(0)
        raise RuntimeError("data query failed")

    async def fetch_scalar(self, query, params):
        try:
            await asyncio.sleep(0.2)
        except asyncio.CancelledError:
            self.count_cancelled = True
            raise
        self.count_finished = True
        return 1


@pytest.mark.asyncio
async def test_failed_data_query_cancels_count_query(builder: QuerySpecBuilder, compiler: QueryCompiler):
    spec = builder.build_custom_graph("bet_count", "sport")
    gateway = _FailingDataGateway()

    with pytest.raises(RuntimeError, match="data query failed"):
        await fetch_page(gateway, compiler.compile(spec), spec)

    assert gateway.count_cancelled
    await asyncio.sleep(0.3)
    assert not gateway.count_finished
