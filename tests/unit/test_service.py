from __future__ import annotations

from typing import Dict

import pytest

from wager_analytics.config import Settings
from wager_analytics.service import AnalyticsService

TIME_SERIES_QUERY = {"marketType": "player_prop", "startDate": "2024-01-01", "endDate": "2024-01-31"}


@pytest.mark.asyncio
async def test_missing_credential_is_rejected_before_any_query(service: AnalyticsService, stub_gateway):
    response = await service.handle("GET", "/api/time-series", query=TIME_SERIES_QUERY)

    assert response.status == 401
    assert response.body == {"error": "Unauthorized"}
    assert stub_gateway.calls == []


@pytest.mark.asyncio
async def test_wrong_credential_is_rejected(service: AnalyticsService, stub_gateway):
    response = await service.handle(
        "GET", "/api/sports", headers={"X-API-Secret": "guess"}
    )
    assert response.status == 401
    assert stub_gateway.calls == []


@pytest.mark.asyncio
async def test_header_name_is_case_insensitive(service: AnalyticsService, stub_gateway):
    stub_gateway.rows = [{"sport": "NBA"}]
    response = await service.handle("GET", "/api/sports", headers={"x-api-secret": "s3cr3t-value"})

    assert response.status == 200
    assert response.body == ["NBA"]


@pytest.mark.asyncio
async def test_time_series_ok(service: AnalyticsService, stub_gateway, auth_headers: Dict[str, str]):
    stub_gateway.rows = [{"date": "2024-01-01", "bet_handle": 10}]

    response = await service.handle("GET", "/api/time-series", query=TIME_SERIES_QUERY, headers=auth_headers)

    assert response.status == 200
    assert response.body == [{"date": "2024-01-01", "bet_handle": 10}]


@pytest.mark.asyncio
async def test_missing_parameter_is_400(service: AnalyticsService, stub_gateway, auth_headers: Dict[str, str]):
    response = await service.handle(
        "GET", "/api/time-series", query={"startDate": "2024-01-01"}, headers=auth_headers
    )

    assert response.status == 400
    assert response.body == {"error": "Missing required parameter: marketType"}
    assert stub_gateway.calls == []


@pytest.mark.asyncio
async def test_invalid_column_is_400(service: AnalyticsService, stub_gateway, auth_headers: Dict[str, str]):
    response = await service.handle(
        "GET",
        "/api/dimensional-analysis",
        query={"dimension": "sport) UNION SELECT password FROM users --"},
        headers=auth_headers,
    )

    assert response.status == 400
    assert "error" in response.body
    assert stub_gateway.calls == []


@pytest.mark.asyncio
async def test_bad_pagination_is_400(service: AnalyticsService, auth_headers: Dict[str, str]):
    response = await service.handle(
        "GET",
        "/api/custom-graph",
        query={"yColumn": "bet_count", "xColumns": "sport", "pageSize": "5000"},
        headers=auth_headers,
    )
    assert response.status == 400


@pytest.mark.asyncio
async def test_custom_graph_payload(service: AnalyticsService, stub_gateway, auth_headers: Dict[str, str]):
    stub_gateway.rows = [{"sport": "NBA", "bet_count": 4}]
    stub_gateway.total = 3

    response = await service.handle(
        "GET",
        "/api/custom-graph",
        query={"yColumn": "bet_count", "xColumns": "sport", "page": "2", "pageSize": "1"},
        headers=auth_headers,
    )

    assert response.status == 200
    assert response.body == {
        "data": [{"sport": "NBA", "bet_count": 4}],
        "currentPage": 2,
        "totalPages": 3,
    }


@pytest.mark.asyncio
async def test_store_failure_is_500_without_details(
    service: AnalyticsService, stub_gateway, auth_headers: Dict[str, str]
):
    stub_gateway.error = RuntimeError('relation "bet_transactions" does not exist')

    response = await service.handle(
        "GET", "/api/dimensional-analysis", query={"dimension": "sport"}, headers=auth_headers
    )

    assert response.status == 500
    assert response.body == {"error": "Internal server error"}


@pytest.mark.asyncio
async def test_unknown_route_is_404(service: AnalyticsService, auth_headers: Dict[str, str]):
    response = await service.handle("GET", "/api/nope", headers=auth_headers)
    assert response.status == 404

    response = await service.handle("DELETE", "/api/sports", headers=auth_headers)
    assert response.status == 404


@pytest.mark.asyncio
async def test_trailing_slash_and_method_case(service: AnalyticsService, stub_gateway, auth_headers: Dict[str, str]):
    response = await service.handle("get", "/api/stat-types/", headers=auth_headers)
    assert response.status == 200


@pytest.mark.asyncio
async def test_multi_valued_param_uses_last_value(
    service: AnalyticsService, stub_gateway, auth_headers: Dict[str, str]
):
    response = await service.handle(
        "GET",
        "/api/dimensional-analysis",
        query={"dimension": ["sport", "stat_type"]},
        headers=auth_headers,
    )

    assert response.status == 200
    _, query, _ = stub_gateway.calls[0]
    assert 'GROUP BY "stat_type"' in query.as_string()


@pytest.mark.asyncio
async def test_sport_catalog_route(service: AnalyticsService, stub_gateway, auth_headers: Dict[str, str]):
    stub_gateway.rows = [{"sport_id": 4, "sport": "NHL"}]
    response = await service.handle("GET", "/api/sport-catalog", headers=auth_headers)
    assert response.body == [{"sportId": 4, "sportName": "NHL"}]


@pytest.mark.asyncio
async def test_columns_route(service: AnalyticsService, auth_headers: Dict[str, str]):
    response = await service.handle("GET", "/api/columns", headers=auth_headers)
    assert response.status == 200
    assert {"name", "role", "value_type"} <= set(response.body[0])


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body, status, payload",
    [
        ({"secret": "s3cr3t-value"}, 200, {"authorized": True}),
        ({"secret": "wrong"}, 401, {"authorized": False, "error": "Unauthorized"}),
        ({}, 401, {"authorized": False, "error": "Unauthorized"}),
        (None, 401, {"authorized": False, "error": "Unauthorized"}),
    ],
)
async def test_auth_route(service: AnalyticsService, stub_gateway, body, status, payload):
    response = await service.handle("POST", "/api/auth", body=body)

    assert response.status == status
    assert response.body == payload
    assert stub_gateway.calls == []


def test_routes_listing(service: AnalyticsService):
    routes = service.routes()
    assert "POST /api/auth" in routes
    assert "GET /api/custom-graph" in routes
    assert routes == sorted(routes)


@pytest.mark.asyncio
async def test_from_settings_uses_configured_header(stub_gateway):
    settings = Settings(api_secret="k", auth_header="Authorization-Token")
    service = AnalyticsService.from_settings(settings, stub_gateway)

    ok = await service.handle("GET", "/api/columns", headers={"authorization-token": "k"})
    default_header = await service.handle("GET", "/api/columns", headers={"X-API-Secret": "k"})

    assert ok.status == 200
    assert default_header.status == 401
