"""
Transport-agnostic request dispatcher.

Maps `(method, path)` plus raw query parameters, headers, and body onto engine
operations and shapes the result into a status code and JSON-ready body. Any
HTTP framework can sit in front of `AnalyticsService.handle`; none is bundled.

Response shapes:
- plain arrays for the row-returning routes
- `{"data", "currentPage", "totalPages"}` for the paginated custom graph
- `{"error": "..."}` with a 4xx/5xx status on failure
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Tuple

from wager_analytics.config import Settings
from wager_analytics.domain.errors import AnalyticsError, NotFound
from wager_analytics.engine import AnalyticsEngine
from wager_analytics.infrastructure.gateway import DataGateway
from wager_analytics.utils.logging import get_logger

log = get_logger(__name__)

DEFAULT_AUTH_HEADER = "X-API-Secret"

Params = Mapping[str, Any]
Handler = Callable[[Params, Any], Awaitable[Any]]


@dataclass(frozen=True)
class Response:
    status: int
    body: Any


def _param(params: Params, name: str) -> Any:
    """Single value for `name`; multi-valued params keep the last value."""
    value = params.get(name)
    if isinstance(value, (list, tuple)):
        return value[-1] if value else None
    return value


def _header(headers: Optional[Mapping[str, str]], name: str) -> Optional[str]:
    if not headers:
        return None
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


class AnalyticsService:
    """
    Route table over an `AnalyticsEngine`.

    Every GET route requires the shared secret in `auth_header`; the
    `POST /api/auth` route checks a secret from the body instead.
    """

    def __init__(self, engine: AnalyticsEngine, auth_header: str = DEFAULT_AUTH_HEADER) -> None:
        self.engine = engine
        self.auth_header = auth_header
        self._routes: Dict[Tuple[str, str], Tuple[Handler, bool]] = {
            ("GET", "/api/time-series"): (self._time_series, True),
            ("GET", "/api/dimensional-analysis"): (self._dimensional, True),
            ("GET", "/api/custom-graph"): (self._custom_graph, True),
            ("GET", "/api/sports"): (self._sports, True),
            ("GET", "/api/stat-types"): (self._stat_types, True),
            ("GET", "/api/sport-catalog"): (self._sport_catalog, True),
            ("GET", "/api/columns"): (self._columns, True),
            ("POST", "/api/auth"): (self._auth, False),
        }

    @classmethod
    def from_settings(cls, settings: Settings, gateway: DataGateway) -> "AnalyticsService":
        return cls(AnalyticsEngine.from_settings(settings, gateway), auth_header=settings.auth_header)

    def routes(self) -> list:
        return sorted(f"{method} {path}" for method, path in self._routes)

    async def handle(
        self,
        method: str,
        path: str,
        query: Optional[Params] = None,
        headers: Optional[Mapping[str, str]] = None,
        body: Any = None,
    ) -> Response:
        key = (method.upper(), path.rstrip("/") or "/")
        try:
            route = self._routes.get(key)
            if route is None:
                raise NotFound(f"No route for {key[0]} {key[1]}")
            handler, protected = route
            if protected:
                self.engine.authorize(_header(headers, self.auth_header))
            result = await handler(query or {}, body)
        except AnalyticsError as exc:
            if exc.status_code < 500:
                log.info(
                    "Request rejected",
                    extra={"path": key[1], "status": exc.status_code, "reason": exc.public_message},
                )
            return Response(exc.status_code, exc.to_payload())

        if isinstance(result, Response):
            return result
        return Response(200, result)

    # -- handlers -------------------------------------------------------------------

    async def _time_series(self, q: Params, body: Any) -> Any:
        return await self.engine.time_series(
            _param(q, "marketType"),
            _param(q, "startDate"),
            _param(q, "endDate"),
            client_id=_param(q, "clientId"),
            page=_param(q, "page"),
            page_size=_param(q, "pageSize"),
        )

    async def _dimensional(self, q: Params, body: Any) -> Any:
        return await self.engine.dimensional_analysis(
            _param(q, "dimension"),
            client_id=_param(q, "clientId"),
            usage_id=_param(q, "usageId"),
            page=_param(q, "page"),
            page_size=_param(q, "pageSize"),
        )

    async def _custom_graph(self, q: Params, body: Any) -> Any:
        page = await self.engine.custom_graph(
            _param(q, "yColumn"),
            _param(q, "xColumns"),
            start_date=_param(q, "startDate"),
            start_time=_param(q, "startTime"),
            end_date=_param(q, "endDate"),
            end_time=_param(q, "endTime"),
            page=_param(q, "page"),
            page_size=_param(q, "pageSize"),
        )
        return page.to_payload()

    async def _sports(self, q: Params, body: Any) -> Any:
        return await self.engine.sports(
            usage_id=_param(q, "usageId"), page=_param(q, "page"), page_size=_param(q, "pageSize")
        )

    async def _stat_types(self, q: Params, body: Any) -> Any:
        return await self.engine.stat_types(
            usage_id=_param(q, "usageId"), page=_param(q, "page"), page_size=_param(q, "pageSize")
        )

    async def _sport_catalog(self, q: Params, body: Any) -> Any:
        return await self.engine.sport_catalog(page=_param(q, "page"), page_size=_param(q, "pageSize"))

    async def _columns(self, q: Params, body: Any) -> Any:
        return self.engine.columns()

    async def _auth(self, q: Params, body: Any) -> Response:
        secret = body.get("secret") if isinstance(body, Mapping) else None
        decision = self.engine.authenticate(secret)
        if decision.allowed:
            return Response(200, {"authorized": True})
        return Response(401, {"authorized": False, "error": "Unauthorized"})


__all__ = ["AnalyticsService", "DEFAULT_AUTH_HEADER", "Response"]
