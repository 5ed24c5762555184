"""
HTTP request metrics middleware.

Observes request duration per method, route template and status code.
"""

from __future__ import annotations

import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from utils.metrics import request_duration_seconds


def _route_path(request: Request) -> str:
    # Route templates keep label cardinality bounded; raw paths contain ids
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


class PrometheusMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start = time.perf_counter()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            request_duration_seconds.labels(
                method=request.method,
                path=_route_path(request),
                status=str(status),
            ).observe(time.perf_counter() - start)
