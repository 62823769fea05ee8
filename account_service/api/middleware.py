"""Per-request access logging and Prometheus instrumentation."""

from __future__ import annotations

import logging
import time

from fastapi import Request, Response
from prometheus_client import Counter, Histogram
from starlette.middleware.base import RequestResponseEndpoint

logger = logging.getLogger("account_service.access")

REQUEST_COUNT = Counter(
    "account_http_requests_total",
    "HTTP requests processed by the account service",
    ["method", "route", "status_code"],
)
REQUEST_LATENCY = Histogram(
    "account_http_request_seconds",
    "HTTP request latency in seconds",
    ["route"],
)


def _route_label(request: Request) -> str:
    # templated path keeps slugs out of metric labels
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)


async def access_log(request: Request, call_next: RequestResponseEndpoint) -> Response:
    start = time.perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        elapsed = time.perf_counter() - start
        route = _route_label(request)
        REQUEST_LATENCY.labels(route=route).observe(elapsed)
        REQUEST_COUNT.labels(method=request.method, route=route, status_code=str(status_code)).inc()
        level = logging.WARNING if status_code >= 400 else logging.INFO
        logger.log(
            level,
            "%s %s -> %d (%.1fms)",
            request.method,
            request.url.path,
            status_code,
            elapsed * 1000,
        )
