"""Prometheus metrics and per-request tracing"""
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from prometheus_client import Counter, Histogram
from starlette.middleware.base import BaseHTTPMiddleware

from sleepplanet.utils.logger import logger

REQUEST_ID_HEADER = "X-Request-ID"
SLOW_REQUEST_SECONDS = 1.0

# ===== HTTP =====

http_requests_total = Counter(
    "sleepplanet_http_requests_total",
    "HTTP requests by route template and status",
    ["method", "route", "status"]
)

http_request_duration_seconds = Histogram(
    "sleepplanet_http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "route"]
)

http_errors_total = Counter(
    "sleepplanet_http_errors_total",
    "HTTP responses with status >= 400",
    ["method", "route", "status"]
)

# ===== Identity =====

authentication_failures_total = Counter(
    "sleepplanet_authentication_failures_total",
    "Rejected credentials",
    ["kind"]  # expired, bad_signature, malformed, other
)

admin_logins_total = Counter(
    "sleepplanet_admin_logins_total",
    "Admin login attempts",
    ["outcome"]  # success, failure
)

admin_lifecycle_operations_total = Counter(
    "sleepplanet_admin_lifecycle_operations_total",
    "Committed administrator lifecycle operations",
    ["operation"]  # create, freeze, delete
)


def _route_label(request: Request) -> str:
    """Route template (``/sys/admins/{admin_id}/freeze``) so ids do not explode label cardinality."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


class MonitoringMiddleware(BaseHTTPMiddleware):
    """Count and time every request and tag it with a request id."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id

        try:
            response = await call_next(request)
        except Exception:
            route = _route_label(request)
            http_errors_total.labels(method=request.method, route=route, status=500).inc()
            logger.error(
                f"Request failed: {request.method} {request.url.path}",
                extra={"request_id": request_id, "method": request.method, "path": request.url.path},
                exc_info=True
            )
            raise

        duration = time.perf_counter() - started
        route = _route_label(request)
        status = response.status_code

        http_requests_total.labels(method=request.method, route=route, status=status).inc()
        http_request_duration_seconds.labels(method=request.method, route=route).observe(duration)
        if status >= 400:
            http_errors_total.labels(method=request.method, route=route, status=status).inc()

        if duration > SLOW_REQUEST_SECONDS:
            logger.warning(
                f"Slow request: {request.method} {request.url.path}",
                extra={
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "duration": round(duration, 3),
                    "status": status
                }
            )

        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Response-Time"] = f"{duration:.3f}s"
        return response


def record_auth_failure(kind: str) -> None:
    authentication_failures_total.labels(kind=kind).inc()


def record_login(outcome: str) -> None:
    admin_logins_total.labels(outcome=outcome).inc()


def record_lifecycle_operation(operation: str) -> None:
    admin_lifecycle_operations_total.labels(operation=operation).inc()
