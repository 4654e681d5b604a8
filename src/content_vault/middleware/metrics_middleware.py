"""
Metrics collection middleware
Tracks request counts, durations, and status codes
"""
import re
import time
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from ..services.metrics import increment_counter, record_histogram

_UUID_SEGMENT = re.compile(r'/[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}')
_NUMERIC_SEGMENT = re.compile(r'/\d+(?=/|$)')


def normalize_path(path: str) -> str:
    """
    Collapse identifiers so metrics aggregate per route

    /api/content/123/download -> /api/content/{id}/download
    """
    path = _UUID_SEGMENT.sub('/{id}', path)
    return _NUMERIC_SEGMENT.sub('/{id}', path)


class MetricsMiddleware(BaseHTTPMiddleware):
    """
    Records requests_total and request_duration_seconds per route
    """

    async def dispatch(self, request: Request, call_next):
        if request.url.path == "/metrics":
            return await call_next(request)

        route = normalize_path(request.url.path)
        start_time = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration = time.perf_counter() - start_time
            increment_counter(
                "requests_total",
                labels={"route": route, "method": request.method, "status": str(status_code)},
            )
            record_histogram(
                "request_duration_seconds",
                duration,
                labels={"route": route, "method": request.method},
            )
            if status_code >= 500:
                increment_counter("errors_total", labels={"route": route, "status": str(status_code)})
