# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
HTTP Middleware — request ID propagation and Prometheus metrics.
"""

import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from pbl_teams.metrics import HTTP_ERRORS, REQUEST_COUNT, REQUEST_LATENCY

# Path segments kept verbatim in metric labels; anything else is an id.
KNOWN_SEGMENTS: set[str] = {
    "api", "v1", "academics", "years", "subjects", "student", "teacher",
    "admin", "auth", "teams", "my", "messages", "grade", "broadcast",
    "sync-mentors", "sync-sheet", "teachers", "migrate-statuses", "users",
    "health", "ready", "metrics",
}

SKIP_PATHS: tuple[str, ...] = (
    "/health", "/health/ready", "/metrics", "/openapi.json", "/docs", "/redoc",
)


def normalize_path(path: str) -> str:
    parts = path.strip("/").split("/")
    if parts == [""]:
        return path
    return "/" + "/".join(p if p in KNOWN_SEGMENTS else "{param}" for p in parts)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Propagate or generate X-Request-ID."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class MetricsMiddleware(BaseHTTPMiddleware):
    """Track request count, latency and error rate."""

    async def dispatch(self, request: Request, call_next):
        start = time.time()
        response = await call_next(request)
        duration = time.time() - start

        path = request.url.path
        if path in SKIP_PATHS:
            return response

        endpoint = normalize_path(path)
        status = str(response.status_code)
        REQUEST_COUNT.labels(method=request.method, endpoint=endpoint, status=status).inc()
        REQUEST_LATENCY.labels(method=request.method, endpoint=endpoint).observe(duration)
        if response.status_code >= 400:
            HTTP_ERRORS.labels(method=request.method, endpoint=endpoint, status=status).inc()
        return response
