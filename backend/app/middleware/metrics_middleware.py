"""
ASGI middleware for tracking HTTP request metrics.
Records request count, duration, and errors.
"""
import re
import time
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from app.utils.metrics import http_requests_total, http_request_duration_seconds, errors_total

_UUID_RE = re.compile(
    r'[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}',
    re.IGNORECASE
)
_NUMERIC_RE = re.compile(r'/\d+(?=/|$)')
_ADMIN_USER_RE = re.compile(r'^(/api/admin/credits/)[^/]+$')


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to track HTTP metrics for Prometheus."""

    async def dispatch(self, request: Request, call_next):
        if request.url.path == "/metrics":
            return await call_next(request)

        start_time = time.time()
        method = request.method
        path = self._normalize_path(request.url.path)

        try:
            response = await call_next(request)
        except Exception:
            errors_total.labels(error_type="exception").inc()
            raise

        status_code = response.status_code
        http_requests_total.labels(method=method, path=path, status=status_code).inc()
        http_request_duration_seconds.labels(method=method, path=path).observe(
            time.time() - start_time
        )

        # 402 and 429 are the ledger's normal refusals, still counted as 4xx
        if status_code >= 400:
            errors_total.labels(error_type=f"{status_code // 100}xx").inc()

        return response

    def _normalize_path(self, path: str) -> str:
        """
        Normalize path to reduce cardinality.
        Replaces UUIDs, numeric IDs and admin user ids with placeholders.
        """
        if path in ("/api/admin/credits/grant", "/api/admin/credits/reset"):
            return path
        path = _ADMIN_USER_RE.sub(r'\1{user_id}', path)
        path = _UUID_RE.sub('{id}', path)
        return _NUMERIC_RE.sub('/{id}', path)
