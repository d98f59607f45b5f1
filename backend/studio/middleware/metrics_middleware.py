"""
ASGI middleware for tracking HTTP request metrics.
Records request count, duration, and errors.
"""
import re
import time
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from studio.utils.metrics import http_requests_total, http_request_duration_seconds, errors_total

NUMERIC_SEGMENT = re.compile(r'/\d+(?=/|$)')
# Template pages are addressed by slug; collapse them so each title is not its own series
TEMPLATE_SLUG = re.compile(r'^/api/templates/(?!featured$)[a-z0-9-]*[a-z-][a-z0-9-]*$')
USERNAME = re.compile(r'^/api/users/[^/]+$')


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to track HTTP metrics for Prometheus."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()

        # Skip metrics endpoint to avoid recursion
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        normalized_path = self._normalize_path(request.url.path)

        try:
            response = await call_next(request)
        except Exception:
            errors_total.labels(error_type="exception").inc()
            raise

        status_code = response.status_code
        http_requests_total.labels(
            method=method,
            path=normalized_path,
            status=status_code
        ).inc()
        http_request_duration_seconds.labels(
            method=method,
            path=normalized_path
        ).observe(time.time() - start_time)

        # Track errors (4xx and 5xx)
        if status_code >= 400:
            errors_total.labels(error_type=f"{status_code // 100}xx").inc()

        return response

    def _normalize_path(self, path: str) -> str:
        """
        Normalize path to reduce cardinality.
        Replaces numeric ids, template slugs and usernames with placeholders.
        """
        path = NUMERIC_SEGMENT.sub('/{id}', path)
        if TEMPLATE_SLUG.match(path):
            return '/api/templates/{slug}'
        if USERNAME.match(path):
            return '/api/users/{username}'
        return path
