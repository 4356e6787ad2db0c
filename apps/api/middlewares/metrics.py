"""Metrics middleware for API."""

import time
from collections.abc import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from core.metrics import api_request_duration


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to collect API request metrics."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and collect metrics, labelled by route template."""
        start_time = time.perf_counter()

        response = await call_next(request)

        duration = time.perf_counter() - start_time

        # /users/{user_id}/ban rather than one label per user id
        route = request.scope.get("route")
        endpoint = getattr(route, "path", request.url.path)

        api_request_duration.labels(method=request.method, endpoint=endpoint, status=response.status_code).observe(
            duration
        )

        return response
