"""
Request logging and metrics middleware.

Each request gets a request id bound to the structlog context, a start and a
completion log line, and an observation in the API request metrics. Request
bodies carry clinical text and images and are never read here.
"""

import time
import uuid
from typing import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.routing import Match

from caseintake.utils.metrics import API_REQUEST_TIME, API_REQUESTS

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def route_template(request: Request) -> str:
    """Path template of the matched route, e.g. ``/api/v1/documents/process``.

    Unmatched paths are reported as ``unmatched`` to keep metric labels bounded.
    """
    for route in request.app.routes:
        match, _ = route.matches(request.scope)
        if match == Match.FULL:
            return getattr(route, "path", request.url.path)
    return "unmatched"


class LoggingMiddleware(BaseHTTPMiddleware):
    """Logs and measures every HTTP request."""

    async def dispatch(
            self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        endpoint = route_template(request)

        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            endpoint=endpoint,
        )
        logger.info("Request started", content_length=request.headers.get("content-length"))

        start_time = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        except Exception:
            logger.exception("Request failed")
            raise
        finally:
            duration = time.perf_counter() - start_time
            API_REQUEST_TIME.labels(method=request.method, endpoint=endpoint).observe(duration)
            API_REQUESTS.labels(method=request.method, endpoint=endpoint, status=status_code).inc()
            logger.info(
                "Request completed",
                status_code=status_code,
                duration_ms=round(duration * 1000, 1),
            )
            structlog.contextvars.clear_contextvars()
