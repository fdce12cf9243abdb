"""
LifeMon Backend — Access Log Middleware
=========================================

One line per request on the `lifemon.access` logger:

    PUT /api/users/profile -> 400 in 12.3ms [a1b2c3d4] client=10.0.0.7 user=7

Level follows the status class (5xx ERROR, 4xx WARNING, else INFO). A request
that escapes as an exception is logged as 500. Bodies are never logged.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from lifemon.middleware.request_id import request_id_var

logger = logging.getLogger("lifemon.access")

# Uptime probes
SKIPPED_PATHS = frozenset({"/", "/health"})


def level_for_status(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in SKIPPED_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            elapsed_ms = (time.perf_counter() - started) * 1000
            client = request.client.host if request.client else "-"
            logger.log(
                level_for_status(status),
                "%s %s -> %d in %.1fms [%s] client=%s user=%s",
                request.method,
                request.url.path,
                status,
                elapsed_ms,
                request_id_var.get(""),
                client,
                getattr(request.state, "user_id", None) or "-",
            )
