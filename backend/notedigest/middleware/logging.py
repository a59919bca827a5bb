"""
NoteDigest Backend: Request Logging Middleware
==============================================

What:  One access-log line per request: method, path, status, duration, client.
How:   Measures wall time around the downstream app and logs on the
       `notedigest.access` logger at a level chosen by the status class.

Not logged: request bodies (note content is private), Authorization
headers, query strings.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("notedigest.access")

QUIET_PATHS = {"/api/health"}


def level_for_status(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Access logging; health checks are skipped to keep the log readable."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        status = response.status_code
        logger.log(
            level_for_status(status),
            "%s %s %d %.1fms from %s",
            request.method,
            path,
            status,
            duration_ms,
            client_ip,
            extra={
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
