"""
Task API — Request Logging Middleware
======================================

What:  One access-log line per HTTP request.
Why:   Monitoring and debugging: method, path, status, duration, request ID,
       client IP and, on protected routes, the authenticated user id.
How:   Times the downstream call and logs at a level chosen by status class.

What we log vs what we DON'T log:
    Log:        method, path, status, duration, IP, request ID, user id
    Never log:  request bodies (passwords), Authorization headers (tokens)
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from taskapi.middleware.request_id import request_id_var

logger = logging.getLogger("taskapi.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs structured information about each HTTP request and response.

    Level by status: 5xx → ERROR, 4xx → WARNING, otherwise INFO.
    /health is skipped; probes hit it every few seconds.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start_time = time.perf_counter()

        client_ip = getattr(request.client, "host", "unknown") if request.client else "unknown"
        method = request.method
        path = request.url.path
        rid = request_id_var.get("")

        if path == "/health":
            return await call_next(request)

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000

        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        # Set by the authentication dependency on protected routes
        identity = getattr(request.state, "identity", None)
        user_id = identity.id if identity is not None else None

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s user=%s",
            method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            user_id if user_id is not None else "-",
            extra={
                "request_id": rid,
                "method": method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
                "user_id": user_id,
            },
        )

        return response
