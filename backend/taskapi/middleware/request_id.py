"""
Task API — Request ID Middleware
=================================

What:  Assigns a short ID to each incoming request and echoes it back.
Why:   Ties together every log line of one request and lets a client quote
       the ID from an error body when reporting a problem.
How:   Reuses a sane client-supplied X-Request-ID, otherwise generates one;
       stores it in a ContextVar for loggers and exception handlers.
"""

import re
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Client IDs end up in logs; keep them short and free of control characters
_CLIENT_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Behavior:
        1. Use the client's X-Request-ID if it matches _CLIENT_ID_PATTERN
        2. Otherwise generate an 8-character ID
        3. Store it in request_id_var and request.state.request_id
        4. Add it to the response headers
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID", "")
        if not _CLIENT_ID_PATTERN.match(rid):
            rid = str(uuid.uuid4())[:8]

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
