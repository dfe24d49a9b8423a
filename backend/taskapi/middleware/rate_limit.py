"""
Task API — Rate Limiting Middleware
====================================

What:  Per-IP sliding window rate limiter on the credential endpoints.
Why:   Slows password guessing against /auth/login and bulk account creation
       against /auth/register. Task routes are already gated by a token.
How:   Tracks request timestamps per IP in memory using a sliding window.

Algorithm: Sliding Window Counter
    1. Each IP gets a list of request timestamps
    2. On each request, drop timestamps older than the window
    3. If remaining count >= limit, reject with 429
    4. Otherwise, record the current timestamp and allow through

Scope:
    In-memory state is per process. Multiple workers each keep their own
    window, so the effective limit scales with the worker count.
"""

import logging
import time
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from taskapi.config import settings
from taskapi.exceptions import RateLimitExceededError
from taskapi.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

DEFAULT_LIMITED_PATHS = frozenset({"/auth/login", "/auth/register"})


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding window rate limiter.

    Args:
        max_requests:  Requests allowed per window (default: settings)
        window:        Window length in seconds (default: settings)
        paths:         Exact paths to limit (default: login and register)

    Response on rate limit:
        HTTP 429 with a Retry-After header and the standard error body.
        Built here directly because exceptions raised inside
        BaseHTTPMiddleware bypass the app's exception handlers.
    """

    def __init__(
        self,
        app,
        max_requests: Optional[int] = None,
        window: Optional[int] = None,
        paths: Optional[Iterable[str]] = None,
    ):
        super().__init__(app)
        self.max_requests = max_requests or settings.rate_limit_requests
        self.window = window or settings.rate_limit_window
        self.paths = frozenset(paths) if paths is not None else DEFAULT_LIMITED_PATHS
        self._requests: Dict[str, List[float]] = defaultdict(list)
        self._last_cleanup = time.time()

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path not in self.paths:
            return await call_next(request)

        # Behind a proxy this is the proxy's IP unless uvicorn runs
        # with --proxy-headers
        client_ip = (
            getattr(request.client, "host", "unknown")
            if request.client
            else "unknown"
        )

        now = time.time()
        window_start = now - self.window

        self._requests[client_ip] = [
            ts for ts in self._requests[client_ip] if ts > window_start
        ]

        if len(self._requests[client_ip]) >= self.max_requests:
            oldest = self._requests[client_ip][0]
            exc = RateLimitExceededError(
                retry_after=int(oldest + self.window - now) + 1
            )
            logger.warning(
                "Rate limit exceeded for IP %s on %s: %d requests in %ds window",
                client_ip,
                request.url.path,
                len(self._requests[client_ip]),
                self.window,
            )
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": exc.message,
                    "details": {"retry_after": exc.retry_after},
                    "request_id": request_id_var.get(""),
                },
                headers={"Retry-After": str(exc.retry_after)},
            )

        self._requests[client_ip].append(now)

        # Once per window, forget IPs that went quiet
        if now - self._last_cleanup >= self.window:
            self._last_cleanup = now
            self._cleanup_inactive_ips(window_start)

        return await call_next(request)

    def _cleanup_inactive_ips(self, window_start: float) -> None:
        inactive_ips = [
            ip for ip, timestamps in self._requests.items()
            if not timestamps or max(timestamps) < window_start
        ]
        for ip in inactive_ips:
            del self._requests[ip]

        if inactive_ips:
            logger.debug("Cleaned up %d inactive IP entries", len(inactive_ips))
