"""
Task API — Rate Limit Middleware Tests
=======================================

What:  Tests for RateLimitMiddleware on a minimal app.
How:   A bare FastAPI app with a limit of two requests per window, driven
       through HTTPX's ASGI transport.

What we test:
    ✅ Requests under the limit pass
    ✅ The next one gets 429 with Retry-After and the standard error body
    ✅ Paths outside the limited set are never counted
    ✅ IPs with no recent requests are dropped once per window
"""

import time

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from taskapi.middleware.rate_limit import RateLimitMiddleware


def _bare_app() -> FastAPI:
    app = FastAPI()

    @app.post("/auth/login")
    async def login():
        return {"ok": True}

    @app.get("/api/tasks")
    async def tasks():
        return []

    return app


def _limited_app() -> FastAPI:
    app = _bare_app()
    app.add_middleware(RateLimitMiddleware, max_requests=2, window=60)
    return app


@pytest.mark.asyncio
async def test_third_login_attempt_is_limited():
    transport = ASGITransport(app=_limited_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        assert (await client.post("/auth/login")).status_code == 200
        assert (await client.post("/auth/login")).status_code == 200

        response = await client.post("/auth/login")

    assert response.status_code == 429
    assert int(response.headers["Retry-After"]) >= 1
    body = response.json()
    assert body["error"] == "rate_limit_exceeded"
    assert body["details"]["retry_after"] >= 1


@pytest.mark.asyncio
async def test_unlisted_paths_not_limited():
    transport = ASGITransport(app=_limited_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        for _ in range(5):
            assert (await client.get("/api/tasks")).status_code == 200
        assert (await client.post("/auth/login")).status_code == 200


@pytest.mark.asyncio
async def test_quiet_ips_are_forgotten():
    limiter = RateLimitMiddleware(_bare_app(), max_requests=5, window=60)
    now = time.time()
    limiter._requests["203.0.113.9"] = [now - 600]
    limiter._last_cleanup = now - 120

    transport = ASGITransport(app=limiter)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        assert (await client.post("/auth/login")).status_code == 200

    assert "203.0.113.9" not in limiter._requests
    assert len(limiter._requests) == 1
