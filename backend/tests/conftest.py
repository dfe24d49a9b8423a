"""
Task API — Test Configuration (conftest.py)
============================================

What:  Shared pytest fixtures for the entire test suite.
How:   Environment is pointed at a throwaway SQLite file BEFORE any taskapi
       import, so the module-level settings and engine pick it up.

Fixtures (all function-scoped):
    ├── database: creates all tables, drops them and disposes the engine after
    ├── db_session: real AsyncSession on the test database
    ├── mock_db_session: AsyncMock session for failure-path unit tests
    ├── identity_factory: builds Identity values without a database
    ├── test_client: HTTPX AsyncClient bound to a fresh app instance
    └── register_and_login: helper returning auth headers for a new user
"""

import os
import tempfile

_TEST_DIR = tempfile.mkdtemp(prefix="taskapi_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/test.db"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-not-for-production-0123456789"
os.environ["ACCESS_TOKEN_TTL_SECONDS"] = "3600"
os.environ["RATE_LIMIT_REQUESTS"] = "10000"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["DB_AUTO_CREATE"] = "false"

from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from taskapi.database import Base, async_session_factory, create_all_tables, engine  # noqa: E402
from taskapi.schemas.auth import Identity  # noqa: E402
from taskapi.services.token_service import TokenService  # noqa: E402


@pytest_asyncio.fixture
async def database():
    """Fresh schema for each test; connections are released on teardown."""
    await create_all_tables()
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    # Pooled aiosqlite connections are bound to this test's event loop
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(database):
    """
    A real session on the test database.

    Mutating services commit their own writes, so state is visible to a
    second session as soon as a call returns.
    """
    async with async_session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def mock_db_session():
    """
    A mock AsyncSession for exercising store-failure paths.

    Usage:
        mock_db_session.execute.side_effect = OperationalError("SELECT", {}, Exception())
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.get = AsyncMock()
    session.flush = AsyncMock()
    session.delete = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def identity_factory():
    """Build an Identity without touching the database."""
    def _make(user_id: int = 1, username: str = "alice", email: str = "alice@example.com"):
        return Identity(id=user_id, username=username, email=email)
    return _make


@pytest.fixture
def token_service():
    """An isolated TokenService with a known secret and a one-minute TTL."""
    return TokenService(secret_key="unit-test-secret", ttl_seconds=60)


@pytest.fixture
def app(database):
    """
    A fresh app instance per test: a new rate limiter window and no
    leftover dependency overrides.
    """
    from taskapi.main import create_app

    return create_app()


@pytest_asyncio.fixture
async def test_client(app):
    """HTTPX AsyncClient talking to the app over ASGI (no server, no lifespan)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def register_and_login(test_client):
    """
    Register a user, log in, and return (user_json, auth_headers).

    Usage:
        user, headers = await register_and_login("alice")
    """
    async def _go(username: str, password: str = "s3cret-pass", email: str | None = None):
        email = email or f"{username}@example.com"
        reg = await test_client.post(
            "/auth/register",
            json={"username": username, "email": email, "password": password},
        )
        assert reg.status_code == 201, reg.text
        login = await test_client.post(
            "/auth/login", json={"username": username, "password": password}
        )
        assert login.status_code == 200, login.text
        token = login.json()["token"]
        return reg.json(), {"Authorization": f"Bearer {token}"}
    return _go
