"""
Outbound Ops API — Test Configuration (conftest.py)
=====================================================

What:  Shared pytest fixtures for the entire test suite.
Why:   Provides reusable test infrastructure (mocked DB, API client, requests).
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy:
    Autouse (every test):
    └── reset_process_state: clears the IP limiter and server cache

    Function-scoped:
    ├── mock_db_session: Mock AsyncSession (no real DB needed)
    ├── make_request:    Factory for starlette Requests with headers and body
    ├── make_session:    Factory for authenticated Session objects
    └── test_client:     HTTPX AsyncClient wired to the app, DB dependency overridden
"""

import json
import os
from typing import Any, Dict, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Override settings BEFORE any application import: settings are read once
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["SENTRY_DSN"] = ""
os.environ.pop("METRICS_TOKEN", None)
for name in (
    "RATE_LIMIT_WINDOW_MS",
    "RATE_LIMIT_MAX_REQUESTS",
    "AUTH_RATE_LIMIT_WINDOW_MS",
    "AUTH_RATE_LIMIT_MAX_REQUESTS",
):
    os.environ.pop(name, None)

from starlette.requests import Request  # noqa: E402

from outbound_api.database import get_db_session  # noqa: E402
from outbound_api.middleware.rate_limit import ip_rate_limiter  # noqa: E402
from outbound_api.services.auth import Session, SessionUser  # noqa: E402
from outbound_api.services.server_cache import clear_cache  # noqa: E402


@pytest.fixture(autouse=True)
def reset_process_state():
    """The IP limiter and server cache are process-wide; isolate each test."""
    ip_rate_limiter.reset()
    clear_cache()
    yield
    ip_rate_limiter.reset()
    clear_cache()


@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        result = MagicMock()
        result.scalar_one_or_none.return_value = user
        mock_db_session.execute.return_value = result
    """
    session = AsyncMock()
    # Result objects are synchronous: first(), scalar_one_or_none(), scalars()
    session.execute = AsyncMock(return_value=MagicMock())
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def make_request():
    """
    Factory for starlette Requests.

    Usage:
        request = make_request(headers={"x-forwarded-for": "10.0.0.1"}, json_body={"a": 1})
    """

    def _make(
        headers: Optional[Dict[str, str]] = None,
        body: bytes = b"",
        json_body: Any = None,
        method: str = "POST",
        path: str = "/api/test",
    ) -> Request:
        if json_body is not None:
            body = json.dumps(json_body).encode()
        raw_headers = [
            (key.lower().encode("latin-1"), value.encode("latin-1"))
            for key, value in (headers or {}).items()
        ]
        scope = {
            "type": "http",
            "method": method,
            "path": path,
            "raw_path": path.encode(),
            "query_string": b"",
            "headers": raw_headers,
        }

        async def receive():
            return {"type": "http.request", "body": body, "more_body": False}

        return Request(scope, receive)

    return _make


@pytest.fixture
def make_session():
    """Factory for authenticated sessions; role defaults to FTE."""

    def _make(role: str = "FTE", ops_id: str = "OPS001", session_id: str = "sess-1") -> Session:
        return Session(
            session_id=session_id,
            user=SessionUser(
                ops_id=ops_id,
                name="Test User",
                role=role,
                email="test.user@example.com",
                department="Outbound",
            ),
        )

    return _make


@pytest_asyncio.fixture
async def test_client(mock_db_session):
    """
    Provides an async HTTP test client for endpoint testing.

    How:  ASGITransport routes requests directly to the app; the database
          dependency yields mock_db_session instead of a real session.
    """
    from outbound_api.main import app

    async def override_db_session():
        yield mock_db_session

    app.dependency_overrides[get_db_session] = override_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
