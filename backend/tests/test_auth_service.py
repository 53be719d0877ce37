"""
Outbound Ops API — Session Resolution Unit Tests
==================================================

What we test:
    ✅ No cookie → None without touching the database
    ✅ Unknown or expired session → None
    ✅ last_seen_at refreshed only for stale API sessions
"""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from outbound_api.config import settings
from outbound_api.middleware.request_context import RequestContext, request_context_var
from outbound_api.services.auth import get_session

MODULE = "outbound_api.services.auth"
COOKIE = {"Cookie": f"{settings.session_cookie_name}=sess-1"}


def auth_session(last_seen_minutes_ago: float, role: str = "FTE"):
    user = SimpleNamespace(
        ops_id="OPS001", name="Ana Reyes", role=role, email="", department="Outbound"
    )
    return SimpleNamespace(
        session_id="sess-1",
        user=user,
        last_seen_at=datetime.now(timezone.utc) - timedelta(minutes=last_seen_minutes_ago),
    )


@pytest.fixture
def api_route_context():
    token = request_context_var.set(RequestContext(route="/api/test", request_id="rid", method="GET"))
    yield
    request_context_var.reset(token)


class TestGetSession:

    @pytest.mark.asyncio
    async def test_no_cookie(self, make_request, mock_db_session):
        assert await get_session(make_request(), mock_db_session) is None
        mock_db_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_session(self, make_request, mock_db_session):
        with patch(f"{MODULE}.get_auth_session_with_user", AsyncMock(return_value=None)):
            assert await get_session(make_request(headers=COOKIE), mock_db_session) is None

    @pytest.mark.asyncio
    async def test_stale_api_session_is_refreshed(
        self, make_request, mock_db_session, api_route_context
    ):
        refresh = AsyncMock()
        with patch(f"{MODULE}.get_auth_session_with_user", AsyncMock(return_value=auth_session(30, "Admin"))), \
                patch(f"{MODULE}.update_auth_session_last_seen", refresh):
            session = await get_session(make_request(headers=COOKIE), mock_db_session)

        assert session.session_id == "sess-1"
        assert session.user.ops_id == "OPS001"
        assert session.user.email is None
        assert session.is_admin is True
        refresh.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_recent_session_not_refreshed(
        self, make_request, mock_db_session, api_route_context
    ):
        refresh = AsyncMock()
        with patch(f"{MODULE}.get_auth_session_with_user", AsyncMock(return_value=auth_session(1))), \
                patch(f"{MODULE}.update_auth_session_last_seen", refresh):
            session = await get_session(make_request(headers=COOKIE), mock_db_session)

        assert session.is_admin is False
        refresh.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_non_api_request_not_refreshed(self, make_request, mock_db_session):
        refresh = AsyncMock()
        with patch(f"{MODULE}.get_auth_session_with_user", AsyncMock(return_value=auth_session(30))), \
                patch(f"{MODULE}.update_auth_session_last_seen", refresh):
            session = await get_session(make_request(headers=COOKIE), mock_db_session)

        assert session is not None
        refresh.assert_not_awaited()
