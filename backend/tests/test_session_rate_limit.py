"""
Outbound Ops API — Session Rate Limiter Unit Tests
====================================================

What we test:
    ✅ New or expired counter opens a window (reset)
    ✅ Live counter is incremented and rejected past the limit
    ✅ Concurrent first writer: reset returns nothing → increment instead
    ✅ Counter is committed before the decision is returned
    ✅ Storage failure raises DatabaseError

How:
    The three repository functions are patched where the limiter imports
    them, so no database is needed.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest

from outbound_api.config import settings
from outbound_api.exceptions import DatabaseError
from outbound_api.middleware.rate_limit import enforce_session_rate_limit
from outbound_api.repositories.session_rate_limits import SessionCounter

MODULE = "outbound_api.middleware.rate_limit"
NOW = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


def patch_repository(current=None, reset=None, increment=None):
    return (
        patch(f"{MODULE}.get_session_rate_limit", AsyncMock(return_value=current)),
        patch(f"{MODULE}.reset_session_rate_limit", AsyncMock(return_value=reset)),
        patch(f"{MODULE}.increment_session_rate_limit", AsyncMock(return_value=increment)),
    )


class TestEnforceSessionRateLimit:

    @pytest.mark.asyncio
    async def test_first_request_opens_window(self, mock_db_session):
        window_end = NOW + timedelta(seconds=60)
        get_p, reset_p, inc_p = patch_repository(reset=SessionCounter(1, window_end))
        with get_p, reset_p as reset, inc_p as increment:
            result = await enforce_session_rate_limit(
                mock_db_session, "sess-1", window_ms=60_000, limit=5, now=NOW
            )

        reset.assert_awaited_once_with(mock_db_session, "sess-1", window_end, NOW)
        increment.assert_not_awaited()
        mock_db_session.commit.assert_awaited_once()
        assert result.allowed is True
        assert result.remaining == 4
        assert result.reset_at == window_end.timestamp()

    @pytest.mark.asyncio
    async def test_expired_counter_is_reset(self, mock_db_session):
        expired = SessionCounter(9, NOW - timedelta(seconds=1))
        fresh = SessionCounter(1, NOW + timedelta(seconds=60))
        get_p, reset_p, inc_p = patch_repository(current=expired, reset=fresh)
        with get_p, reset_p as reset, inc_p as increment:
            result = await enforce_session_rate_limit(
                mock_db_session, "sess-1", window_ms=60_000, limit=5, now=NOW
            )

        reset.assert_awaited_once()
        increment.assert_not_awaited()
        assert result.allowed is True

    @pytest.mark.asyncio
    async def test_live_counter_is_incremented(self, mock_db_session):
        window_end = NOW + timedelta(seconds=30)
        get_p, reset_p, inc_p = patch_repository(
            current=SessionCounter(1, window_end), increment=SessionCounter(2, window_end)
        )
        with get_p, reset_p as reset, inc_p as increment:
            result = await enforce_session_rate_limit(
                mock_db_session, "sess-1", window_ms=60_000, limit=2, now=NOW
            )

        increment.assert_awaited_once_with(mock_db_session, "sess-1")
        reset.assert_not_awaited()
        assert result.allowed is True
        assert result.remaining == 0

    @pytest.mark.asyncio
    async def test_over_limit_is_rejected(self, mock_db_session):
        window_end = NOW + timedelta(seconds=30)
        get_p, reset_p, inc_p = patch_repository(
            current=SessionCounter(2, window_end), increment=SessionCounter(3, window_end)
        )
        with get_p, reset_p, inc_p:
            result = await enforce_session_rate_limit(
                mock_db_session, "sess-1", window_ms=60_000, limit=2, now=NOW
            )

        assert result.allowed is False
        assert result.remaining == 0
        assert result.retry_after_seconds == 30

    @pytest.mark.asyncio
    async def test_concurrent_window_falls_back_to_increment(self, mock_db_session):
        window_end = NOW + timedelta(seconds=60)
        get_p, reset_p, inc_p = patch_repository(
            current=None, reset=None, increment=SessionCounter(2, window_end)
        )
        with get_p, reset_p as reset, inc_p as increment:
            result = await enforce_session_rate_limit(
                mock_db_session, "sess-1", window_ms=60_000, limit=5, now=NOW
            )

        reset.assert_awaited_once()
        increment.assert_awaited_once()
        assert result.allowed is True
        assert result.remaining == 3

    @pytest.mark.asyncio
    async def test_sub_second_window_rounds_up_to_one_second(self, mock_db_session):
        get_p, reset_p, inc_p = patch_repository(
            reset=SessionCounter(1, NOW + timedelta(seconds=1))
        )
        with get_p, reset_p as reset, inc_p:
            await enforce_session_rate_limit(
                mock_db_session, "sess-1", window_ms=250, limit=5, now=NOW
            )

        assert reset.await_args.args[2] == NOW + timedelta(seconds=1)

    @pytest.mark.asyncio
    async def test_non_positive_window_uses_default(self, mock_db_session):
        get_p, reset_p, inc_p = patch_repository(
            reset=SessionCounter(1, NOW + timedelta(seconds=60))
        )
        with get_p, reset_p as reset, inc_p:
            await enforce_session_rate_limit(
                mock_db_session, "sess-1", window_ms=0, limit=5, now=NOW
            )

        expected = NOW + timedelta(seconds=settings.rate_limit_window_ms // 1000)
        assert reset.await_args.args[2] == expected

    @pytest.mark.asyncio
    async def test_zero_limit_rejects(self, mock_db_session):
        get_p, reset_p, inc_p = patch_repository(
            reset=SessionCounter(1, NOW + timedelta(seconds=60))
        )
        with get_p, reset_p, inc_p:
            result = await enforce_session_rate_limit(
                mock_db_session, "sess-1", window_ms=60_000, limit=0, now=NOW
            )

        assert result.allowed is False

    @pytest.mark.asyncio
    async def test_unwritable_counter_raises(self, mock_db_session):
        get_p, reset_p, inc_p = patch_repository(current=None, reset=None, increment=None)
        with get_p, reset_p, inc_p:
            with pytest.raises(DatabaseError):
                await enforce_session_rate_limit(
                    mock_db_session, "sess-1", window_ms=60_000, limit=5, now=NOW
                )

        mock_db_session.commit.assert_not_awaited()
