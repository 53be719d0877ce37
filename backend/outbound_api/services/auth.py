"""
Outbound Ops API — Session Resolution
=======================================

What:  Resolves the signed-in user from the session cookie.
Why:   Authenticated routes answer 401 when there is no live session.
How:   Cookie → auth_sessions row (not expired) joined with its user.
       last_seen_at is refreshed at most every SESSION_REFRESH_MINUTES,
       and only for API requests, so page polling does not write on every call.
Who:   Called at the top of authenticated route handlers.

Sign-in itself (Google, Seatalk) happens elsewhere; this module only reads
and clears sessions.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import Request
from starlette.responses import Response

from outbound_api.config import settings
from outbound_api.middleware.request_context import get_request_context
from outbound_api.repositories.auth_sessions import (
    get_auth_session_with_user,
    update_auth_session_last_seen,
)

ADMIN_ROLE = "Admin"


@dataclass(frozen=True)
class SessionUser:
    ops_id: str
    name: str
    role: str
    email: Optional[str] = None
    department: Optional[str] = None


@dataclass(frozen=True)
class Session:
    session_id: str
    user: SessionUser

    @property
    def is_admin(self) -> bool:
        return self.user.role == ADMIN_ROLE


def get_session_id(request: Request) -> Optional[str]:
    return request.cookies.get(settings.session_cookie_name) or None


def _needs_refresh(last_seen_at: Optional[datetime], now: datetime) -> bool:
    if last_seen_at is None:
        return True
    if last_seen_at.tzinfo is None:
        last_seen_at = last_seen_at.replace(tzinfo=timezone.utc)
    return now - last_seen_at > timedelta(minutes=settings.session_refresh_minutes)


async def get_session(request: Request, db: AsyncSession) -> Optional[Session]:
    """
    Returns the current session, or None when the cookie is absent, unknown,
    or expired. No database call is made without a cookie.
    """
    session_id = get_session_id(request)
    if not session_id:
        return None

    now = datetime.now(timezone.utc)
    auth_session = await get_auth_session_with_user(db, session_id, now)
    if auth_session is None:
        return None

    context = get_request_context()
    is_api_request = bool(context and context.route.startswith("/api/"))
    if is_api_request and _needs_refresh(auth_session.last_seen_at, now):
        await update_auth_session_last_seen(db, auth_session.session_id, now)

    user = auth_session.user
    return Session(
        session_id=auth_session.session_id,
        user=SessionUser(
            ops_id=user.ops_id,
            name=user.name,
            role=user.role,
            email=user.email or None,
            department=user.department or None,
        ),
    )


def clear_session_cookie(response: Response) -> None:
    """Expires the session cookie on the client."""
    response.delete_cookie(
        settings.session_cookie_name,
        path="/",
        domain=settings.cookie_domain,
        secure=settings.cookie_secure,
        httponly=True,
        samesite="lax",
    )
