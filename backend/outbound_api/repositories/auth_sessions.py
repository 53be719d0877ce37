"""
Outbound Ops API — Auth Session Repository
============================================

What:  Reads, refreshes, and deletes signed-in sessions.
Who:   Used by services/auth.py. Session creation belongs to the sign-in
       providers and lives outside this service.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from outbound_api.database import run_query
from outbound_api.models.user import AuthSession


async def get_auth_session_with_user(
    db: AsyncSession, session_id: str, now: datetime
) -> Optional[AuthSession]:
    """Returns the live (not yet expired) session with its user eagerly loaded."""
    statement = (
        select(AuthSession)
        .options(joinedload(AuthSession.user))
        .where(AuthSession.session_id == session_id, AuthSession.expires_at > now)
        .limit(1)
    )
    result = await run_query(db, statement)
    return result.scalar_one_or_none()


async def update_auth_session_last_seen(
    db: AsyncSession, session_id: str, seen_at: datetime
) -> None:
    await run_query(
        db,
        update(AuthSession)
        .where(AuthSession.session_id == session_id)
        .values(last_seen_at=seen_at),
    )


async def delete_auth_session(db: AsyncSession, session_id: str) -> None:
    await run_query(db, delete(AuthSession).where(AuthSession.session_id == session_id))
