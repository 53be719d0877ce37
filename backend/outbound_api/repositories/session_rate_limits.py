"""
Outbound Ops API — Session Rate-Limit Repository
==================================================

What:  Persisted fixed-window counters, one row per session.
Why:   Session limits must hold across restarts and across every app
       instance, so the counter lives in PostgreSQL, not in process memory.

Atomicity:
    Each mutation is ONE statement, so concurrent requests from the same
    session (even on different instances) cannot lose an update:

    reset:      INSERT ... ON CONFLICT (session_id) DO UPDATE
                SET count = 1, expires_at = :new
                WHERE session_rate_limits.expires_at <= :now
                RETURNING count, expires_at
                → returns nothing when another writer already opened a live
                  window (first writer wins; the caller then increments)

    increment:  UPDATE session_rate_limits SET count = count + 1
                WHERE session_id = :id RETURNING count, expires_at
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from outbound_api.database import run_query
from outbound_api.models.user import SessionRateLimit


@dataclass(frozen=True)
class SessionCounter:
    count: int
    expires_at: datetime


async def get_session_rate_limit(db: AsyncSession, session_id: str) -> Optional[SessionCounter]:
    result = await run_query(
        db,
        select(SessionRateLimit.count, SessionRateLimit.expires_at).where(
            SessionRateLimit.session_id == session_id
        ),
    )
    row = result.first()
    return SessionCounter(count=row.count, expires_at=row.expires_at) if row else None


async def reset_session_rate_limit(
    db: AsyncSession, session_id: str, expires_at: datetime, now: datetime
) -> Optional[SessionCounter]:
    """
    Open a new window with count=1 unless a live window already exists.

    Returns:
        The new counter, or None when a concurrent writer's window is still live.
    """
    table = SessionRateLimit.__table__
    statement = (
        pg_insert(SessionRateLimit)
        .values(session_id=session_id, count=1, expires_at=expires_at, updated_at=now)
        .on_conflict_do_update(
            index_elements=[table.c.session_id],
            set_={"count": 1, "expires_at": expires_at, "updated_at": now},
            where=table.c.expires_at <= now,
        )
        .returning(table.c.count, table.c.expires_at)
    )
    result = await run_query(db, statement)
    row = result.first()
    return SessionCounter(count=row.count, expires_at=row.expires_at) if row else None


async def increment_session_rate_limit(
    db: AsyncSession, session_id: str
) -> Optional[SessionCounter]:
    """Atomically adds one to the counter; None when the session has no row."""
    statement = (
        update(SessionRateLimit)
        .where(SessionRateLimit.session_id == session_id)
        .values(count=SessionRateLimit.count + 1)
        .returning(SessionRateLimit.count, SessionRateLimit.expires_at)
        .execution_options(synchronize_session=False)
    )
    result = await run_query(db, statement)
    row = result.first()
    return SessionCounter(count=row.count, expires_at=row.expires_at) if row else None
