"""
Outbound Ops API — User and Session SQLAlchemy Models
=======================================================

What:  ORM models for the `users`, `auth_sessions` and `session_rate_limits` tables.
Why:   The request-governance layer reads users and sessions and persists
       per-session rate-limit counters.
Who:   Used by the repositories; the schema itself is owned by the main
       application's migrations.

Table notes:
    - users.ops_id: the operations identifier employees sign in with (natural key)
    - auth_sessions.session_id: opaque value stored in the session cookie
    - session_rate_limits: one counter row per session; `count` only grows
      within a window and is reset to 1 once `expires_at` has passed
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import ForeignKey, Index, Integer, String, text
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column, relationship

from outbound_api.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """An employee account. Roles: FTE, Backroom, Data Team, Admin, Processor."""

    __tablename__ = "users"

    ops_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(32), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    department: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        Index("idx_users_email", "email"),
        Index("idx_users_role_name", "role", "name"),
    )

    def __repr__(self) -> str:
        return f"<User(ops_id='{self.ops_id}', role='{self.role}')>"


class AuthSession(Base):
    """A signed-in browser session; expired rows are ignored, not deleted."""

    __tablename__ = "auth_sessions"

    session_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    ops_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.ops_id", ondelete="CASCADE"), nullable=False
    )
    expires_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    last_seen_at: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    user: Mapped[User] = relationship(User, lazy="raise")

    __table_args__ = (Index("idx_auth_sessions_expires_at", "expires_at"),)

    def __repr__(self) -> str:
        return f"<AuthSession(ops_id='{self.ops_id}', expires_at='{self.expires_at}')>"


class SessionRateLimit(Base):
    """Fixed-window request counter for one session, shared by all app instances."""

    __tablename__ = "session_rate_limits"

    session_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    expires_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    def __repr__(self) -> str:
        return f"<SessionRateLimit(count={self.count}, expires_at='{self.expires_at}')>"
