"""
Outbound Ops API — Rate Limiting
==================================

What:  Fixed-window request limits keyed by client IP or by session.
Why:   Protects unauthenticated auth endpoints from brute force (per IP) and
       authenticated mutations from runaway clients (per session).
How:   Both variants share one algorithm; only the counter storage differs.
Who:   Called by route handlers before doing any work. The limiter never
       raises for a rejection; the handler answers 429 itself.

Algorithm: Fixed Window Counter
    1. No record for the key, or the record's window has expired:
       start a new window → count = 1, expires_at = now + window
    2. Otherwise: count += 1
    3. allowed = count <= limit
       remaining = max(0, limit - count)

    A limit of 0 (or less) rejects every request. A window of 0 (or less)
    falls back to RATE_LIMIT_WINDOW_MS rather than disabling the limit.

Storage:
    IP limiter:      in-process dict keyed by (scope, ip) tuples. Per worker,
                     lost on restart. Tuple keys keep unrelated scopes that
                     share an identifier value from colliding.
    Session limiter: session_rate_limits table via single-statement atomic
                     upserts, shared by every instance (see the repository).

Known gap:
    Requests without X-Forwarded-For or X-Real-IP share the "unknown" bucket.
"""

import logging
import math
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Callable, Dict, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import Headers
from starlette.requests import Request
from starlette.responses import JSONResponse

from outbound_api.config import settings
from outbound_api.exceptions import DatabaseError
from outbound_api.repositories.session_rate_limits import (
    get_session_rate_limit,
    increment_session_rate_limit,
    reset_session_rate_limit,
)

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT_IP = "unknown"

RateLimitKey = Tuple[str, str]


@dataclass
class RateLimitRecord:
    count: int
    expires_at: float  # epoch seconds


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float  # epoch seconds when the current window ends
    retry_after_seconds: int = 0


def _effective_window_ms(window_ms: Optional[float]) -> float:
    if window_ms is None or not math.isfinite(window_ms) or window_ms <= 0:
        return settings.rate_limit_window_ms
    return window_ms


def _decide(count: int, limit: int, reset_at: float, now: float) -> RateLimitResult:
    limit = max(0, limit)
    allowed = count <= limit
    retry_after = 0 if allowed else max(1, math.ceil(reset_at - now))
    return RateLimitResult(
        allowed=allowed,
        limit=limit,
        remaining=max(0, limit - count),
        reset_at=reset_at,
        retry_after_seconds=retry_after,
    )


def get_client_ip(headers: Headers) -> str:
    """First X-Forwarded-For entry, else X-Real-IP, else the "unknown" sentinel."""
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip() or UNKNOWN_CLIENT_IP
    return (headers.get("x-real-ip") or "").strip() or UNKNOWN_CLIENT_IP


class InMemoryRateLimiter:
    """
    Per-process fixed-window limiter.

    Thread Safety:
        Updates hold a lock, so the counter stays exact even if a handler
        runs in a worker thread. Across processes nothing is shared.
    """

    # Expired records are swept every N hits to bound memory
    CLEANUP_EVERY = 1000

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self._clock = clock or time.time
        self._records: Dict[RateLimitKey, RateLimitRecord] = {}
        self._lock = Lock()
        self._hits = 0

    def hit(
        self,
        scope: str,
        identifier: str,
        limit: int,
        window_ms: Optional[float] = None,
    ) -> RateLimitResult:
        """Counts one request for (scope, identifier) and decides admit/reject."""
        window_seconds = _effective_window_ms(window_ms) / 1000
        key = (scope, identifier)
        with self._lock:
            now = self._clock()
            record = self._records.get(key)
            if record is None or record.expires_at <= now:
                record = RateLimitRecord(count=1, expires_at=now + window_seconds)
                self._records[key] = record
            else:
                record.count += 1
            count = record.count
            result = _decide(count, limit, record.expires_at, now)

            self._hits += 1
            if self._hits % self.CLEANUP_EVERY == 0:
                self._cleanup_expired(now)

        if not result.allowed:
            logger.warning(
                "Rate limit exceeded for %s in scope %s: %d requests (limit %d)",
                identifier,
                scope,
                count,
                result.limit,
            )
        return result

    def _cleanup_expired(self, now: float) -> None:
        expired = [key for key, record in self._records.items() if record.expires_at <= now]
        for key in expired:
            del self._records[key]
        if expired:
            logger.debug("Cleaned up %d expired rate limit records", len(expired))

    def reset(self) -> None:
        with self._lock:
            self._records.clear()
            self._hits = 0

    def __len__(self) -> int:
        return len(self._records)


# Singleton: process lifetime, never shared across workers
ip_rate_limiter = InMemoryRateLimiter()


def enforce_ip_rate_limit(
    request: Request,
    route_key: str,
    window_ms: Optional[float] = None,
    limit: Optional[int] = None,
) -> RateLimitResult:
    """
    Apply the per-IP limit for one route.

    Args:
        request:   Incoming request; the client IP comes from proxy headers.
        route_key: Scope name, e.g. "auth-change-password".
        window_ms: Window length; defaults to AUTH_RATE_LIMIT_WINDOW_MS.
        limit:     Max requests per window; defaults to AUTH_RATE_LIMIT_MAX_REQUESTS.
    """
    return ip_rate_limiter.hit(
        route_key,
        get_client_ip(request.headers),
        limit=settings.auth_rate_limit_max_requests if limit is None else limit,
        window_ms=settings.auth_rate_limit_window_ms if window_ms is None else window_ms,
    )


async def enforce_session_rate_limit(
    db: AsyncSession,
    session_id: str,
    window_ms: Optional[float] = None,
    limit: Optional[int] = None,
    now: Optional[datetime] = None,
) -> RateLimitResult:
    """
    Apply the persisted per-session limit.

    The window is rounded down to whole seconds (minimum 1) because the
    counter's expiry is stored as a timestamp. The counter is committed
    immediately so other instances see it and the row lock is released
    before the handler continues.

    Raises:
        DatabaseError: the counter could not be read or written.
    """
    limit = settings.rate_limit_max_requests if limit is None else limit
    window_seconds = max(1, math.floor(_effective_window_ms(window_ms) / 1000))
    now = now or datetime.now(timezone.utc)
    expires_at = now + timedelta(seconds=window_seconds)

    current = await get_session_rate_limit(db, session_id)
    if current is None or current.expires_at <= now:
        counter = await reset_session_rate_limit(db, session_id, expires_at, now)
        if counter is None:
            # A concurrent request opened the window first
            counter = await increment_session_rate_limit(db, session_id)
    else:
        counter = await increment_session_rate_limit(db, session_id)
        if counter is None:
            # Row removed between read and update
            counter = await reset_session_rate_limit(db, session_id, expires_at, now)

    if counter is None:
        raise DatabaseError(
            "Session rate limit could not be updated",
            context={"session_id": session_id},
        )
    await db.commit()

    result = _decide(counter.count, limit, counter.expires_at.timestamp(), now.timestamp())
    if not result.allowed:
        logger.warning(
            "Session rate limit exceeded: %d requests (limit %d)", counter.count, result.limit
        )
    return result


def rate_limited_response(result: RateLimitResult, message: str = "Too many requests") -> JSONResponse:
    """Builds the 429 answer for a rejected RateLimitResult."""
    return JSONResponse(
        status_code=429,
        content={"error": message, "retry_after": result.retry_after_seconds},
        headers={
            "Retry-After": str(result.retry_after_seconds),
            "X-RateLimit-Limit": str(result.limit),
            "X-RateLimit-Remaining": str(result.remaining),
            "X-RateLimit-Reset": str(int(result.reset_at)),
        },
    )
