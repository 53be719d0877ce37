"""
Outbound Ops API — Database Session Management
================================================

What:  Async SQLAlchemy engine, session factory, FastAPI dependency, and the
       instrumented query helper used by every repository.
Why:   Centralizes all database connection logic in one place.
How:   Creates an async engine with connection pooling, provides a session
       dependency that commits on success and rolls back on error.
Who:   Route handlers receive sessions via Depends(get_db_session);
       repositories execute statements through run_query().

Query accounting:
    run_query() times each statement and adds it to the current request's
    context (db_ms, db_queries). The request wrapper logs these totals and
    warns when they exceed the configured performance budgets.
"""

import logging
import time
from typing import Any, AsyncGenerator, Dict

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from outbound_api.config import settings
from outbound_api.exceptions import DatabaseError
from outbound_api.middleware.request_context import get_request_context, record_db_query

logger = logging.getLogger("outbound.db")


def _engine_options() -> Dict[str, Any]:
    options: Dict[str, Any] = {
        "pool_pre_ping": settings.db_pool_pre_ping,
        # Echo SQL queries only when debugging
        "echo": settings.log_level == "DEBUG",
    }
    # SQLite (tests, local tooling) does not take queue pool sizing arguments
    if not settings.database_url.startswith("sqlite"):
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_recycle=3600,
        )
    return options


# ── Engine Configuration ──────────────────────────────────────────────────
engine = create_async_engine(settings.database_url, **_engine_options())

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: ORM rows stay readable after the limiter's mid-request commit
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""
    pass


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler
        3. On success: commits the transaction
        4. On error: rolls back, then re-raises
        5. Always: closes the session (returns connection to pool)
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def run_query(db: AsyncSession, statement: Any) -> Any:
    """
    Execute a statement with timing, logging, and error translation.

    Args:
        db:        Session to execute on.
        statement: Any executable SQLAlchemy construct.

    Returns:
        The SQLAlchemy Result.

    Raises:
        DatabaseError: wrapping any SQLAlchemyError; the driver message is
        kept in `context["detail"]` for server-side logs and health checks.
    """
    context = get_request_context()
    route = context.route if context else "unknown"
    start = time.perf_counter()
    try:
        result = await db.execute(statement)
    except SQLAlchemyError as exc:
        duration_ms = (time.perf_counter() - start) * 1000
        record_db_query(duration_ms)
        logger.error(
            "db.query.error route=%s %.1fms: %s",
            route,
            duration_ms,
            exc,
            extra={"route": route, "duration_ms": round(duration_ms, 2)},
        )
        raise DatabaseError(context={"detail": str(exc), "route": route}) from exc

    duration_ms = (time.perf_counter() - start) * 1000
    record_db_query(duration_ms)
    logger.debug(
        "db.query route=%s %.1fms",
        route,
        duration_ms,
        extra={"route": route, "duration_ms": round(duration_ms, 2)},
    )
    return result


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def dispose_engine() -> None:
    """Closes all pooled connections during application shutdown."""
    await engine.dispose()
