"""Database liveness probe used by the health endpoints."""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from outbound_api.database import run_query


async def check_database(db: AsyncSession) -> None:
    """Runs SELECT 1; raises DatabaseError when the database is unreachable."""
    await run_query(db, text("SELECT 1"))
