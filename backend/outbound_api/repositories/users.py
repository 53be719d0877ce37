"""
Outbound Ops API — User Repository
====================================

What:  Read-only user lookups.
Who:   Used by the users and lookup routes.
"""

from typing import List, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from outbound_api.database import run_query
from outbound_api.models.user import User

PROCESSOR_ROLE = "Processor"
PROCESSOR_LOOKUP_LIMIT = 50


async def get_user_by_ops_id(db: AsyncSession, ops_id: str) -> Optional[User]:
    result = await run_query(db, select(User).where(User.ops_id == ops_id).limit(1))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await run_query(db, select(User).where(User.email == email).limit(1))
    return result.scalar_one_or_none()


async def list_processors(db: AsyncSession, query_text: Optional[str] = None) -> List[User]:
    """
    Users with the Processor role, ordered by name.

    Args:
        query_text: Optional case-insensitive substring matched against
                    name or ops_id. Blank strings are treated as absent.
    """
    statement = select(User).where(User.role == PROCESSOR_ROLE)
    if query_text and query_text.strip():
        pattern = f"%{query_text.strip()}%"
        statement = statement.where(
            or_(User.name.ilike(pattern), User.ops_id.ilike(pattern))
        )
    statement = statement.order_by(User.name).limit(PROCESSOR_LOOKUP_LIMIT)
    result = await run_query(db, statement)
    return list(result.scalars().all())
