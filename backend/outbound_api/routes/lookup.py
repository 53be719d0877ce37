"""
Outbound Ops API — Lookup Routes
==================================

What:  GET /api/lookup/processors?query= lists processors for pickers.
Why:   The list is read on every form load and changes rarely.

Caching Strategy:
    - Server: in-process TTL cache per query text for LOOKUP_CACHE_MS (60s)
    - Client: Cache-Control "private, max-age=60, stale-while-revalidate=300"
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from outbound_api.database import get_db_session
from outbound_api.middleware.request_context import with_request_logging
from outbound_api.repositories.users import list_processors
from outbound_api.schemas.api import ErrorResponse, ProcessorLookupItem
from outbound_api.services.auth import get_session
from outbound_api.services.cache_control import LOOKUP_CACHE_CONTROL, LOOKUP_CACHE_MS
from outbound_api.services.server_cache import with_cache

router = APIRouter(prefix="/api/lookup", tags=["Lookup"])

PROCESSORS_CACHE_SCOPE = "lookup:processors"


@router.get(
    "/processors",
    responses={
        200: {"description": "Processors as [{name, ops_id}]"},
        401: {"model": ErrorResponse},
    },
    summary="List processors, optionally filtered by name or ops id",
)
@with_request_logging("/api/lookup/processors")
async def lookup_processors(
    request: Request,
    query: Optional[str] = Query(default=None, description="Substring of name or ops id"),
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    session = await get_session(request, db)
    if session is None:
        return JSONResponse(status_code=401, content={"error": "Unauthorized"})

    # The unfiltered list is cached under None
    query_text = query.strip() if query and query.strip() else None

    async def load() -> List[dict]:
        users = await list_processors(db, query_text)
        return [ProcessorLookupItem.model_validate(user).model_dump() for user in users]

    rows = await with_cache((PROCESSORS_CACHE_SCOPE, query_text), LOOKUP_CACHE_MS, load)
    return JSONResponse(content=rows, headers={"Cache-Control": LOOKUP_CACHE_CONTROL})
