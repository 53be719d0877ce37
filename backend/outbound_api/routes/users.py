"""
Outbound Ops API — User Routes
================================

What:  GET /api/users/ops/{ops_id} returns a user summary.
Who:   Called by the web app to show who processed or submitted a record.

Responses:
    401 {"error": "Unauthorized"}    no live session
    404 {"error": "User not found"}  unknown ops_id
    200 {ops_id, name, role, email, department}
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from outbound_api.database import get_db_session
from outbound_api.middleware.request_context import with_request_logging
from outbound_api.repositories.users import get_user_by_ops_id
from outbound_api.schemas.api import ErrorResponse, UserSummary
from outbound_api.services.auth import get_session

router = APIRouter(prefix="/api", tags=["Users"])


@router.get(
    "/users/ops/{ops_id}",
    responses={
        200: {"model": UserSummary},
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
    summary="Look up a user by operations id",
)
@with_request_logging("/api/users/ops/{ops_id}")
async def get_user_by_ops(
    request: Request,
    ops_id: str,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    session = await get_session(request, db)
    if session is None:
        return JSONResponse(status_code=401, content={"error": "Unauthorized"})

    user = await get_user_by_ops_id(db, ops_id)
    if user is None:
        return JSONResponse(status_code=404, content={"error": "User not found"})

    return JSONResponse(content=UserSummary.model_validate(user).model_dump())
