"""
Outbound Ops API — Auth Routes
================================

What:  POST /api/auth/change-password (retired) and POST /api/auth/logout.
Why:   Password login was replaced by Google Sign-In and Seatalk. The old
       endpoint stays to give clients a definitive 410 instead of a 404.

Rate limits:
    change-password: per client IP (AUTH_RATE_LIMIT_*), no session exists yet
    logout:          per session (RATE_LIMIT_*), persisted across instances
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from outbound_api.database import get_db_session
from outbound_api.middleware.rate_limit import (
    enforce_ip_rate_limit,
    enforce_session_rate_limit,
    rate_limited_response,
)
from outbound_api.middleware.request_context import with_request_logging
from outbound_api.repositories.auth_sessions import delete_auth_session
from outbound_api.schemas.api import (
    ChangePasswordRequest,
    ErrorResponse,
    LogoutRequest,
    SuccessResponse,
    ValidationErrorResponse,
)
from outbound_api.services.auth import clear_session_cookie, get_session, get_session_id
from outbound_api.services.validation import parse_request_json

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])

PASSWORD_LOGIN_DISABLED = "Password login is disabled. Use Google Sign-In or Seatalk."


@router.post(
    "/change-password",
    status_code=410,
    responses={
        400: {"model": ValidationErrorResponse},
        410: {"model": ErrorResponse, "description": "Password login is retired"},
        429: {"model": ErrorResponse},
    },
    summary="Retired: password changes are no longer supported",
)
@with_request_logging("/api/auth/change-password")
async def change_password(request: Request) -> JSONResponse:
    rate_limit = enforce_ip_rate_limit(request, "auth-change-password")
    if not rate_limit.allowed:
        return rate_limited_response(rate_limit)

    parsed = await parse_request_json(request, ChangePasswordRequest)
    if parsed.error_response is not None:
        return parsed.error_response

    return JSONResponse(status_code=410, content={"error": PASSWORD_LOGIN_DISABLED})


@router.post(
    "/logout",
    responses={
        200: {"model": SuccessResponse},
        400: {"model": ValidationErrorResponse},
        429: {"model": ErrorResponse},
    },
    summary="End the current session",
)
@with_request_logging("/api/auth/logout")
async def logout(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    parsed = await parse_request_json(request, LogoutRequest)
    if parsed.error_response is not None:
        return parsed.error_response

    session = await get_session(request, db)
    if session is not None:
        rate_limit = await enforce_session_rate_limit(db, session.session_id)
        if not rate_limit.allowed:
            return rate_limited_response(rate_limit)

    session_id = get_session_id(request)
    if session_id:
        await delete_auth_session(db, session_id)
        logger.info("Session ended for %s", session.user.ops_id if session else "unknown user")

    response = JSONResponse(content=SuccessResponse().model_dump())
    clear_session_cookie(response)
    return response
