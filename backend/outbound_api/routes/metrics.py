"""
Outbound Ops API — Metrics Route
==================================

What:  GET /api/metrics returns the process metrics snapshot.
Who:   Scraped by monitoring (bearer token) or opened by admins (session).

Access rules:
    METRICS_TOKEN set   → Authorization: Bearer <token> or ?token=<token>, else 401
    METRICS_TOKEN unset → signed-in session required (401), role Admin (403)
"""

import hmac
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from outbound_api.config import settings
from outbound_api.database import get_db_session
from outbound_api.middleware.request_context import with_request_logging
from outbound_api.schemas.api import ErrorResponse, MetricsResponse
from outbound_api.services.auth import get_session
from outbound_api.services.cache_control import NO_STORE
from outbound_api.services.metrics import get_metrics_snapshot

router = APIRouter(prefix="/api", tags=["Metrics"])


def _provided_token(request: Request) -> Optional[str]:
    authorization = request.headers.get("authorization") or ""
    if authorization.startswith("Bearer "):
        return authorization[len("Bearer "):]
    return request.query_params.get("token")


@router.get(
    "/metrics",
    responses={
        200: {"model": MetricsResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
    },
    summary="Process request counters",
)
@with_request_logging("/api/metrics")
async def metrics(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    if settings.metrics_token:
        provided = _provided_token(request) or ""
        if not hmac.compare_digest(provided.encode(), settings.metrics_token.encode()):
            return JSONResponse(status_code=401, content={"error": "Unauthorized"})
    else:
        session = await get_session(request, db)
        if session is None:
            return JSONResponse(status_code=401, content={"error": "Unauthorized"})
        if not session.is_admin:
            return JSONResponse(status_code=403, content={"error": "Forbidden"})

    return JSONResponse(content=get_metrics_snapshot(), headers={"Cache-Control": NO_STORE})
