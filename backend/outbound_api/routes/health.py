"""
Outbound Ops API — Health Check Routes
========================================

What:  Liveness, readiness, and ping endpoints.
Why:   Load balancers and uptime monitors need cheap probes that never cache.
How:   /api/health and /api/health/readiness run SELECT 1; /api/ping touches
       nothing. All responses carry Cache-Control: no-store.
Who:   Called by container health checks, load balancers, and monitoring.

Failure shape:
    HTTP 500 {"status": "error", "error": "<driver message>"}
    Health endpoints are the one place the underlying database message is
    returned, because operators use it to diagnose connectivity.
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from outbound_api.config import settings
from outbound_api.database import get_db_session
from outbound_api.exceptions import DatabaseError
from outbound_api.middleware.request_context import with_request_logging
from outbound_api.repositories.health import check_database
from outbound_api.schemas.api import (
    HealthErrorResponse,
    HealthResponse,
    ReadinessResponse,
    utc_timestamp,
)
from outbound_api.services.cache_control import NO_STORE

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Health"])

_NO_STORE_HEADERS = {"Cache-Control": NO_STORE}


def _database_failure(exc: DatabaseError) -> JSONResponse:
    logger.warning("Health check: database unreachable: %s", exc.detail)
    return JSONResponse(
        status_code=500,
        content=HealthErrorResponse(error=exc.detail).model_dump(),
        headers=_NO_STORE_HEADERS,
    )


@router.get(
    "/health",
    responses={
        200: {"model": HealthResponse},
        500: {"model": HealthErrorResponse, "description": "Database unreachable"},
    },
    summary="Service health check",
)
@with_request_logging("/api/health")
async def health_check(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    try:
        await check_database(db)
    except DatabaseError as exc:
        return _database_failure(exc)

    body = HealthResponse(
        status="ok",
        timestamp=utc_timestamp(),
        app=settings.app_name,
        version=settings.app_version,
    )
    return JSONResponse(content=body.model_dump(), headers=_NO_STORE_HEADERS)


@router.get(
    "/health/readiness",
    responses={
        200: {"model": ReadinessResponse},
        500: {"model": HealthErrorResponse, "description": "Database unreachable"},
    },
    summary="Readiness probe",
)
@with_request_logging("/api/health/readiness")
async def readiness_check(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    try:
        await check_database(db)
    except DatabaseError as exc:
        return _database_failure(exc)

    body = ReadinessResponse(status="ok", timestamp=utc_timestamp())
    return JSONResponse(content=body.model_dump(), headers=_NO_STORE_HEADERS)


@router.get(
    "/ping",
    responses={200: {"model": ReadinessResponse}},
    summary="Liveness ping (no dependencies)",
)
@with_request_logging("/api/ping")
async def ping(request: Request) -> JSONResponse:
    body = ReadinessResponse(status="ok", timestamp=utc_timestamp())
    return JSONResponse(content=body.model_dump(), headers=_NO_STORE_HEADERS)
