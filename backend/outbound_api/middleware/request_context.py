"""
Outbound Ops API — Request Instrumentation Wrapper
====================================================

What:  Wraps every API route handler with request id assignment, timing,
       structured logging, metrics recording, and error translation.
Why:   One boundary owns the cross-cutting request concerns, so handlers only
       deal with their own expected outcomes (400/401/404/410/429).
How:   `with_request_logging(route)` decorates an async FastAPI handler. The
       decorated coroutine keeps the handler's signature (functools.wraps) so
       FastAPI's dependency injection is unaffected.

Pipeline (per request):
    1. Request id: inbound X-Request-ID header, or a fresh UUID4
    2. Bind a RequestContext to a ContextVar (read by loggers and run_query)
    3. Start the timer and invoke the handler
    4. Success: attach X-Request-ID to the handler's response, unchanged otherwise
       Failure: log with traceback, roll back the handler's DB session,
                report to the error sink, answer a generic 500
    5. Always: record the status in the metrics registry and log completion

Log record (logger "outbound.access"):
    {
        "request_id": "3f1c...",
        "route": "/api/users/ops/{ops_id}",
        "method": "GET",
        "status": 200,
        "duration_ms": 12.4,
        "db_ms": 3.1,
        "db_queries": 2
    }

What we log vs what we DON'T log (privacy):
    ✅ Log: route, method, status, durations, request id
    ❌ Don't log: request bodies, cookies, authorization headers
"""

import functools
import logging
import time
import uuid
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from outbound_api.config import settings
from outbound_api.services.metrics import record_request
from outbound_api.services.monitoring import capture_exception

logger = logging.getLogger("outbound.access")

REQUEST_ID_HEADER = "x-request-id"

Handler = Callable[..., Awaitable[Response]]


@dataclass
class RequestContext:
    """Per-request state shared by the wrapper, loggers, and the query helper."""

    route: str
    request_id: str
    method: str
    db_ms: float = 0.0
    db_queries: int = 0


# Coroutine-local storage: concurrent requests on the same loop each see their own context
request_context_var: ContextVar[Optional[RequestContext]] = ContextVar(
    "request_context", default=None
)


def get_request_context() -> Optional[RequestContext]:
    return request_context_var.get()


def get_request_id() -> str:
    context = request_context_var.get()
    return context.request_id if context else ""


def record_db_query(duration_ms: float) -> None:
    """Adds one statement's duration to the current request; no-op outside a request."""
    context = request_context_var.get()
    if context is None:
        return
    context.db_ms += duration_ms
    context.db_queries += 1


class RequestContextFilter(logging.Filter):
    """
    Stamps every log record with the service name and current request id.

    Attached to the root handler in setup_logging(), so the format string can
    reference %(service)s and %(request_id)s for records from any module.
    Values passed explicitly through `extra=` win.
    """

    def __init__(self, service: str):
        super().__init__()
        self.service = service

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "service"):
            record.service = self.service
        if not hasattr(record, "request_id"):
            record.request_id = get_request_id() or "-"
        return True


def _find_request(args: tuple, kwargs: dict) -> Request:
    for value in list(args) + list(kwargs.values()):
        if isinstance(value, Request):
            return value
    raise TypeError("Instrumented handlers must accept a starlette Request argument")


async def _rollback_sessions(args: tuple, kwargs: dict) -> None:
    """
    Roll back every database session the failed handler received.

    The wrapper answers the failure itself, so get_db_session sees a normal
    return and would otherwise commit the partial work on teardown.
    """
    for value in list(args) + list(kwargs.values()):
        if not isinstance(value, AsyncSession):
            continue
        try:
            await value.rollback()
        except Exception:
            logger.warning("Rollback after handler failure failed", exc_info=True)


def _over_budget(duration_ms: float, context: RequestContext) -> bool:
    return (
        duration_ms > settings.request_budget_ms
        or context.db_ms > settings.db_budget_ms
        or context.db_queries > settings.db_query_budget
    )


def with_request_logging(route: str, handler: Optional[Handler] = None) -> Any:
    """
    Instrument a route handler.

    Usable directly, `with_request_logging("/api/ping", ping)`, or as a
    decorator, `@with_request_logging("/api/ping")`.

    Args:
        route:   Stable route name used in logs, metrics and error reports
                 (the path template, never the concrete path).
        handler: Async handler taking the Request (plus any route parameters
                 and dependencies) and returning a Response.

    Returns:
        A coroutine function with the handler's signature.
    """
    if handler is None:
        return functools.partial(with_request_logging, route)

    @functools.wraps(handler)
    async def wrapped(*args: Any, **kwargs: Any) -> Response:
        request = _find_request(args, kwargs)
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        method = request.method
        context = RequestContext(route=route, request_id=request_id, method=method)
        token = request_context_var.set(context)

        # perf_counter: monotonic, sub-microsecond resolution
        start = time.perf_counter()
        status = 500
        try:
            try:
                response = await handler(*args, **kwargs)
            except Exception as exc:
                logger.error(
                    "api.error %s %s [%s]: %s",
                    method,
                    route,
                    request_id,
                    exc,
                    exc_info=True,
                    extra={"request_id": request_id, "route": route, "method": method},
                )
                await _rollback_sessions(args, kwargs)
                capture_exception(
                    exc, {"request_id": request_id, "route": route, "method": method}
                )
                # Never leak the exception message to the caller
                response = JSONResponse(
                    status_code=500,
                    content={"error": "Internal server error", "request_id": request_id},
                )

            status = response.status_code
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            duration_ms = (time.perf_counter() - start) * 1000
            record_request(status)
            fields = {
                "request_id": request_id,
                "route": route,
                "method": method,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "db_ms": round(context.db_ms, 2),
                "db_queries": context.db_queries,
            }
            logger.info(
                "api.request %s %s %d %.1fms",
                method,
                route,
                status,
                duration_ms,
                extra=fields,
            )
            if _over_budget(duration_ms, context):
                logger.warning(
                    "api.performance_budget %s %s %.1fms db=%.1fms/%d queries",
                    method,
                    route,
                    duration_ms,
                    context.db_ms,
                    context.db_queries,
                    extra={
                        **fields,
                        "budget": {
                            "request_ms": settings.request_budget_ms,
                            "db_ms": settings.db_budget_ms,
                            "db_queries": settings.db_query_budget,
                        },
                    },
                )
            request_context_var.reset(token)

    return wrapped
