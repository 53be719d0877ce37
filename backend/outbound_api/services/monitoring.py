"""
Outbound Ops API — Error Reporting Sink
=========================================

What:  Forwards unhandled request failures to Sentry.
Why:   Server logs show a failure once; Sentry groups, counts, and alerts on it.
How:   `init_error_reporting()` initializes the SDK at startup when SENTRY_DSN
       is configured. `capture_exception()` tags the event with the request
       context and sends it.
Who:   Called by the request instrumentation wrapper on any unhandled error.

Guarantee:
    The sink is fire-and-forget. When reporting is disabled it is a no-op, and
    a failure inside the SDK is logged and swallowed so it can never turn a
    generic 500 into a crash of the error path itself.
"""

import logging
from typing import Any, Mapping, Optional

import sentry_sdk

from outbound_api.config import settings

logger = logging.getLogger(__name__)


def is_error_reporting_enabled() -> bool:
    return bool(settings.sentry_dsn)


def init_error_reporting() -> None:
    """Initializes the Sentry SDK once at startup; does nothing without a DSN."""
    if not is_error_reporting_enabled():
        logger.info("Error reporting disabled (SENTRY_DSN not set)")
        return

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        release=f"{settings.service_name}@{settings.app_version}",
        # Request tracing is handled by our own logs; only errors are sent
        traces_sample_rate=0.0,
        send_default_pii=False,
    )
    logger.info("Error reporting enabled (environment=%s)", settings.environment)


def capture_exception(
    error: BaseException,
    context: Optional[Mapping[str, Any]] = None,
) -> None:
    """
    Report an exception with request context.

    Args:
        error:   The exception raised by a route handler.
        context: Optional mapping with `request_id`, `route` and `method`;
                 each present value becomes a Sentry tag.
    """
    if not is_error_reporting_enabled():
        return

    try:
        with sentry_sdk.new_scope() as scope:
            for key in ("request_id", "route", "method"):
                value = (context or {}).get(key)
                if value:
                    scope.set_tag(key, value)
            sentry_sdk.capture_exception(error)
    except Exception:
        logger.warning("Failed to report exception to Sentry", exc_info=True)
