"""
Outbound Ops API — Custom Exception Hierarchy
===============================================

What:  Application-specific exceptions for failures that are NOT expected
       outcomes of a request.
Why:   Expected outcomes (400 validation, 401, 403, 404, 410, 429) are built
       as responses by the route handlers themselves. Exceptions are reserved
       for infrastructure failures that must become a generic 500.
How:   Each exception carries a message and an optional context dict.
       The context is logged server-side and NEVER returned to business clients.
Who:   Raised by the query helper and repositories; caught by the request
       instrumentation wrapper or the global handlers in main.py.

Exception Hierarchy:
    OutboundError (base)         → 500 Internal Server Error
    └── DatabaseError            → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class OutboundError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  Human-readable error description
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class DatabaseError(OutboundError):
    """
    Raised when a database operation fails.

    What:    A query, insert, or update failed or the database is unreachable.
    When:    Connection refused, connection lost mid-query, constraint violation.
    HTTP:    500 Internal Server Error

    Security Note:
        Business endpoints always answer with a generic message. Only the
        health endpoints surface `context["detail"]`, since operators rely on
        it to diagnose connectivity.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)

    @property
    def detail(self) -> str:
        """Underlying driver message when available, else the generic message."""
        return str(self.context.get("detail") or self.message)
