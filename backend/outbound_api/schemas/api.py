"""
Outbound Ops API — Pydantic Request/Response Schemas
======================================================

What:  Pydantic models defining the API contract.
Why:   Request bodies are validated through parse_request_json(); response
       models serialize handler output and document the routes in OpenAPI.
How:   Request models are strict (extra="forbid"): an unknown field is a 400,
       not silently ignored.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


def utc_timestamp() -> str:
    """ISO 8601 UTC timestamp with millisecond precision, e.g. 2024-01-15T12:00:00.000Z."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class ChangePasswordRequest(BaseModel):
    """Body of POST /api/auth/change-password (retired endpoint, still validated)."""

    model_config = ConfigDict(extra="forbid")

    ops_id: str = Field(min_length=1, description="Operations id of the account")


class LogoutRequest(BaseModel):
    """Body of POST /api/auth/logout: an empty object."""

    model_config = ConfigDict(extra="forbid")


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    error: str = Field(description="Human-readable error message")
    request_id: Optional[str] = Field(default=None, description="Correlation id for support")


class ValidationErrorDetails(BaseModel):
    form_errors: List[str] = Field(default_factory=list)
    field_errors: Dict[str, List[str]] = Field(default_factory=dict)


class ValidationErrorResponse(BaseModel):
    error: str = Field(description="Message of the first validation error")
    details: ValidationErrorDetails


class HealthResponse(BaseModel):
    status: str = Field(description="'ok' when the database is reachable")
    timestamp: str = Field(description="Server time (UTC ISO 8601)")
    app: str = Field(description="Application name")
    version: str = Field(description="Application version")


class ReadinessResponse(BaseModel):
    status: str
    timestamp: str


class HealthErrorResponse(BaseModel):
    status: str = "error"
    error: str = Field(description="Why the dependency check failed")


class MetricsResponse(BaseModel):
    uptime_seconds: int
    requests_total: int
    errors_total: int


class UserSummary(BaseModel):
    ops_id: str
    name: str
    role: str
    email: Optional[str] = None
    department: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ProcessorLookupItem(BaseModel):
    name: str
    ops_id: str

    model_config = ConfigDict(from_attributes=True)


class SuccessResponse(BaseModel):
    success: bool = True
