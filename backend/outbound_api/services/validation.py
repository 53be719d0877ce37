"""
Outbound Ops API — Request Body Validation
============================================

What:  Parses a JSON request body against a Pydantic schema.
Why:   Handlers need either typed data or a ready-to-send 400 response,
       without try/except around every body read.
How:   The whole body is read first (so the stream is always consumed), then
       decoded leniently and validated. The result is a tagged ParsedJson:
       exactly one of `data` or `error_response` is set.

Error response body (HTTP 400):
    {
        "error": "Field required",
        "details": {
            "form_errors": [],
            "field_errors": {"ops_id": ["Field required"]}
        }
    }
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from starlette.requests import Request
from starlette.responses import JSONResponse

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass
class ParsedJson(Generic[ModelT]):
    data: Optional[ModelT] = None
    error_response: Optional[JSONResponse] = None

    @property
    def ok(self) -> bool:
        return self.error_response is None


def _decode_body(raw: bytes) -> Any:
    # Empty, malformed, or null bodies validate as an empty object
    if not raw:
        return {}
    try:
        payload = json.loads(raw)
    except (UnicodeDecodeError, ValueError):
        return {}
    return {} if payload is None else payload


def flatten_errors(exc: PydanticValidationError) -> Dict[str, Any]:
    """Groups validation errors by top-level field; errors without a location are form errors."""
    form_errors: List[str] = []
    field_errors: Dict[str, List[str]] = {}
    for error in exc.errors():
        loc = error.get("loc") or ()
        if loc:
            field_errors.setdefault(str(loc[0]), []).append(error["msg"])
        else:
            form_errors.append(error["msg"])
    return {"form_errors": form_errors, "field_errors": field_errors}


async def parse_request_json(request: Request, schema: Type[ModelT]) -> ParsedJson[ModelT]:
    """
    Read and validate the request body.

    Args:
        request: Incoming request; its body is fully read.
        schema:  Pydantic model class. Declare `extra="forbid"` to reject unknown fields.

    Returns:
        ParsedJson with `data` on success, or `error_response` (HTTP 400).
    """
    raw = await request.body()
    payload = _decode_body(raw)
    try:
        data = schema.model_validate(payload)
    except PydanticValidationError as exc:
        errors = exc.errors()
        message = errors[0]["msg"] if errors else "Invalid request"
        return ParsedJson(
            error_response=JSONResponse(
                status_code=400,
                content={"error": message, "details": flatten_errors(exc)},
            )
        )
    return ParsedJson(data=data)
