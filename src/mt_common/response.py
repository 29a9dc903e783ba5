"""Unified API response wrapper.

All API endpoints return this format:
{
    "code": 0,           // 0=success, non-0=error code
    "message": "success",
    "data": { ... },     // null on error
    "timestamp": "...",
    "request_id": "..."
}
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field
from starlette.requests import Request


class ApiResponse(BaseModel):
    code: int = 0
    message: str = "success"
    data: Any = None
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    request_id: str = Field(default_factory=lambda: f"req_{uuid.uuid4().hex[:12]}")


def request_id_of(request: Request | None) -> str | None:
    """Read request_id injected by RequestLogMiddleware, if any."""
    if request is None:
        return None
    return getattr(request.state, "request_id", None)


def success_response(
    data: BaseModel | list[BaseModel] | dict[str, Any] | None = None,
    message: str = "success",
    request: Request | None = None,
) -> ApiResponse:
    """Wrap data; pydantic payloads are dumped in JSON mode so Decimals stay strings."""
    if isinstance(data, BaseModel):
        payload: Any = data.model_dump(mode="json")
    elif isinstance(data, list):
        payload = [item.model_dump(mode="json") for item in data]
    else:
        payload = data
    resp = ApiResponse(code=0, message=message, data=payload)
    rid = request_id_of(request)
    if rid:
        resp.request_id = rid
    return resp


def error_response(code: int, message: str, request: Request | None = None) -> ApiResponse:
    resp = ApiResponse(code=code, message=message, data=None)
    rid = request_id_of(request)
    if rid:
        resp.request_id = rid
    return resp
