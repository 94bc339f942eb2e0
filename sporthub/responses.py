"""Builders for the uniform JSON response envelope."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from sporthub.schemas.envelope import Envelope, ErrorBody, PaginationMeta


def _timestamp() -> str:
    return datetime.now(UTC).isoformat()


def envelope_content(envelope: Envelope) -> dict[str, Any]:
    """Serialize an envelope, omitting absent optional sections only."""
    content: dict[str, Any] = {
        "success": envelope.success,
        "message": envelope.message,
    }
    if envelope.data is not None:
        content["data"] = jsonable_encoder(envelope.data, by_alias=True)
    if envelope.error is not None:
        content["error"] = envelope.error.model_dump(exclude_none=True)
    if envelope.pagination is not None:
        content["pagination"] = envelope.pagination.model_dump(by_alias=True)
    content["timestamp"] = envelope.timestamp
    return content


def success_response(
    data: Any = None,
    message: str = "Success",
    status_code: int = 200,
    pagination: PaginationMeta | None = None,
) -> JSONResponse:
    """Build a success envelope response."""
    envelope = Envelope(
        success=True,
        message=message,
        data=data,
        pagination=pagination,
        timestamp=_timestamp(),
    )
    return JSONResponse(status_code=status_code, content=envelope_content(envelope))


def paginated_response(
    items: list[Any],
    total: int,
    page: int,
    limit: int,
    message: str = "Success",
) -> JSONResponse:
    """Build a success envelope for one page of a list."""
    return success_response(
        data=items,
        message=message,
        pagination=PaginationMeta.from_counts(total=total, page=page, limit=limit),
    )


def error_response(
    status_code: int,
    code: str,
    message: str,
    details: Any = None,
) -> JSONResponse:
    """Build an error envelope response."""
    envelope = Envelope(
        success=False,
        message=message,
        error=ErrorBody(code=code, message=message, details=details),
        timestamp=_timestamp(),
    )
    return JSONResponse(status_code=status_code, content=envelope_content(envelope))
