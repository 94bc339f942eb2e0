"""Response envelope schemas shared by every API route."""

from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ErrorBody(BaseModel):
    """Machine-readable error carried by failed responses."""

    code: str
    message: str
    details: Any | None = None


class PaginationMeta(BaseModel):
    """Pagination metadata for list responses."""

    model_config = ConfigDict(populate_by_name=True)

    total: int = Field(ge=0)
    page: int = Field(ge=1)
    limit: int = Field(ge=1)
    total_pages: int = Field(ge=0, alias="totalPages")

    @classmethod
    def from_counts(cls, total: int, page: int, limit: int) -> PaginationMeta:
        """Derive the page count from the total row count and page size."""
        return cls(total=total, page=page, limit=limit, total_pages=math.ceil(total / limit))


class Envelope(BaseModel):
    """Uniform success/error response body."""

    success: bool
    message: str
    data: Any | None = None
    error: ErrorBody | None = None
    pagination: PaginationMeta | None = None
    timestamp: str
