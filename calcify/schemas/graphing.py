"""Graphing history schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from calcify.schemas.base import BaseSchema, IDMixin


class GraphEntryCreate(BaseSchema):
    """Schema for logging a plotted expression."""

    expression: str = Field(..., min_length=1)
    variables: dict[str, float] | None = None
    settings: dict[str, Any] | None = None


class GraphEntryRead(BaseSchema, IDMixin):
    expression: str
    variables: dict[str, Any] | None = None
    settings: dict[str, Any] | None = None
    rendered_at: datetime


class GraphHistoryResponse(BaseModel):
    """Most recent entries first."""

    entries: list[GraphEntryRead]
    total: int
