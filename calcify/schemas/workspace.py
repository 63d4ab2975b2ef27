"""Workspace schemas."""

from typing import Any
from uuid import UUID

from pydantic import Field

from calcify.schemas.base import BaseSchema, IDMixin, TimestampMixin


class WorkspaceRead(BaseSchema, IDMixin, TimestampMixin):
    user_id: UUID
    title: str
    data: dict[str, Any]


class WorkspaceUpdate(BaseSchema):
    """Replace the workspace title and document."""

    title: str = Field(..., min_length=1, max_length=255)
    data: dict[str, Any] = Field(default_factory=dict)
