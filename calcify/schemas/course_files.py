"""Pydantic schemas for course upload operations."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from calcify.schemas.base import BaseSchema, IDMixin


class CourseFileRead(BaseSchema, IDMixin):
    """Uploaded file metadata."""

    user_id: UUID
    original_name: str
    mime_type: str | None = None
    size_bytes: int
    created_at: datetime


class CourseFileListResponse(BaseModel):
    """List of uploads, oldest first."""

    files: list[CourseFileRead]
    total: int
