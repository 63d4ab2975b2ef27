"""Course schemas."""

from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from calcify.schemas.base import BaseSchema, IDMixin, TimestampMixin
from calcify.schemas.course_record import CourseChapter, CourseRecord


# Request schemas
class CourseCreate(BaseSchema):
    """Schema for creating a course by hand (the intake assistant stores its own)."""

    title: str = Field(..., min_length=1)
    description: str | None = None
    metadata: dict[str, Any] | None = Field(None, description="Course record JSON (camelCase)")


# Response schemas
class CourseRead(BaseSchema, IDMixin, TimestampMixin):
    """Course row without the plan body."""

    user_id: UUID
    title: str
    description: str | None = None


class CourseListResponse(BaseModel):
    """List of courses."""

    courses: list[CourseRead]
    total: int


class TopicView(BaseModel):
    order: int | float
    label: str
    weeks_label: str


class CourseDetail(BaseModel):
    """Full normalized course with display labels."""

    course: CourseRead
    record: CourseRecord
    source_label: str
    topics: list[TopicView]


class CalendarEntry(BaseModel):
    """Calendar milestone with a human-readable label for its target."""

    date: str
    type: str
    ref_id: str
    label: str


class CourseCalendarResponse(BaseModel):
    course_id: UUID
    entries: list[CalendarEntry]


class ChapterView(BaseModel):
    """A single chapter and the calendar entries that point into it."""

    course_id: UUID
    course_title: str
    chapter: CourseChapter
    calendar: list[CalendarEntry]
