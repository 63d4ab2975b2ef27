"""Course CRUD routes plus calendar and chapter views of the stored plan."""

import logging
from uuid import UUID

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import select

from calcify.api.deps import CurrentUser, DbSession, get_user_resource_or_404
from calcify.db.models import Course
from calcify.schemas.course_record import CourseRecord
from calcify.schemas.courses import (
    CalendarEntry,
    ChapterView,
    CourseCalendarResponse,
    CourseCreate,
    CourseDetail,
    CourseListResponse,
    CourseRead,
    TopicView,
)
from calcify.services.course_normalizer import require_course_record
from calcify.services.course_references import (
    ReferenceMaps,
    build_reference_maps,
    chapter_calendar,
    describe_calendar_item,
    describe_source,
    find_chapter,
    format_weeks,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/courses", tags=["courses"])


async def _load_record(db: DbSession, course_id: UUID, user_id: UUID) -> tuple[Course, CourseRecord]:
    """Fetch an owned course and normalize its plan; unreadable metadata reads as missing."""
    course = await get_user_resource_or_404(db, Course, course_id, user_id)
    try:
        record = require_course_record(course)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found")
    return course, record


def _calendar_entries(items, maps: ReferenceMaps) -> list[CalendarEntry]:
    return [
        CalendarEntry(
            date=item.date,
            type=item.type,
            ref_id=item.ref_id,
            label=describe_calendar_item(item, maps),
        )
        for item in items
    ]


@router.get("/", response_model=CourseListResponse)
async def list_courses(
    current_user: CurrentUser,
    db: DbSession,
) -> CourseListResponse:
    """List the current user's courses, newest first."""
    result = await db.execute(
        select(Course)
        .where(Course.user_id == current_user.id)
        .order_by(Course.created_at.desc())
    )
    courses = [CourseRead.model_validate(c) for c in result.scalars()]
    return CourseListResponse(courses=courses, total=len(courses))


@router.post("/", response_model=CourseRead, status_code=status.HTTP_201_CREATED)
async def create_course(
    data: CourseCreate,
    current_user: CurrentUser,
    db: DbSession,
) -> CourseRead:
    """Create a course from a title and optional plan metadata."""
    course = Course(
        user_id=current_user.id,  # From auth, NEVER from request
        title=data.title,
        description=data.description,
        plan_metadata=data.metadata or {},
    )
    db.add(course)
    await db.commit()
    await db.refresh(course)
    return CourseRead.model_validate(course)


@router.get("/{course_id}", response_model=CourseDetail)
async def get_course(
    course_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> CourseDetail:
    """Get a course with its normalized plan."""
    course, record = await _load_record(db, course_id, current_user.id)
    return CourseDetail(
        course=CourseRead.model_validate(course),
        record=record,
        source_label=describe_source(record.source),
        topics=[
            TopicView(order=topic.order, label=topic.label, weeks_label=format_weeks(topic.weeks))
            for topic in record.syllabus_extract.topics
        ],
    )


@router.delete("/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_course(
    course_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> None:
    """Delete a course and its topic rows."""
    course = await get_user_resource_or_404(db, Course, course_id, current_user.id)
    await db.delete(course)
    await db.commit()
    logger.info("Deleted course %s", course_id)


@router.get("/{course_id}/calendar", response_model=CourseCalendarResponse)
async def get_course_calendar(
    course_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> CourseCalendarResponse:
    """Calendar milestones labelled with the lesson or problem set they point at."""
    course, record = await _load_record(db, course_id, current_user.id)
    maps = build_reference_maps(record)
    return CourseCalendarResponse(
        course_id=course.id,
        entries=_calendar_entries(record.plan.calendar, maps),
    )


@router.get("/{course_id}/chapters/{chapter_id}", response_model=ChapterView)
async def get_course_chapter(
    course_id: UUID,
    chapter_id: str,
    current_user: CurrentUser,
    db: DbSession,
) -> ChapterView:
    """One chapter of the plan with its own calendar entries."""
    course, record = await _load_record(db, course_id, current_user.id)
    chapter = find_chapter(record, chapter_id)
    if chapter is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Chapter not found")

    maps = build_reference_maps(record)
    return ChapterView(
        course_id=course.id,
        course_title=record.title,
        chapter=chapter,
        calendar=_calendar_entries(chapter_calendar(record, chapter), maps),
    )
