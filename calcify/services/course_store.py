"""Persistence for generated courses and course uploads."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from calcify.db.models import Course, CourseFile, CourseTopic
from calcify.schemas.course_record import CourseRecord, UploadSource
from calcify.services.course_normalizer import (
    DEFAULT_COURSE_TITLE,
    is_finite_number,
    normalize_course_record,
    now_iso,
)

logger = logging.getLogger(__name__)

OCTET_STREAM = "application/octet-stream"


@dataclass(frozen=True)
class LoadedAttachment:
    """An upload read back from storage, ready to inline into an LLM turn."""

    id: str
    original_name: str
    mime_type: str | None
    base64: str


async def list_course_files(db: AsyncSession, user_id: UUID) -> Sequence[CourseFile]:
    """All uploads for a user, oldest first."""
    result = await db.execute(
        select(CourseFile)
        .where(CourseFile.user_id == user_id)
        .order_by(CourseFile.created_at.asc())
    )
    return result.scalars().all()


def _integral(value: Any) -> int | None:
    if not is_finite_number(value):
        return None
    if isinstance(value, int):
        return value
    return int(value) if value.is_integer() else None


def build_topic_rows(course_id: UUID, record: CourseRecord) -> list[CourseTopic]:
    """One course_topics row per syllabus topic with a non-blank label."""
    rows = []
    for index, topic in enumerate(record.syllabus_extract.topics, start=1):
        label = topic.label.strip()
        if not label:
            continue
        position = _integral(topic.order)
        weeks = [week for week in (_integral(value) for value in topic.weeks) if week is not None]
        rows.append(
            CourseTopic(
                course_id=course_id,
                position=position if position is not None else index,
                label=label,
                weeks=weeks or None,
            )
        )
    return rows


def with_upload_source(record: CourseRecord, attachments: Sequence[LoadedAttachment]) -> CourseRecord:
    """Attribute a sourceless record to the most recent upload, if any."""
    if record.source is not None or not attachments:
        return record
    latest = attachments[-1]
    return record.model_copy(
        update={
            "source": UploadSource(
                file_id=latest.id,
                original_name=latest.original_name,
                mime_type=latest.mime_type or OCTET_STREAM,
            )
        }
    )


async def persist_generated_course(
    db: AsyncSession,
    user_id: UUID,
    payload: Any,
    attachments: Sequence[LoadedAttachment],
) -> UUID | None:
    """
    Normalize an LLM course payload and store it.

    Args:
        db: Database session
        user_id: Owner of the new course
        payload: Decoded JSON from the assistant reply
        attachments: Uploads sent with the turn, oldest first

    Returns:
        The new course id, or None if the payload was unusable or the insert failed
    """
    timestamp = now_iso()
    record = normalize_course_record(
        str(user_id),
        payload,
        {"title": DEFAULT_COURSE_TITLE, "created_at": timestamp, "updated_at": timestamp},
    )
    if record is None:
        logger.warning("Assistant payload is not a course object: %r", payload)
        return None

    record = with_upload_source(record, attachments)

    try:
        course = Course(
            user_id=user_id,
            title=record.title,
            description=record.syllabus_extract.term,
            plan_metadata=record.to_wire(),
        )
        db.add(course)
        await db.flush()

        topic_rows = build_topic_rows(course.id, record)
        if topic_rows:
            db.add_all(topic_rows)

        await db.commit()
    except Exception:
        logger.exception("Failed to persist generated course for user %s", user_id)
        await db.rollback()
        return None

    logger.info("Saved generated course %s (%d topics)", course.id, len(record.syllabus_extract.topics))
    return course.id
