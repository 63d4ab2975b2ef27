"""
Course record normalization.

Turns untrusted JSON (LLM output or stored metadata) into a fully populated
CourseRecord. Every field falls back to a deterministic default, malformed list
entries are dropped, and nothing below the top level can make normalization
fail. The only None result is for a payload that is not a JSON object.
"""

import logging
import math
import sys
import time
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any, TypedDict, TypeVar

from calcify.db.models import Course
from calcify.schemas.course_record import (
    CheckStep,
    CourseAssessment,
    CourseCalendarItem,
    CourseChapter,
    CourseLesson,
    CoursePlan,
    CourseProblem,
    CourseProblemSet,
    CourseProgress,
    CourseRecord,
    CourseResource,
    CourseSource,
    CourseTopic,
    CourseVisual,
    HintStep,
    LinkSource,
    SolutionGuide,
    SyllabusExtract,
    UploadSource,
)

logger = logging.getLogger(__name__)

DEFAULT_COURSE_TITLE = "Untitled Course"

ItemT = TypeVar("ItemT")


class RecordFallback(TypedDict, total=False):
    """Values used when the payload itself lacks them."""

    id: str
    title: str
    created_at: str
    updated_at: str


# =============================================================================
# PRIMITIVES
# =============================================================================


def now_iso() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and a Z suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def today_iso() -> str:
    return datetime.now(timezone.utc).date().isoformat()


def is_plain_object(value: Any) -> bool:
    return isinstance(value, dict)


def to_string(value: Any, fallback: str) -> str:
    """Non-blank string as-is, otherwise the fallback."""
    return value if isinstance(value, str) and value.strip() else fallback


def to_optional_string(value: Any) -> str | None:
    return value if isinstance(value, str) and value.strip() else None


def is_finite_number(value: Any) -> bool:
    # bool is an int subclass but never a JSON number
    if isinstance(value, bool):
        return False
    # ints outside the float range count as non-finite
    if isinstance(value, int):
        return -sys.float_info.max <= value <= sys.float_info.max
    return isinstance(value, float) and math.isfinite(value)


def to_number(value: Any, fallback: int | float) -> int | float:
    return value if is_finite_number(value) else fallback


def to_number_list(value: Any) -> list[int | float]:
    if not isinstance(value, list):
        return []
    return [item for item in value if is_finite_number(item)]


def to_string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str) and item.strip()]


def clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


def normalize_list(
    value: Any,
    normalize_item: Callable[[dict, int], ItemT | None],
) -> list[ItemT]:
    """
    Normalize every object in a JSON array, keeping input order.

    Non-objects and items the normalizer rejects (returns None for) are
    dropped. normalize_item receives the 1-based position in the input array.
    """
    if not isinstance(value, list):
        return []

    normalized = []
    for index, item in enumerate(value, start=1):
        if not is_plain_object(item):
            continue
        result = normalize_item(item, index)
        if result is not None:
            normalized.append(result)
    return normalized


# =============================================================================
# NESTED ENTITIES
# =============================================================================


def normalize_source(value: Any) -> CourseSource | None:
    if not is_plain_object(value) or not isinstance(value.get("type"), str):
        return None

    source_type = value["type"]

    if source_type == "upload":
        file_id = to_optional_string(value.get("fileId"))
        original_name = to_optional_string(value.get("originalName"))
        mime_type = to_optional_string(value.get("mimeType"))
        if not file_id or not original_name or not mime_type:
            return None
        return UploadSource(file_id=file_id, original_name=original_name, mime_type=mime_type)

    if source_type in ("catalog", "link"):
        href = to_optional_string(value.get("href"))
        if href is None:
            return None
        return LinkSource(type=source_type, href=href)

    return None


def _topic(item: dict, index: int) -> CourseTopic:
    return CourseTopic(
        order=to_number(item.get("order"), index),
        label=to_string(item.get("label"), f"Topic {index}"),
        weeks=to_number_list(item.get("weeks")),
    )


def _assessment(item: dict, index: int) -> CourseAssessment:
    return CourseAssessment(
        type=to_string(item.get("type"), f"assessment_{index}"),
        date=to_string(item.get("date"), today_iso()),
    )


def _step(item: dict, index: int) -> HintStep | CheckStep | None:
    kind = item.get("kind")
    if kind == "hint":
        text = to_optional_string(item.get("text"))
        return HintStep(text=text) if text else None
    if kind == "check":
        expect = to_optional_string(item.get("expect"))
        return CheckStep(expect=expect) if expect else None
    return None


def _problem(item: dict, index: int) -> CourseProblem:
    guide = item.get("solutionGuide")
    return CourseProblem(
        id=to_string(item.get("id"), f"problem_{index}"),
        prompt=to_string(item.get("prompt"), "Problem prompt pending."),
        tags=to_string_list(item.get("tags")),
        difficulty=to_string(item.get("difficulty"), "medium"),
        solution_guide=SolutionGuide(
            steps=normalize_list(guide.get("steps") if is_plain_object(guide) else None, _step),
        ),
    )


def _problem_set(item: dict, index: int) -> CourseProblemSet:
    return CourseProblemSet(
        id=to_string(item.get("id"), f"problem_set_{index}"),
        title=to_string(item.get("title"), f"Problem Set {index}"),
        problems=normalize_list(item.get("problems"), _problem),
    )


def _resource(item: dict, index: int) -> CourseResource:
    return CourseResource(
        type=to_string(item.get("type"), "resource"),
        label=to_string(item.get("label"), f"Resource {index}"),
        href=to_optional_string(item.get("href")),
    )


def _visual(item: dict, index: int) -> CourseVisual:
    return CourseVisual(
        type=to_string(item.get("type"), "visual"),
        graph_id=to_string(item.get("graphId"), f"graph_{index}"),
    )


def _lesson(item: dict, index: int) -> CourseLesson:
    return CourseLesson(
        id=to_string(item.get("id"), f"lesson_{index}"),
        order=to_number(item.get("order"), index),
        title=to_string(item.get("title"), f"Lesson {index}"),
        objectives=to_string_list(item.get("objectives")),
        resources=normalize_list(item.get("resources"), _resource),
        visuals=normalize_list(item.get("visuals"), _visual),
        problem_sets=normalize_list(item.get("problemSets"), _problem_set),
    )


def _chapter(item: dict, index: int) -> CourseChapter:
    return CourseChapter(
        id=to_string(item.get("id"), f"chapter_{index}"),
        order=to_number(item.get("order"), index),
        title=to_string(item.get("title"), f"Chapter {index}"),
        start_date=to_string(item.get("startDate"), today_iso()),
        due_date=to_string(item.get("dueDate"), today_iso()),
        lessons=normalize_list(item.get("lessons"), _lesson),
    )


def _calendar_item(item: dict, index: int) -> CourseCalendarItem:
    return CourseCalendarItem(
        date=to_string(item.get("date"), today_iso()),
        type=to_string(item.get("type"), "lesson"),
        ref_id=to_string(item.get("refId"), f"ref_{index}"),
    )


# =============================================================================
# RECORD
# =============================================================================


def normalize_course_record(
    user_id: str,
    payload: Any,
    fallback: RecordFallback | None = None,
) -> CourseRecord | None:
    """
    Build a CourseRecord from an arbitrary JSON value.

    Args:
        user_id: Owner used when the payload has no userId
        payload: Decoded JSON (LLM reply or stored metadata)
        fallback: Optional id/title/created_at/updated_at defaults

    Returns:
        The normalized record, or None if payload is not a JSON object
    """
    if not is_plain_object(payload):
        return None

    fallback = fallback or {}
    created_fallback = fallback.get("created_at") or now_iso()
    updated_fallback = fallback.get("updated_at") or created_fallback
    id_fallback = fallback.get("id") or f"course_{int(time.time() * 1000)}"
    title_fallback = fallback.get("title") or DEFAULT_COURSE_TITLE

    syllabus = payload.get("syllabusExtract")
    syllabus = syllabus if is_plain_object(syllabus) else {}
    plan = payload.get("plan")
    plan = plan if is_plain_object(plan) else {}
    progress = payload.get("progress")
    progress = progress if is_plain_object(progress) else {}

    return CourseRecord(
        id=to_string(payload.get("id"), id_fallback),
        user_id=to_string(payload.get("userId"), user_id),
        title=to_string(payload.get("title"), title_fallback),
        source=normalize_source(payload.get("source")),
        syllabus_extract=SyllabusExtract(
            term=to_string(syllabus.get("term"), "Term TBD"),
            instructor=to_string(syllabus.get("instructor"), "Instructor TBD"),
            meeting_times=to_string_list(syllabus.get("meetingTimes")),
            topics=normalize_list(syllabus.get("topics"), _topic),
            assessments=normalize_list(syllabus.get("assessments"), _assessment),
        ),
        plan=CoursePlan(
            chapters=normalize_list(plan.get("chapters"), _chapter),
            calendar=normalize_list(plan.get("calendar"), _calendar_item),
        ),
        progress=CourseProgress(
            completion_pct=clamp(to_number(progress.get("completionPct"), 0), 0, 1),
            last_touched_at=to_string(progress.get("lastTouchedAt"), updated_fallback),
        ),
        created_at=to_string(payload.get("createdAt"), created_fallback),
        updated_at=to_string(payload.get("updatedAt"), updated_fallback),
    )


def _timestamp(value: Any) -> str | None:
    if isinstance(value, datetime):
        return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return None


def course_row_to_record(row: Course) -> CourseRecord | None:
    """Normalize a stored course row, using the row's columns as fallbacks."""
    created_at = _timestamp(row.created_at) or now_iso()
    updated_at = _timestamp(row.updated_at) or created_at

    return normalize_course_record(
        str(row.user_id),
        row.plan_metadata if row.plan_metadata is not None else {},
        {
            "id": str(row.id),
            "title": row.title or DEFAULT_COURSE_TITLE,
            "created_at": created_at,
            "updated_at": updated_at,
        },
    )


def require_course_record(row: Course) -> CourseRecord:
    """Like course_row_to_record but raises ValueError when metadata is unusable."""
    record = course_row_to_record(row)
    if record is None:
        logger.warning("Course %s has malformed metadata", row.id)
        raise ValueError("Course metadata missing or malformed.")
    return record
