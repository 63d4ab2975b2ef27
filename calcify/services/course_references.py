"""Lookup tables and labels for rendering a course plan."""

from dataclasses import dataclass, field

from calcify.schemas.course_record import (
    CourseCalendarItem,
    CourseChapter,
    CourseRecord,
    CourseSource,
    UploadSource,
)


@dataclass(frozen=True)
class LessonRef:
    title: str
    chapter_title: str


@dataclass(frozen=True)
class ProblemSetRef:
    title: str
    lesson_title: str
    chapter_title: str


@dataclass
class ReferenceMaps:
    """Calendar refId targets, keyed by lesson or problem-set id."""

    lessons: dict[str, LessonRef] = field(default_factory=dict)
    problem_sets: dict[str, ProblemSetRef] = field(default_factory=dict)


def build_reference_maps(course: CourseRecord) -> ReferenceMaps:
    """Index every lesson and problem set in the plan by id. Later duplicates win."""
    maps = ReferenceMaps()
    for chapter in course.plan.chapters:
        for lesson in chapter.lessons:
            maps.lessons[lesson.id] = LessonRef(title=lesson.title, chapter_title=chapter.title)
            for problem_set in lesson.problem_sets:
                maps.problem_sets[problem_set.id] = ProblemSetRef(
                    title=problem_set.title,
                    lesson_title=lesson.title,
                    chapter_title=chapter.title,
                )
    return maps


def describe_calendar_item(item: CourseCalendarItem, maps: ReferenceMaps) -> str:
    lesson = maps.lessons.get(item.ref_id)
    if lesson is not None:
        return f"{lesson.title} - {lesson.chapter_title}"
    problem_set = maps.problem_sets.get(item.ref_id)
    if problem_set is not None:
        return f"{problem_set.title} - {problem_set.lesson_title}"
    return item.ref_id


def chapter_calendar(course: CourseRecord, chapter: CourseChapter) -> list[CourseCalendarItem]:
    """Calendar entries that point at a lesson or problem set inside chapter."""
    ids = set()
    for lesson in chapter.lessons:
        ids.add(lesson.id)
        ids.update(problem_set.id for problem_set in lesson.problem_sets)
    return [item for item in course.plan.calendar if item.ref_id in ids]


def find_chapter(course: CourseRecord, chapter_id: str) -> CourseChapter | None:
    return next((chapter for chapter in course.plan.chapters if chapter.id == chapter_id), None)


def format_weeks(weeks: list[int | float]) -> str:
    if not weeks:
        return "Weeks TBD"

    ordered = sorted(weeks)
    labels = [f"{week:g}" for week in ordered]
    if len(ordered) == 1:
        return f"Week {labels[0]}"

    consecutive = all(ordered[i] == ordered[i - 1] + 1 for i in range(1, len(ordered)))
    if consecutive:
        return f"Weeks {labels[0]}-{labels[-1]}"
    return f"Weeks {', '.join(labels)}"


def describe_source(source: CourseSource | None) -> str:
    if source is None:
        return "Captured via chat conversation."
    if isinstance(source, UploadSource):
        return f"{source.original_name} ({source.mime_type})"
    return source.href
