"""Tests for calendar labels and plan lookups."""

import pytest

from calcify.schemas.course_record import CourseCalendarItem, LinkSource, UploadSource
from calcify.services.course_normalizer import normalize_course_record
from calcify.services.course_references import (
    build_reference_maps,
    chapter_calendar,
    describe_calendar_item,
    describe_source,
    find_chapter,
    format_weeks,
)


@pytest.fixture
def course():
    return normalize_course_record(
        "user_1",
        {
            "title": "Calculus I",
            "plan": {
                "chapters": [
                    {
                        "id": "ch_limits",
                        "title": "Limits",
                        "lessons": [
                            {
                                "id": "les_def",
                                "title": "Definition of a Limit",
                                "problemSets": [{"id": "ps_1", "title": "Limits Basics"}],
                            }
                        ],
                    },
                    {
                        "id": "ch_derivs",
                        "title": "Derivatives",
                        "lessons": [{"id": "les_rules", "title": "Power Rule"}],
                    },
                ],
                "calendar": [
                    {"date": "2025-08-27", "type": "lesson", "refId": "les_def"},
                    {"date": "2025-09-03", "type": "problemSetDue", "refId": "ps_1"},
                    {"date": "2025-09-10", "type": "lesson", "refId": "les_rules"},
                    {"date": "2025-09-12", "type": "exam", "refId": "midterm"},
                ],
            },
        },
    )


def test_reference_maps(course):
    maps = build_reference_maps(course)
    assert set(maps.lessons) == {"les_def", "les_rules"}
    assert maps.lessons["les_def"].chapter_title == "Limits"
    assert maps.problem_sets["ps_1"].lesson_title == "Definition of a Limit"


def test_calendar_labels(course):
    maps = build_reference_maps(course)
    labels = [describe_calendar_item(item, maps) for item in course.plan.calendar]
    assert labels == [
        "Definition of a Limit - Limits",
        "Limits Basics - Definition of a Limit",
        "Power Rule - Derivatives",
        "midterm",
    ]


def test_chapter_calendar_filters_to_chapter(course):
    chapter = find_chapter(course, "ch_limits")
    assert [item.ref_id for item in chapter_calendar(course, chapter)] == ["les_def", "ps_1"]


def test_find_chapter_missing(course):
    assert find_chapter(course, "nope") is None


def test_unknown_ref_id_is_raw():
    maps = build_reference_maps(normalize_course_record("user_1", {}))
    item = CourseCalendarItem(date="2025-01-01", type="lesson", ref_id="x")
    assert describe_calendar_item(item, maps) == "x"


@pytest.mark.parametrize(
    "weeks, expected",
    [
        ([], "Weeks TBD"),
        ([3], "Week 3"),
        ([3, 1, 2], "Weeks 1-3"),
        ([1, 3, 5], "Weeks 1, 3, 5"),
        ([1.5], "Week 1.5"),
    ],
)
def test_format_weeks(weeks, expected):
    assert format_weeks(weeks) == expected


def test_describe_source():
    assert describe_source(None) == "Captured via chat conversation."
    assert describe_source(LinkSource(type="link", href="https://example.com")) == "https://example.com"
    upload = UploadSource(file_id="f", original_name="syllabus.pdf", mime_type="application/pdf")
    assert describe_source(upload) == "syllabus.pdf (application/pdf)"
