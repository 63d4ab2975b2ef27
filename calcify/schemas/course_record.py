"""Normalized course plan record and its nested entities."""

from typing import Annotated, Literal, Union

from pydantic import Field

from calcify.schemas.base import WireSchema


class UploadSource(WireSchema):
    """Plan derived from an uploaded file."""

    type: Literal["upload"] = "upload"
    file_id: str
    original_name: str
    mime_type: str


class LinkSource(WireSchema):
    """Plan derived from a catalog entry or an external link."""

    type: Literal["catalog", "link"]
    href: str


CourseSource = Annotated[Union[UploadSource, LinkSource], Field(discriminator="type")]


class CourseTopic(WireSchema):
    order: int | float
    label: str
    weeks: list[int | float] = Field(default_factory=list)


class CourseAssessment(WireSchema):
    type: str
    date: str


class CourseResource(WireSchema):
    type: str
    label: str
    href: str | None = None


class CourseVisual(WireSchema):
    type: str
    graph_id: str


class HintStep(WireSchema):
    kind: Literal["hint"] = "hint"
    text: str


class CheckStep(WireSchema):
    kind: Literal["check"] = "check"
    expect: str


CourseProblemStep = Annotated[Union[HintStep, CheckStep], Field(discriminator="kind")]


class SolutionGuide(WireSchema):
    steps: list[CourseProblemStep] = Field(default_factory=list)


class CourseProblem(WireSchema):
    id: str
    prompt: str
    tags: list[str] = Field(default_factory=list)
    difficulty: str
    solution_guide: SolutionGuide = Field(default_factory=SolutionGuide)


class CourseProblemSet(WireSchema):
    id: str
    title: str
    problems: list[CourseProblem] = Field(default_factory=list)


class CourseLesson(WireSchema):
    id: str
    order: int | float
    title: str
    objectives: list[str] = Field(default_factory=list)
    resources: list[CourseResource] = Field(default_factory=list)
    visuals: list[CourseVisual] = Field(default_factory=list)
    problem_sets: list[CourseProblemSet] = Field(default_factory=list)


class CourseChapter(WireSchema):
    id: str
    order: int | float
    title: str
    start_date: str
    due_date: str
    lessons: list[CourseLesson] = Field(default_factory=list)


class CourseCalendarItem(WireSchema):
    date: str
    type: str
    ref_id: str


class CoursePlan(WireSchema):
    chapters: list[CourseChapter] = Field(default_factory=list)
    calendar: list[CourseCalendarItem] = Field(default_factory=list)


class CourseProgress(WireSchema):
    completion_pct: float = Field(0.0, ge=0.0, le=1.0)
    last_touched_at: str


class SyllabusExtract(WireSchema):
    term: str
    instructor: str
    meeting_times: list[str] = Field(default_factory=list)
    topics: list[CourseTopic] = Field(default_factory=list)
    assessments: list[CourseAssessment] = Field(default_factory=list)


class CourseRecord(WireSchema):
    """
    Canonical course plan.

    Built only by the normalizer, so every nested list holds validated items
    and every scalar has a value.
    """

    id: str
    user_id: str
    title: str
    source: CourseSource | None = None
    syllabus_extract: SyllabusExtract
    plan: CoursePlan
    progress: CourseProgress
    created_at: str
    updated_at: str

    def to_wire(self) -> dict:
        # Resource hrefs stay explicit nulls; only an absent source is omitted.
        data = self.model_dump(mode="json", by_alias=True)
        if data.get("source") is None:
            data.pop("source", None)
        return data
