"""Schemas for the course intake chat and its structured question protocol."""

from datetime import datetime
from typing import Literal

from pydantic import Field

from calcify.schemas.base import WireSchema


class ChatAttachment(WireSchema):
    """Uploaded file referenced by a chat message."""

    id: str
    original_name: str
    mime_type: str | None = None
    size_bytes: int
    created_at: datetime


class ChatMessage(WireSchema):
    """One turn of the intake transcript."""

    role: Literal["user", "assistant"]
    content: str
    attachments: list[ChatAttachment] | None = None
    saved_course_id: str | None = None


class QuestionOption(WireSchema):
    value: str
    label: str


class InfoQuestion(WireSchema):
    """A single question the assistant wants answered."""

    id: str
    prompt: str
    type: Literal["shortText", "longText", "choice"] = "longText"
    placeholder: str | None = None
    helper: str | None = None
    required: bool = False
    options: list[QuestionOption] | None = None


class StructuredInfoRequest(WireSchema):
    """Assistant-to-learner question set, carried in a request envelope."""

    request_id: str
    title: str
    intro: str | None = None
    questions: list[InfoQuestion] = Field(min_length=1)


class InfoAnswer(WireSchema):
    id: str
    prompt: str | None = None
    response: str


class StructuredInfoResponse(WireSchema):
    """Learner answers to a StructuredInfoRequest, carried in a response envelope."""

    request_id: str
    title: str | None = None
    answers: list[InfoAnswer] = Field(min_length=1)


class CourseSummary(WireSchema):
    """Short description of a course the assistant just produced."""

    title: str
    term: str | None = None
    instructor: str | None = None


# Request schemas
class IntakeMessageRequest(WireSchema):
    """Full transcript so far; the last message is the learner's new turn."""

    history: list[ChatMessage] = Field(..., min_length=1)


# Response schemas
class IntakeReply(WireSchema):
    """Assistant reply plus the structured bits a client needs to render it."""

    message: ChatMessage
    display_text: str
    info_request: StructuredInfoRequest | None = None
    course_summary: CourseSummary | None = None

