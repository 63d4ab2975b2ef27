"""
Structured payloads embedded in chat text.

The assistant asks for details with

    <calcify:request>{...}</calcify:request>

and the learner's answers travel back as

    <calcify:response>{...}</calcify:response>

Delimiters are literal and case-sensitive, and only the first envelope in a
message counts. Anything that does not decode to a valid payload is treated as
plain text, so callers can always fall back to showing the raw message.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from calcify.schemas.intake import (
    InfoAnswer,
    InfoQuestion,
    QuestionOption,
    StructuredInfoRequest,
    StructuredInfoResponse,
)

logger = logging.getLogger(__name__)

REQUEST_PREFIX = "<calcify:request>"
REQUEST_SUFFIX = "</calcify:request>"
RESPONSE_PREFIX = "<calcify:response>"
RESPONSE_SUFFIX = "</calcify:response>"

_QUESTION_TYPES = ("shortText", "longText", "choice")

PayloadT = TypeVar("PayloadT")


@dataclass(frozen=True)
class ParsedEnvelope(Generic[PayloadT]):
    """A decoded envelope plus the prose around it."""

    payload: PayloadT
    before: str
    after: str

    @property
    def remainder(self) -> str:
        """Human-visible text: the non-empty parts around the envelope, blank-line separated."""
        parts = [part for part in (self.before.strip(), self.after.strip()) if part]
        return "\n\n".join(parts)


def parse_envelope(text: str, prefix: str, suffix: str) -> ParsedEnvelope[Any] | None:
    """
    Locate and JSON-decode the first prefix/suffix span in text.

    Returns None when either delimiter is missing, the span is blank, or the
    span is not valid JSON.
    """
    start = text.find(prefix)
    if start == -1:
        return None

    body_start = start + len(prefix)
    end = text.find(suffix, body_start)
    if end == -1:
        return None

    body = text[body_start:end].strip()
    if not body:
        return None

    try:
        payload = json.loads(body)
    except json.JSONDecodeError:
        logger.debug("Envelope %s carried invalid JSON", prefix)
        return None

    return ParsedEnvelope(
        payload=payload,
        before=text[:start],
        after=text[end + len(suffix):],
    )


def _non_empty(value: Any) -> str | None:
    return value if isinstance(value, str) and value.strip() else None


def _coerce_options(value: Any) -> list[QuestionOption]:
    if not isinstance(value, list):
        return []
    options = []
    for item in value:
        if not isinstance(item, dict):
            continue
        if isinstance(item.get("value"), str) and isinstance(item.get("label"), str):
            options.append(QuestionOption(value=item["value"], label=item["label"]))
    return options


def _coerce_question(value: Any) -> InfoQuestion | None:
    if not isinstance(value, dict):
        return None

    question_id = _non_empty(value.get("id"))
    prompt = _non_empty(value.get("prompt"))
    if question_id is None or prompt is None:
        return None

    question_type = value.get("type")
    if question_type not in _QUESTION_TYPES:
        question_type = "longText"

    options = _coerce_options(value.get("options")) if question_type == "choice" else []
    if question_type == "choice" and not options:
        # A choice with nothing to choose from can only be answered as text
        question_type = "longText"

    return InfoQuestion(
        id=question_id,
        prompt=prompt,
        type=question_type,
        placeholder=_non_empty(value.get("placeholder")),
        helper=_non_empty(value.get("helper")),
        required=value.get("required") is True,
        options=options or None,
    )


def _coerce_request(payload: Any) -> StructuredInfoRequest | None:
    if not isinstance(payload, dict):
        return None

    request_id = _non_empty(payload.get("requestId"))
    title = _non_empty(payload.get("title"))
    if request_id is None or title is None:
        return None

    raw_questions = payload.get("questions")
    if not isinstance(raw_questions, list):
        return None
    questions = [q for q in (_coerce_question(item) for item in raw_questions) if q is not None]
    if not questions:
        return None

    return StructuredInfoRequest(
        request_id=request_id,
        title=title,
        intro=_non_empty(payload.get("intro")),
        questions=questions,
    )


def _coerce_response(payload: Any) -> StructuredInfoResponse | None:
    if not isinstance(payload, dict):
        return None

    request_id = _non_empty(payload.get("requestId"))
    if request_id is None:
        return None

    raw_answers = payload.get("answers")
    if not isinstance(raw_answers, list):
        return None

    answers = []
    for item in raw_answers:
        if not isinstance(item, dict):
            continue
        answer_id = _non_empty(item.get("id"))
        response = item.get("response")
        if answer_id is None or not isinstance(response, str):
            continue
        prompt = item.get("prompt")
        answers.append(
            InfoAnswer(
                id=answer_id,
                prompt=prompt if isinstance(prompt, str) else None,
                response=response,
            )
        )
    if not answers:
        return None

    title = payload.get("title")
    return StructuredInfoResponse(
        request_id=request_id,
        title=title if isinstance(title, str) else None,
        answers=answers,
    )


def parse_info_request(text: str) -> ParsedEnvelope[StructuredInfoRequest] | None:
    """Decode the first request envelope in text, or None if there is no valid one."""
    parsed = parse_envelope(text, REQUEST_PREFIX, REQUEST_SUFFIX)
    if parsed is None:
        return None

    request = _coerce_request(parsed.payload)
    if request is None:
        logger.debug("Ignoring structurally invalid info request envelope")
        return None

    return ParsedEnvelope(payload=request, before=parsed.before, after=parsed.after)


def parse_info_response(text: str) -> ParsedEnvelope[StructuredInfoResponse] | None:
    """Decode the first response envelope in text, or None if there is no valid one."""
    parsed = parse_envelope(text, RESPONSE_PREFIX, RESPONSE_SUFFIX)
    if parsed is None:
        return None

    response = _coerce_response(parsed.payload)
    if response is None:
        logger.debug("Ignoring structurally invalid info response envelope")
        return None

    return ParsedEnvelope(payload=response, before=parsed.before, after=parsed.after)


def encode_info_request(request: StructuredInfoRequest) -> str:
    return f"{REQUEST_PREFIX}{json.dumps(request.to_wire())}{REQUEST_SUFFIX}"


def encode_info_response(response: StructuredInfoResponse) -> str:
    return f"{RESPONSE_PREFIX}{json.dumps(response.to_wire())}{RESPONSE_SUFFIX}"


def display_text(text: str) -> str:
    """Text to show for a chat message, with any envelope stripped out."""
    parsed = parse_info_request(text) or parse_info_response(text)
    if parsed is None:
        return text
    return parsed.remainder
