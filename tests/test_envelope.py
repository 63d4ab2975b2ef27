"""Tests for the request/response envelope codec."""

import json

import pytest

from calcify.schemas.intake import (
    InfoAnswer,
    InfoQuestion,
    QuestionOption,
    StructuredInfoRequest,
    StructuredInfoResponse,
)
from calcify.services.envelope import (
    REQUEST_PREFIX,
    REQUEST_SUFFIX,
    display_text,
    encode_info_request,
    encode_info_response,
    parse_envelope,
    parse_info_request,
    parse_info_response,
)


def _request_text(payload: dict, before: str = "", after: str = "") -> str:
    return f"{before}{REQUEST_PREFIX}{json.dumps(payload)}{REQUEST_SUFFIX}{after}"


SAMPLE_REQUEST = {
    "requestId": "course_basics",
    "title": "A few details",
    "intro": "I need these to size the plan.",
    "questions": [
        {"id": "term", "prompt": "Which term?", "type": "shortText", "required": True},
        {
            "id": "pace",
            "prompt": "Preferred pace?",
            "type": "choice",
            "options": [{"value": "steady", "label": "Steady"}, {"value": "fast", "label": "Fast"}],
        },
    ],
}


class TestParseEnvelope:
    def test_no_prefix_returns_none(self):
        assert parse_info_request("Just a normal reply with {json} in it.") is None

    def test_missing_suffix_returns_none(self):
        assert parse_envelope(f"{REQUEST_PREFIX}{{}}", REQUEST_PREFIX, REQUEST_SUFFIX) is None

    def test_blank_body_returns_none(self):
        assert parse_envelope(f"{REQUEST_PREFIX}   {REQUEST_SUFFIX}", REQUEST_PREFIX, REQUEST_SUFFIX) is None

    def test_invalid_json_returns_none(self):
        assert parse_envelope(f"{REQUEST_PREFIX}{{not json{REQUEST_SUFFIX}", REQUEST_PREFIX, REQUEST_SUFFIX) is None

    def test_delimiters_are_case_sensitive(self):
        text = f"<CALCIFY:REQUEST>{json.dumps(SAMPLE_REQUEST)}</CALCIFY:REQUEST>"
        assert parse_info_request(text) is None

    def test_only_first_envelope_counts(self):
        second = {**SAMPLE_REQUEST, "requestId": "second"}
        text = _request_text(SAMPLE_REQUEST) + " and " + _request_text(second)
        parsed = parse_info_request(text)
        assert parsed.payload.request_id == "course_basics"

    def test_remainder_joins_surrounding_text(self):
        parsed = parse_info_request(_request_text(SAMPLE_REQUEST, before="  Intro text \n", after="\n Outro "))
        assert parsed.before == "  Intro text \n"
        assert parsed.remainder == "Intro text\n\nOutro"

    def test_remainder_empty_without_prose(self):
        parsed = parse_info_request(_request_text(SAMPLE_REQUEST))
        assert parsed.remainder == ""


class TestRequestCoercion:
    def test_valid_request_decodes(self):
        request = parse_info_request(_request_text(SAMPLE_REQUEST)).payload
        assert request.request_id == "course_basics"
        assert request.intro == "I need these to size the plan."
        assert [q.id for q in request.questions] == ["term", "pace"]
        assert request.questions[0].required is True
        assert request.questions[1].options == [
            QuestionOption(value="steady", label="Steady"),
            QuestionOption(value="fast", label="Fast"),
        ]

    def test_unknown_type_becomes_long_text(self):
        payload = {**SAMPLE_REQUEST, "questions": [{"id": "q", "prompt": "Tell me", "type": "essay"}]}
        question = parse_info_request(_request_text(payload)).payload.questions[0]
        assert question.type == "longText"

    def test_required_only_when_literally_true(self):
        payload = {**SAMPLE_REQUEST, "questions": [{"id": "q", "prompt": "Tell me", "required": "yes"}]}
        question = parse_info_request(_request_text(payload)).payload.questions[0]
        assert question.required is False

    def test_choice_without_valid_options_becomes_long_text(self):
        payload = {
            **SAMPLE_REQUEST,
            "questions": [{"id": "q", "prompt": "Pick", "type": "choice", "options": [{"value": 1}]}],
        }
        question = parse_info_request(_request_text(payload)).payload.questions[0]
        assert question.type == "longText"
        assert question.options is None

    def test_invalid_questions_are_dropped(self):
        payload = {
            **SAMPLE_REQUEST,
            "questions": [{"id": "", "prompt": "No id"}, "junk", {"id": "ok", "prompt": "Fine"}],
        }
        request = parse_info_request(_request_text(payload)).payload
        assert [q.id for q in request.questions] == ["ok"]

    @pytest.mark.parametrize(
        "payload",
        [
            {**SAMPLE_REQUEST, "requestId": ""},
            {**SAMPLE_REQUEST, "title": None},
            {**SAMPLE_REQUEST, "questions": []},
            {**SAMPLE_REQUEST, "questions": [{"prompt": "no id"}]},
            ["not", "an", "object"],
        ],
    )
    def test_structurally_invalid_request_is_plain_text(self, payload):
        text = _request_text(payload)
        assert parse_info_request(text) is None
        assert display_text(text) == text


class TestRoundTrip:
    def test_request_reencodes_to_same_object(self):
        text = _request_text(SAMPLE_REQUEST)
        request = parse_info_request(text).payload
        again = parse_info_request(encode_info_request(request)).payload
        assert again == request

    def test_encoded_request_uses_camel_case_keys(self):
        request = StructuredInfoRequest(
            request_id="r1",
            title="T",
            questions=[InfoQuestion(id="q", prompt="P")],
        )
        body = encode_info_request(request)[len(REQUEST_PREFIX):-len(REQUEST_SUFFIX)]
        assert json.loads(body) == {
            "requestId": "r1",
            "title": "T",
            "questions": [{"id": "q", "prompt": "P", "type": "longText", "required": False}],
        }

    def test_response_round_trip(self):
        response = StructuredInfoResponse(
            request_id="r1",
            title="Details",
            answers=[InfoAnswer(id="term", prompt="Which term?", response="Fall 2025")],
        )
        parsed = parse_info_response("Here you go " + encode_info_response(response))
        assert parsed.payload == response
        assert parsed.remainder == "Here you go"

    def test_response_without_valid_answers_is_rejected(self):
        text = '<calcify:response>{"requestId": "r1", "answers": [{"id": "x"}]}</calcify:response>'
        assert parse_info_response(text) is None


class TestDisplayText:
    def test_plain_text_unchanged(self):
        assert display_text("Hello there") == "Hello there"

    def test_strips_request_envelope(self):
        text = _request_text(SAMPLE_REQUEST, before="Let me ask a few things.\n")
        assert display_text(text) == "Let me ask a few things."

    def test_strips_response_envelope(self):
        text = '<calcify:response>{"requestId": "r1", "answers": [{"id": "a", "response": "b"}]}</calcify:response>'
        assert display_text(text) == ""
