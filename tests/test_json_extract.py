"""Tests for JSON object recovery from LLM replies."""

import pytest

from calcify.services.json_extract import (
    extract_json_from_text,
    find_balanced_object,
    parse_json_object,
)


def test_fenced_block_with_json_tag():
    assert extract_json_from_text('Notes: ```json\n{"a":1}\n```') == '{"a":1}'


def test_fenced_block_without_tag():
    assert extract_json_from_text('```\n{"b": 2}\n```') == '{"b": 2}'


def test_fence_tag_is_case_insensitive():
    assert extract_json_from_text('```JSON\n{"c": 3}\n```') == '{"c": 3}'


def test_bare_object_returned_verbatim():
    raw = '  {"title": "Calc", "nested": {"x": [1, 2]}}  '
    assert extract_json_from_text(raw) == '{"title": "Calc", "nested": {"x": [1, 2]}}'


def test_verbatim_object_is_not_validated():
    assert extract_json_from_text("{not json}") == "{not json}"


def test_brace_inside_string_is_ignored():
    assert extract_json_from_text('blah {"a": "contains } brace"} trailing') == '{"a": "contains } brace"}'


def test_escaped_quote_inside_string():
    raw = r'prefix {"a": "say \"}\" now", "b": 1} suffix'
    assert extract_json_from_text(raw) == r'{"a": "say \"}\" now", "b": 1}'


def test_first_balanced_object_wins():
    assert extract_json_from_text('one {"a": 1} two {"b": 2}') == '{"a": 1}'


def test_stray_closing_brace_before_object():
    assert find_balanced_object('} oops {"a": {"b": 1}} done') == '{"a": {"b": 1}}'


@pytest.mark.parametrize("raw", ["", "no braces here", '{"unterminated": 1', "```json\n```"])
def test_no_object_returns_none(raw):
    assert extract_json_from_text(raw) is None


def test_parse_json_object_decodes():
    assert parse_json_object('Sure!\n```json\n{"title": "Calc I"}\n```') == {"title": "Calc I"}


@pytest.mark.parametrize("raw", ["{not json}", "[1, 2, 3]", "plain text"])
def test_parse_json_object_rejects_non_objects(raw):
    assert parse_json_object(raw) is None
