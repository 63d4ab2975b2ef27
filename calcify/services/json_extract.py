"""Recover a JSON object from free-form LLM output."""

import json
import re
from enum import Enum

# Fenced block anywhere in the reply, optionally tagged json
_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)


class ScanState(str, Enum):
    """Lexer state while scanning for a balanced object."""

    NORMAL = "normal"
    IN_STRING = "in_string"
    IN_STRING_ESCAPE = "in_string_escape"


def _step(state: ScanState, char: str) -> ScanState:
    """Advance the string-literal state machine by one character."""
    if state is ScanState.IN_STRING_ESCAPE:
        return ScanState.IN_STRING
    if state is ScanState.IN_STRING:
        if char == "\\":
            return ScanState.IN_STRING_ESCAPE
        if char == '"':
            return ScanState.NORMAL
        return ScanState.IN_STRING
    if char == '"':
        return ScanState.IN_STRING
    return ScanState.NORMAL


def find_balanced_object(text: str) -> str | None:
    """
    Return the first top-level, brace-balanced {...} span in text.

    Braces inside string literals are ignored, including after escaped quotes.
    A stray closing brace before any opening one is skipped.
    """
    state = ScanState.NORMAL
    depth = 0
    start = -1

    for index, char in enumerate(text):
        if state is not ScanState.NORMAL or char == '"':
            state = _step(state, char)
            continue

        if char == "{":
            if depth == 0:
                start = index
            depth += 1
        elif char == "}" and depth > 0:
            depth -= 1
            if depth == 0 and start != -1:
                return text[start:index + 1].strip()

    return None


def extract_json_from_text(raw: str) -> str | None:
    """
    Pull a JSON object candidate out of an LLM reply.

    Prefers the content of a fenced code block when present, returns the text
    verbatim when it already looks like a single object, and otherwise scans
    for the first balanced object. The result is not parsed.

    Example:
        >>> extract_json_from_text('Here you go:\\n```json\\n{"a": 1}\\n```')
        '{"a": 1}'
    """
    trimmed = raw.strip()
    fenced = _FENCE.search(trimmed)
    candidate = (fenced.group(1) if fenced else trimmed).strip()

    if candidate.startswith("{") and candidate.endswith("}"):
        return candidate

    return find_balanced_object(candidate)


def parse_json_object(raw: str) -> dict | None:
    """Extract and decode a JSON object, or None if there is no decodable object."""
    candidate = extract_json_from_text(raw)
    if candidate is None:
        return None
    try:
        value = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, dict) else None
