"""
Locate a JSON object literal inside inline script text.

A plain find("}") over-/under-matches as soon as a string value contains a
brace, so the scan tracks quoting with a three-state machine:
NORMAL, IN_STRING and ESCAPE (the char after a backslash inside a string).
"""
from __future__ import annotations

from enum import Enum
from typing import Optional


class _State(str, Enum):
    NORMAL = "normal"
    IN_STRING = "in_string"
    ESCAPE = "escape"


QUOTE_CHARS = ('"', "'")


def find_object_end(source: str, start: int) -> Optional[int]:
    """
    source[start] must be "{". Returns the index of the matching "}" or None
    when the object is never closed.
    """
    if start < 0 or start >= len(source) or source[start] != "{":
        return None

    state = _State.NORMAL
    quote = ""
    depth = 0
    for i in range(start, len(source)):
        ch = source[i]
        if state is _State.ESCAPE:
            state = _State.IN_STRING
            continue
        if state is _State.IN_STRING:
            if ch == "\\":
                state = _State.ESCAPE
            elif ch == quote:
                state = _State.NORMAL
            continue

        if ch in QUOTE_CHARS:
            state = _State.IN_STRING
            quote = ch
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
    return None


def extract_json_object(source: str, marker: str) -> Optional[str]:
    """
    Return the text of the first balanced {...} that follows `marker`, e.g.
    extract_json_object(html, "TralbumData") for `var TralbumData = {...};`.
    """
    if not source or not marker:
        return None
    marker_index = source.find(marker)
    if marker_index == -1:
        return None
    start = source.find("{", marker_index)
    if start == -1:
        return None
    end = find_object_end(source, start)
    if end is None:
        return None
    return source[start:end + 1]
