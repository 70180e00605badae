"""
Compiled JSON field paths for sensor payloads

A sensor configured with ``decoded_payload.temperature`` or
``uplink.values[0]`` gets its path parsed once, when the configuration is
saved; a malformed path is rejected there instead of silently dropping every
message later on.
"""
from __future__ import annotations

import math
import re
from typing import Any, Optional, Tuple, Union

DEFAULT_FIELD_PATH = "value"

_KEY = re.compile(r"[A-Za-z_][A-Za-z0-9_\-]*")
_INDEX = re.compile(r"\[(\d+)\]")

Segment = Union[str, int]


class InvalidFieldPath(ValueError):
    """Raised when a field path expression cannot be compiled."""


class FieldPath:
    """A parsed ``key(.key|[index])*`` expression."""

    __slots__ = ("expression", "segments")

    def __init__(self, expression: str, segments: Tuple[Segment, ...]):
        self.expression = expression
        self.segments = segments

    @classmethod
    def compile(cls, expression: Optional[str]) -> "FieldPath":
        if expression is None:
            raise InvalidFieldPath("Field path is required")
        text = expression.strip()
        if not text:
            raise InvalidFieldPath("Field path is empty")

        segments = []
        pos = 0
        expect_key = True
        while pos < len(text):
            if expect_key:
                match = _KEY.match(text, pos)
                if not match:
                    raise InvalidFieldPath(f"Expected a key at position {pos} in '{text}'")
                segments.append(match.group(0))
                pos = match.end()
                expect_key = False
                continue

            char = text[pos]
            if char == ".":
                pos += 1
                expect_key = True
                if pos == len(text):
                    raise InvalidFieldPath(f"Field path '{text}' ends with '.'")
            elif char == "[":
                match = _INDEX.match(text, pos)
                if not match:
                    raise InvalidFieldPath(f"Malformed index at position {pos} in '{text}'")
                segments.append(int(match.group(1)))
                pos = match.end()
            else:
                raise InvalidFieldPath(f"Unexpected character '{char}' at position {pos} in '{text}'")

        return cls(text, tuple(segments))

    def resolve(self, payload: Any) -> Any:
        """Walk the payload; None when any segment is missing."""
        current = payload
        for segment in self.segments:
            if isinstance(segment, int):
                if not isinstance(current, list) or segment >= len(current):
                    return None
                current = current[segment]
            else:
                if not isinstance(current, dict) or segment not in current:
                    return None
                current = current[segment]
        return current

    def extract(self, payload: Any) -> Optional[float]:
        """Numeric value at the path, or None when absent or not a finite number."""
        return coerce_number(self.resolve(payload))

    def __eq__(self, other):
        return isinstance(other, FieldPath) and other.segments == self.segments

    def __hash__(self):
        return hash(self.segments)

    def __repr__(self):
        return f"FieldPath({self.expression!r})"


def coerce_number(raw: Any) -> Optional[float]:
    if isinstance(raw, bool) or raw is None:
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
    elif isinstance(raw, str):
        try:
            value = float(raw.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return value


def validate_field_path(expression: Optional[str]) -> Optional[str]:
    """Schema helper: None stays None, anything else must compile."""
    if expression is None:
        return None
    return FieldPath.compile(expression).expression
