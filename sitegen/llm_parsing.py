from __future__ import annotations

import json
import re
from typing import Any, Dict, Optional

_FENCED_JSON_RE = re.compile(r"```json\s*([\s\S]*?)\s*```", re.IGNORECASE)
_FENCED_ANY_RE = re.compile(r"```[a-zA-Z]*\s*([\s\S]*?)\s*```")
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_SMART_QUOTES = {"“": '"', "”": '"', "‘": "'", "’": "'"}


class MalformedResponseError(ValueError):
    """Model output could not be turned into a JSON object."""

    def __init__(self, message: str, raw: str = "") -> None:
        super().__init__(message)
        self.raw = raw


def _balanced_object_slice(s: str) -> Optional[str]:
    """First top-level ``{...}`` span, ignoring braces inside strings."""
    in_str = False
    esc = False
    depth = 0
    start = -1
    for i, ch in enumerate(s):
        if in_str:
            if esc:
                esc = False
            elif ch == "\\":
                esc = True
            elif ch == '"':
                in_str = False
            continue
        if ch == '"':
            in_str = True
        elif ch == "{":
            if depth == 0:
                start = i
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0 and start != -1:
                return s[start : i + 1]
    return None


def strip_code_fences(text: str) -> str:
    """Return the body of the first fenced block, preferring ```json fences."""
    t = (text or "").strip()
    m = _FENCED_JSON_RE.search(t) or _FENCED_ANY_RE.search(t)
    return m.group(1).strip() if m else t


def repair_json(text: str) -> str:
    """Drop trailing commas and normalize typographic quotes."""
    s = _TRAILING_COMMA_RE.sub(r"\1", text)
    for smart, plain in _SMART_QUOTES.items():
        s = s.replace(smart, plain)
    return s


def _loads_with_repair(candidate: str) -> Any:
    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        return json.loads(repair_json(candidate))


def json_from_text(text: str, context: str = "model response") -> Dict[str, Any]:
    """Extract a JSON object from raw model text.

    Strategy:
    - take the body of a fenced block if one is present;
    - otherwise the first balanced {...} span;
    - parse; on failure run one repair pass (trailing commas, smart
      quotes) and parse again;
    - if that fails too, retry both on the first balanced {...} span,
      which drops prose trailing an object;
    - raise MalformedResponseError if that still fails or the result is
      not an object.
    """
    raw = text or ""
    candidate = strip_code_fences(raw)
    if not candidate.startswith("{"):
        candidate = _balanced_object_slice(candidate) or candidate
    if not candidate.strip():
        raise MalformedResponseError(f"Empty {context}", raw)
    try:
        data = _loads_with_repair(candidate)
    except json.JSONDecodeError as exc:
        sliced = _balanced_object_slice(candidate)
        if not sliced or sliced == candidate:
            raise MalformedResponseError(
                f"Invalid JSON in {context}. The AI response was malformed.", raw
            ) from exc
        try:
            data = _loads_with_repair(sliced)
        except json.JSONDecodeError as inner:
            raise MalformedResponseError(
                f"Invalid JSON in {context}. The AI response was malformed.", raw
            ) from inner
    if not isinstance(data, dict):
        raise MalformedResponseError(f"Expected a JSON object in {context}", raw)
    return data


def lowercase_keys(obj: Any) -> Any:
    """Recursively lowercase every mapping key; lists are walked, scalars kept."""
    if isinstance(obj, list):
        return [lowercase_keys(v) for v in obj]
    if isinstance(obj, dict):
        return {str(k).lower(): lowercase_keys(v) for k, v in obj.items()}
    return obj
