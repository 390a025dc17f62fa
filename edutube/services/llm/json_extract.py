from __future__ import annotations

import json
import re
from typing import Any

_OPEN_FENCE_RE = re.compile(r"^\s*```(?:json)?[ \t]*\n?", re.IGNORECASE)
_CLOSE_FENCE_RE = re.compile(r"\n?[ \t]*```\s*$")


def strip_code_fences(text: str) -> str:
    """Drop a leading and a trailing markdown fence; fences inside the payload are kept."""
    text = _OPEN_FENCE_RE.sub("", text or "", count=1)
    return _CLOSE_FENCE_RE.sub("", text, count=1).strip()


def _balanced_block(text: str, open_ch: str, close_ch: str) -> str | None:
    """First balanced open..close block, ignoring brackets inside JSON strings."""
    start = text.find(open_ch)
    while start >= 0:
        depth = 0
        in_str = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_str:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_str = False
                continue
            if ch == '"':
                in_str = True
            elif ch == open_ch:
                depth += 1
            elif ch == close_ch:
                depth -= 1
                if depth == 0:
                    return text[start : i + 1]
        # unbalanced from here; try the next opener
        start = text.find(open_ch, start + 1)
    return None


def extract_json_object(text: str) -> dict[str, Any]:
    """
    Parse the first balanced {...} block out of model output
    (tolerates markdown fences and chatter around it).
    """
    cleaned = strip_code_fences(text)
    if not cleaned:
        raise ValueError("Empty response from model")

    block = _balanced_block(cleaned, "{", "}")
    if block is None:
        raise ValueError(f"No JSON object found in model output. First 200 chars: {cleaned[:200]!r}")

    parsed = json.loads(block)
    if not isinstance(parsed, dict):
        raise ValueError("Model output JSON is not an object")
    return parsed


def extract_json_array(text: str) -> list[Any]:
    cleaned = strip_code_fences(text)
    if not cleaned:
        raise ValueError("Empty response from model")

    block = _balanced_block(cleaned, "[", "]")
    if block is None:
        raise ValueError(f"No JSON array found in model output. First 200 chars: {cleaned[:200]!r}")

    parsed = json.loads(block)
    if not isinstance(parsed, list):
        raise ValueError("Model output JSON is not an array")
    return parsed
