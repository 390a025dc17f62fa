from __future__ import annotations

import re
from typing import Iterable

from edutube.services.retrieval import SearchHit
from edutube.services.segments import format_timestamp


def _clean_text(text: str) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


def hit_line(hit: SearchHit) -> str:
    start = format_timestamp(hit.start_sec)
    end = format_timestamp(hit.end_sec)
    return f"- [{start}–{end}] {_clean_text(hit.text) or '(segment)'}"


def build_context(hits: Iterable[SearchHit], max_chars: int) -> str:
    """
    Render hits (in their given order) as timestamped lines.
    A line that would push the total past max_chars is dropped, and so is everything after it.
    """
    lines: list[str] = []
    total = 0
    for h in hits:
        line = hit_line(h)
        added = len(line) + (1 if lines else 0)
        if total + added > max_chars:
            break
        lines.append(line)
        total += added
    return "\n".join(lines)
