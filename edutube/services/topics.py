from __future__ import annotations

import re

DEFAULT_TOPIC = "General"

_BOLD_RE = re.compile(r"\*\*([^*]+?)\*\*")

# "Key concepts", "## Key Concepts:", "**Key concept**" ...
_KEY_CONCEPTS_HEADING_RE = re.compile(r"^\s*(?:#+\s*)?(?:\*\*)?\s*key\s*concepts?\b.*$", re.IGNORECASE | re.MULTILINE)
_SECTION_HEADING_RE = re.compile(r"^\s*(?:#+\s+|\*\*[^*]+\*\*\s*:?\s*$)")

# "- Entropy: ...", "Gradient Descent - ...", "Backpropagation"
_CONCEPT_LINE_RE = re.compile(r"^(?:[-*•]\s+)?([A-Z][A-Za-z0-9()\-_/ \t]{2,}?)(?::|\s+—|\s+-|\s+–|$)")
_TRAILING_PAREN_RE = re.compile(r"\s+\(.*\)$")

_CAPITALIZED_PHRASE_RE = re.compile(r"\b([A-Z][A-Za-z0-9\-_/]{3,}(?:[ \t]+[A-Z][A-Za-z0-9\-_/]{2,}){0,3})\b")


def _key_concepts_block(summary: str) -> list[str]:
    m = _KEY_CONCEPTS_HEADING_RE.search(summary)
    if not m:
        return []

    lines: list[str] = []
    for line in summary[m.end():].splitlines():
        if not line.strip():
            if lines:
                break
            continue
        if _SECTION_HEADING_RE.match(line):
            break
        lines.append(line.strip())
    return lines


def extract_topics(summary: str, max_topics: int) -> list[str]:
    """
    Topic labels from a generated summary, in order of discovery:
    bold spans, then entries of a "Key concepts" section, then capitalized phrases.
    """
    topics: list[str] = []
    if max_topics <= 0 or not summary:
        return topics

    def add(t: str) -> bool:
        if t and t not in topics:
            topics.append(t)
        return len(topics) >= max_topics

    for m in _BOLD_RE.finditer(summary):
        t = m.group(1).strip().rstrip(":").strip()
        if len(t) <= 2 or _KEY_CONCEPTS_HEADING_RE.fullmatch(t):
            continue
        if add(t):
            return topics

    for line in _key_concepts_block(summary):
        m = _CONCEPT_LINE_RE.match(line)
        if not m:
            continue
        cleaned = _TRAILING_PAREN_RE.sub("", m.group(1).strip()).strip()
        if add(cleaned):
            return topics

    for m in _CAPITALIZED_PHRASE_RE.finditer(summary):
        if add(m.group(1).strip()):
            return topics

    return topics
