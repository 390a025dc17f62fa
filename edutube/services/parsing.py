"""
Turn raw model JSON items into study dataclasses.

Each parser returns None for an item whose required fields are missing or
malformed; optional fields fall back to documented defaults.
"""
from __future__ import annotations

import re
from typing import Any

from edutube.services.materials import (
    CHOICE_IDS,
    DIFFICULTIES,
    QUESTION_TYPES,
    Flashcard,
    McqQuestion,
    QuizChoice,
    QuizQuestion,
)

_MMSS_RE = re.compile(r"^\d{2}:\d{2}$")


def _text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _difficulty(value: Any) -> str:
    return value if value in DIFFICULTIES else "medium"


def _timestamp(value: Any) -> str | None:
    if isinstance(value, str) and _MMSS_RE.match(value.strip()):
        return value.strip()
    return None


def parse_flashcard(raw: Any, default_topic: str) -> Flashcard | None:
    if not isinstance(raw, dict):
        return None
    question = _text(raw.get("question"))
    answer = _text(raw.get("answer"))
    if not question or not answer:
        return None
    return Flashcard(
        question=question,
        answer=answer,
        topic=_text(raw.get("topic")) or default_topic,
        difficulty=_difficulty(raw.get("difficulty")),  # type: ignore[arg-type]
        timestamp=_timestamp(raw.get("timestamp")),
        reference=_text(raw.get("reference")),
    )


def _choices(raw: Any) -> tuple[QuizChoice, ...] | None:
    if not isinstance(raw, list) or len(raw) != len(CHOICE_IDS):
        return None
    out: list[QuizChoice] = []
    for ch in raw:
        if not isinstance(ch, dict):
            return None
        cid = _text(ch.get("id"))
        text = _text(ch.get("text"))
        if not cid or not text:
            return None
        out.append(QuizChoice(id=cid.lower(), text=text))
    if sorted(c.id for c in out) != list(CHOICE_IDS):
        return None
    return tuple(out)


def parse_quiz_question(raw: Any, default_topic: str) -> QuizQuestion | None:
    if not isinstance(raw, dict):
        return None

    qtype = raw.get("type", "multiple_choice")
    if qtype not in QUESTION_TYPES:
        return None
    prompt = _text(raw.get("prompt"))
    if not prompt:
        return None

    choices: tuple[QuizChoice, ...] = ()
    answer_raw = raw.get("answer")
    if qtype == "multiple_choice":
        parsed = _choices(raw.get("choices"))
        answer = _text(answer_raw)
        if parsed is None or answer is None or answer.lower() not in CHOICE_IDS:
            return None
        choices = parsed
        answer = answer.lower()
    elif isinstance(answer_raw, bool):
        answer = "true" if answer_raw else "false"
    else:
        answer = _text(answer_raw)
        if answer is None:
            return None

    return QuizQuestion(
        type=qtype,
        prompt=prompt,
        answer=answer,
        topic=_text(raw.get("topic")) or default_topic,
        difficulty=_difficulty(raw.get("difficulty")),  # type: ignore[arg-type]
        choices=choices,
        explanation=_text(raw.get("explanation")),
        timestamp=_timestamp(raw.get("timestamp")),
    )


def parse_mcq(raw: dict[str, Any]) -> McqQuestion:
    """Direct-transcript quiz item; call only after the content validator accepted it."""
    options = raw["options"]
    return McqQuestion(
        question=raw["question"].strip(),
        options=(options[0], options[1], options[2], options[3]),
        correct_answer=int(raw["correctAnswer"]),
        concept=raw["concept"].strip(),
        timestamp=raw["timestamp"],
    )
