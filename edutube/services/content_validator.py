"""
Zero-tolerance gate for generated study content.

Works on the raw JSON the model returned (wire keys, e.g. ``correctAnswer``),
before anything is turned into dataclasses. Every check appends a readable
message; nothing here raises.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterable

from edutube.services.materials import CHOICE_IDS, QUESTION_TYPES
from edutube.services.segments import parse_timestamp

PLACEHOLDER_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^sample$|^placeholder$|^example$|lorem ipsum|^test$|^demo$", re.IGNORECASE),
    re.compile(r"\[(?:topic|concept|field|question|answer|content|subject|chapter|lesson)\]", re.IGNORECASE),
    re.compile(r"\[(?:question \d+|answer \d+|option [a-z])\]", re.IGNORECASE),
    re.compile(r"^\.\.\.$"),
    re.compile(r"^key concept \d+$", re.IGNORECASE),
    re.compile(r"^important question \d+$", re.IGNORECASE),
    re.compile(r"fallback|temporary|api limitations", re.IGNORECASE),
    re.compile(r"due to.*limitations", re.IGNORECASE),
    re.compile(r"not available", re.IGNORECASE),
    re.compile(r"^sample.*question$", re.IGNORECASE),
    re.compile(r"^demo.*content$", re.IGNORECASE),
)

TIMESTAMP_RE = re.compile(r"^\d{2}:\d{2}$")

MIN_SUMMARY_CHARS = 50
MIN_SEGMENT_TEXT_CHARS = 100
MIN_CONTENT_RATIO = 0.1


@dataclass
class ValidationResult:
    is_valid: bool
    errors: list[str] = field(default_factory=list)


def _result(errors: list[str]) -> ValidationResult:
    return ValidationResult(is_valid=not errors, errors=errors)


def _is_text(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def placeholder_matches(text: str) -> list[int]:
    """1-based indexes of the placeholder patterns found in text."""
    s = (text or "").strip()
    return [i for i, p in enumerate(PLACEHOLDER_PATTERNS, start=1) if p.search(s)]


def _check_placeholders(text: str, label: str, errors: list[str]) -> None:
    for idx in placeholder_matches(text):
        errors.append(f"{label} contains placeholder pattern {idx}")


def _check_text_field(value: Any, label: str, errors: list[str]) -> None:
    if not _is_text(value):
        errors.append(f"{label} must be a non-empty string")
        return
    _check_placeholders(value, label, errors)


def validate_text_content(text: Any, field_name: str) -> ValidationResult:
    errors: list[str] = []
    _check_text_field(text, field_name, errors)
    return _result(errors)


def validate_summary(summary: Any) -> ValidationResult:
    errors: list[str] = []
    if not _is_text(summary):
        errors.append("Summary must be a non-empty string")
        return _result(errors)

    if len(summary.strip()) < MIN_SUMMARY_CHARS:
        errors.append(f"Summary too short - must be at least {MIN_SUMMARY_CHARS} characters")
    _check_placeholders(summary, "Summary", errors)
    return _result(errors)


def _check_timestamp(value: Any, label: str, errors: list[str], required: bool) -> None:
    if value is None and not required:
        return
    if not isinstance(value, str) or not TIMESTAMP_RE.match(value):
        errors.append(f"{label}: timestamp must be in MM:SS format")
    elif parse_timestamp(value) is None:
        errors.append(f"{label}: timestamp seconds must be below 60")


def _check_optional_text(value: Any, label: str, errors: list[str]) -> None:
    if value is not None:
        _check_text_field(value, label, errors)


def validate_quiz_question(question: Any, index: int) -> ValidationResult:
    """Direct-transcript MCQ item: question/options/correctAnswer/concept/timestamp."""
    prefix = f"Quiz question {index + 1}"
    errors: list[str] = []
    if not isinstance(question, dict):
        return _result([f"{prefix}: must be an object"])

    _check_text_field(question.get("question"), f"{prefix}: question", errors)

    options = question.get("options")
    if not isinstance(options, list) or len(options) != 4:
        errors.append(f"{prefix}: options must be an array of exactly 4 strings")
    else:
        for j, opt in enumerate(options, start=1):
            _check_text_field(opt, f"{prefix}: option {j}", errors)
        texts = [o.strip().lower() for o in options if isinstance(o, str)]
        if len(set(texts)) != len(texts):
            errors.append(f"{prefix}: options must be distinct")

    answer = question.get("correctAnswer")
    if isinstance(answer, bool) or not isinstance(answer, int) or not 0 <= answer <= 3:
        errors.append(f"{prefix}: correctAnswer must be a number between 0-3")

    _check_text_field(question.get("concept"), f"{prefix}: concept", errors)
    _check_timestamp(question.get("timestamp"), prefix, errors, required=True)
    return _result(errors)


def validate_flashcard(card: Any, index: int) -> ValidationResult:
    prefix = f"Flashcard {index + 1}"
    errors: list[str] = []
    if not isinstance(card, dict):
        return _result([f"{prefix}: must be an object"])

    _check_text_field(card.get("question"), f"{prefix}: question", errors)
    _check_text_field(card.get("answer"), f"{prefix}: answer", errors)
    _check_optional_text(card.get("topic"), f"{prefix}: topic", errors)
    _check_optional_text(card.get("reference"), f"{prefix}: reference", errors)
    _check_timestamp(card.get("timestamp"), prefix, errors, required=False)
    return _result(errors)


def validate_choice_question(question: Any, index: int) -> ValidationResult:
    """Unified-strategy item: type/prompt/choices/answer/topic."""
    prefix = f"Quiz question {index + 1}"
    errors: list[str] = []
    if not isinstance(question, dict):
        return _result([f"{prefix}: must be an object"])

    qtype = question.get("type", "multiple_choice")
    if qtype not in QUESTION_TYPES:
        errors.append(f"{prefix}: type must be one of {', '.join(QUESTION_TYPES)}")

    _check_text_field(question.get("prompt"), f"{prefix}: prompt", errors)

    answer = question.get("answer")
    if qtype == "multiple_choice":
        choices = question.get("choices")
        if not isinstance(choices, list) or len(choices) != 4:
            errors.append(f"{prefix}: choices must be an array of exactly 4 items")
        else:
            ids: list[str] = []
            for j, ch in enumerate(choices, start=1):
                if not isinstance(ch, dict):
                    errors.append(f"{prefix}: choice {j} must be an object")
                    continue
                ids.append(str(ch.get("id")).strip().lower())
                _check_text_field(ch.get("text"), f"{prefix}: choice {j}", errors)
            if sorted(ids) != list(CHOICE_IDS):
                errors.append(f"{prefix}: choice ids must be a, b, c, d")
            if not isinstance(answer, str) or answer.strip().lower() not in ids:
                errors.append(f"{prefix}: answer must be one of the choice ids")
    else:
        _check_text_field(answer, f"{prefix}: answer", errors)

    _check_optional_text(question.get("explanation"), f"{prefix}: explanation", errors)
    _check_optional_text(question.get("topic"), f"{prefix}: topic", errors)
    _check_timestamp(question.get("timestamp"), prefix, errors, required=False)
    return _result(errors)


def _collect(results: Iterable[ValidationResult], errors: list[str]) -> None:
    for r in results:
        errors.extend(r.errors)


def validate_study_materials(materials: Any) -> ValidationResult:
    """Direct-transcript payload: {summary, quiz[], flashcards[]}."""
    if not isinstance(materials, dict):
        return _result(["Study materials must be an object"])

    errors: list[str] = []
    errors.extend(validate_summary(materials.get("summary")).errors)

    quiz = materials.get("quiz")
    if isinstance(quiz, list) and quiz:
        _collect((validate_quiz_question(q, i) for i, q in enumerate(quiz)), errors)
    else:
        errors.append("Quiz must be a non-empty array")

    flashcards = materials.get("flashcards")
    if isinstance(flashcards, list) and flashcards:
        _collect((validate_flashcard(c, i) for i, c in enumerate(flashcards)), errors)
    else:
        errors.append("Flashcards must be a non-empty array")

    return _result(errors)


def validate_unified_materials(materials: Any) -> ValidationResult:
    """Unified payload: {summary, topics[], flashcards[], quiz[]}."""
    if not isinstance(materials, dict):
        return _result(["Study materials must be an object"])

    errors: list[str] = []
    errors.extend(validate_summary(materials.get("summary")).errors)

    topics = materials.get("topics")
    if not isinstance(topics, list) or not topics:
        errors.append("Topics must be a non-empty array")
    else:
        for i, t in enumerate(topics, start=1):
            errors.extend(validate_text_content(t, f"Topic {i}").errors)
        if len(set(t for t in topics if isinstance(t, str))) != len(topics):
            errors.append("Topics must be unique")

    flashcards = materials.get("flashcards")
    if isinstance(flashcards, list) and flashcards:
        _collect((validate_flashcard(c, i) for i, c in enumerate(flashcards)), errors)
    else:
        errors.append("Flashcards must be a non-empty array")

    quiz = materials.get("quiz")
    if isinstance(quiz, list) and quiz:
        _collect((validate_choice_question(q, i) for i, q in enumerate(quiz)), errors)
    else:
        errors.append("Quiz must be a non-empty array")

    return _result(errors)


def validate_content_originality(content: str, segment_texts: list[str]) -> ValidationResult:
    """Generated content must come from enough source text and not be trivially short."""
    errors: list[str] = []
    if not segment_texts:
        return _result(["No video segments available for content generation"])

    source_len = len(" ".join(t or "" for t in segment_texts))
    if source_len < MIN_SEGMENT_TEXT_CHARS:
        errors.append("Insufficient segment text for meaningful content generation")
    if len(content or "") < source_len * MIN_CONTENT_RATIO:
        errors.append("Generated content too short relative to source material")
    return _result(errors)
