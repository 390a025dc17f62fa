from __future__ import annotations

import dataclasses
import logging
import time
from typing import Any, Sequence

from edutube.services.content_validator import (
    MIN_SEGMENT_TEXT_CHARS,
    validate_content_originality,
    validate_study_materials,
)
from edutube.services.errors import ContentValidationError, InsufficientContentError, ResponseParseError
from edutube.services.llm.base import TextGenerator, system_user
from edutube.services.llm.json_extract import extract_json_object
from edutube.services.llm.prompts import DIRECT_SYSTEM, DIRECT_USER_TEMPLATE
from edutube.services.materials import DirectStudyMaterials, Flashcard, McqQuestion
from edutube.services.parsing import parse_flashcard, parse_mcq
from edutube.services.retrieval import SearchHit
from edutube.services.segments import format_timestamp, parse_timestamp

logger = logging.getLogger(__name__)

MIN_ITEMS = 5
CHARS_PER_QUIZ_ITEM = 200
CHARS_PER_FLASHCARD = 150


def required_counts(text_length: int) -> tuple[int, int]:
    """(quiz, flashcards) minimums for a transcript of text_length characters."""
    return (
        max(MIN_ITEMS, text_length // CHARS_PER_QUIZ_ITEM),
        max(MIN_ITEMS, text_length // CHARS_PER_FLASHCARD),
    )


def _segment_line(seg: SearchHit) -> str:
    return f"[{format_timestamp(seg.start_sec)} - {format_timestamp(seg.end_sec)}] {seg.text.strip()}"


def _clamp_mmss(timestamp: str, video_duration: float | None) -> str:
    if not video_duration or video_duration <= 0:
        return timestamp
    if parse_timestamp(timestamp, video_duration) is None:
        return format_timestamp(video_duration)
    return timestamp


def _generated_text(materials: DirectStudyMaterials) -> str:
    parts = [materials.summary]
    for q in materials.quiz:
        parts.append(q.question)
        parts.extend(q.options)
    for c in materials.flashcards:
        parts.extend((c.question, c.answer))
    return " ".join(parts)


class AutomaticStudyGenerator:
    """
    Direct-transcript strategy: one call over the raw segment text, no topic step.
    Any failed attempt (call, parse, validation) is retried with the same prompt.
    """

    def __init__(self, generator: TextGenerator, *, temperature: float = 0.3, max_attempts: int = 2) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.generator = generator
        self.temperature = temperature
        self.max_attempts = max_attempts

    def build_prompt(self, segments: Sequence[SearchHit], video_duration: float | None) -> str:
        full_text = " ".join(s.text for s in segments)
        quiz_count, flashcard_count = required_counts(len(full_text))
        return DIRECT_USER_TEMPLATE.format(
            duration=format_timestamp(video_duration or 0),
            content="\n".join(_segment_line(s) for s in segments),
            quiz_count=quiz_count,
            flashcard_count=flashcard_count,
        )

    def _parse(self, content: str, video_duration: float | None) -> DirectStudyMaterials:
        try:
            payload: dict[str, Any] = extract_json_object(content)
        except ValueError as e:
            raise ResponseParseError(f"Failed to parse study materials: {e}") from e

        report = validate_study_materials(payload)
        if not report.is_valid:
            raise ContentValidationError(report.errors)

        quiz: list[McqQuestion] = []
        for raw in payload["quiz"]:
            q = parse_mcq(raw)
            clamped = _clamp_mmss(q.timestamp, video_duration)
            if clamped != q.timestamp:
                logger.info("Clamped quiz timestamp %s to %s", q.timestamp, clamped)
                q = McqQuestion(q.question, q.options, q.correct_answer, q.concept, clamped)
            quiz.append(q)

        flashcards: list[Flashcard] = []
        for raw in payload["flashcards"]:
            card = parse_flashcard(raw, default_topic="")
            if card is None:
                raise ResponseParseError(f"Malformed flashcard: {raw!r}"[:200])
            if card.timestamp:
                clamped = _clamp_mmss(card.timestamp, video_duration)
                if clamped != card.timestamp:
                    logger.info("Clamped flashcard timestamp %s to %s", card.timestamp, clamped)
                    card = dataclasses.replace(card, timestamp=clamped)
            flashcards.append(card)

        return DirectStudyMaterials(summary=payload["summary"].strip(), quiz=quiz, flashcards=flashcards)

    async def generate_study_materials(
        self,
        segments: Sequence[SearchHit],
        video_duration: float | None = None,
    ) -> DirectStudyMaterials:
        segment_texts = [s.text for s in segments if s.text and s.text.strip()]
        if len(" ".join(segment_texts)) < MIN_SEGMENT_TEXT_CHARS:
            raise InsufficientContentError("Insufficient segment text for meaningful content generation")

        messages = system_user(DIRECT_SYSTEM, self.build_prompt(segments, video_duration))

        for attempt in range(1, self.max_attempts + 1):
            started = time.perf_counter()
            try:
                content = await self.generator.generate(messages, temperature=self.temperature, json_mode=True)
                materials = self._parse(content, video_duration)

                originality = validate_content_originality(_generated_text(materials), segment_texts)
                if not originality.is_valid:
                    raise ContentValidationError(originality.errors)
            except Exception as e:
                logger.error(
                    "Direct generation attempt %d/%d failed after %.0fms: %s",
                    attempt, self.max_attempts, (time.perf_counter() - started) * 1000, e,
                )
                if attempt >= self.max_attempts:
                    raise
                continue

            logger.info(
                "Direct generation: %d quiz questions, %d flashcards in %.0fms",
                len(materials.quiz), len(materials.flashcards), (time.perf_counter() - started) * 1000,
            )
            return materials

        raise AssertionError("unreachable")
