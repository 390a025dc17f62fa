from __future__ import annotations

import logging
import time
from typing import Any

from edutube.services.content_validator import validate_unified_materials
from edutube.services.errors import ContentValidationError, ResponseParseError
from edutube.services.llm.base import TextGenerator, system_user
from edutube.services.llm.json_extract import extract_json_object
from edutube.services.llm.prompts import UNIFIED_SYSTEM, UNIFIED_USER_TEMPLATE
from edutube.services.materials import (
    Flashcard,
    ParseFailure,
    ParseResult,
    ParseSuccess,
    QuizQuestion,
    UnifiedStudyMaterials,
    count_items,
)
from edutube.services.parsing import parse_flashcard, parse_quiz_question

logger = logging.getLogger(__name__)


def parse_unified_response(content: str) -> ParseResult[dict[str, Any]]:
    """First balanced JSON object, with explicit checks for every top-level field."""
    try:
        parsed = extract_json_object(content)
    except ValueError as e:
        return ParseFailure(reason=str(e))

    if not isinstance(parsed.get("summary"), str) or not parsed["summary"].strip():
        return ParseFailure(reason="Invalid response structure: summary missing")
    for key in ("topics", "flashcards", "quiz"):
        if not isinstance(parsed.get(key), list):
            return ParseFailure(reason=f"Invalid response structure: {key} must be an array")
    return ParseSuccess(value=parsed)


def group_by_topic(payload: dict[str, Any]) -> UnifiedStudyMaterials:
    """
    Redistribute flashcards and quiz items into per-topic lists.
    Items whose topic is not a declared topic go to the first declared topic.
    """
    topics: list[str] = []
    for t in payload["topics"]:
        t = t.strip()
        if t and t not in topics:
            topics.append(t)
    if not topics:
        raise ResponseParseError("Response declared no topics")

    first = topics[0]
    flashcards_by_topic: dict[str, list[Flashcard]] = {t: [] for t in topics}
    quiz_by_topic: dict[str, list[QuizQuestion]] = {t: [] for t in topics}

    for raw in payload["flashcards"]:
        card = parse_flashcard(raw, first)
        if card is None:
            raise ResponseParseError(f"Malformed flashcard: {raw!r}"[:200])
        bucket = card.topic if card.topic in flashcards_by_topic else first
        flashcards_by_topic[bucket].append(card)

    for raw in payload["quiz"]:
        question = parse_quiz_question(raw, first)
        if question is None:
            raise ResponseParseError(f"Malformed quiz question: {raw!r}"[:200])
        bucket = question.topic if question.topic in quiz_by_topic else first
        quiz_by_topic[bucket].append(question)

    return UnifiedStudyMaterials(
        summary=payload["summary"].strip(),
        topics=topics,
        flashcards_by_topic=flashcards_by_topic,
        quiz_by_topic=quiz_by_topic,
    )


class UnifiedStudyGenerator:
    """
    Single-call strategy: summary, topics, flashcards and quiz in one JSON document.

    There is no fallback content. A failed call, an unparseable response or a
    response rejected by the content validator is retried up to max_attempts
    and then raised.
    """

    def __init__(self, generator: TextGenerator, *, temperature: float = 0.3, max_attempts: int = 1) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.generator = generator
        self.temperature = temperature
        self.max_attempts = max_attempts

    def build_prompt(
        self,
        context: str,
        *,
        summary_length: str,
        summary_tone: str,
        topics_count: int,
        flashcards_per_topic: int,
        quiz_per_topic: int,
    ) -> str:
        return UNIFIED_USER_TEMPLATE.format(
            context=context,
            length=summary_length,
            tone=summary_tone,
            topics_count=topics_count,
            flashcards_per_topic=flashcards_per_topic,
            quiz_per_topic=quiz_per_topic,
            total_flashcards=topics_count * flashcards_per_topic,
            total_quiz=topics_count * quiz_per_topic,
        )

    async def _attempt(self, messages) -> UnifiedStudyMaterials:
        content = await self.generator.generate(messages, temperature=self.temperature, json_mode=True)

        result = parse_unified_response(content)
        if isinstance(result, ParseFailure):
            raise ResponseParseError(f"Failed to parse unified response: {result.reason}")

        report = validate_unified_materials(result.value)
        if not report.is_valid:
            raise ContentValidationError(report.errors)

        return group_by_topic(result.value)

    async def generate_all_materials(
        self,
        context: str,
        *,
        summary_length: str = "medium",
        summary_tone: str = "neutral",
        topics_count: int = 4,
        flashcards_per_topic: int = 8,
        quiz_per_topic: int = 8,
    ) -> UnifiedStudyMaterials:
        prompt = self.build_prompt(
            context,
            summary_length=summary_length,
            summary_tone=summary_tone,
            topics_count=topics_count,
            flashcards_per_topic=flashcards_per_topic,
            quiz_per_topic=quiz_per_topic,
        )
        messages = system_user(UNIFIED_SYSTEM, prompt)

        for attempt in range(1, self.max_attempts + 1):
            started = time.perf_counter()
            try:
                materials = await self._attempt(messages)
            except Exception as e:
                logger.error(
                    "Unified generation attempt %d/%d failed after %.0fms: %s",
                    attempt, self.max_attempts, (time.perf_counter() - started) * 1000, e,
                )
                if attempt >= self.max_attempts:
                    raise
                continue

            n_cards = count_items(materials.flashcards_by_topic)
            n_quiz = count_items(materials.quiz_by_topic)
            logger.info(
                "Unified generation: %d topics, %d flashcards, %d quiz questions in %.0fms",
                len(materials.topics), n_cards, n_quiz, (time.perf_counter() - started) * 1000,
            )
            if len(materials.topics) != topics_count:
                logger.warning("Requested %d topics, model returned %d", topics_count, len(materials.topics))
            return materials

        raise AssertionError("unreachable")
