from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Sequence

from edutube.services.content_validator import placeholder_matches
from edutube.services.errors import ResponseParseError
from edutube.services.llm.base import TextGenerator, system_user
from edutube.services.llm.json_extract import extract_json_array
from edutube.services.llm.prompts import (
    FLASHCARDS_SYSTEM,
    FLASHCARDS_USER_TEMPLATE,
    LECTURE_INDEX_TEMPLATE,
    QUIZ_SYSTEM,
    QUIZ_USER_TEMPLATE,
    SUMMARIZE_INSTRUCTION_TEMPLATE,
    SUMMARIZE_SYSTEM,
)
from edutube.services.materials import Flashcard, QuizQuestion, UnifiedStudyMaterials
from edutube.services.parsing import parse_flashcard, parse_quiz_question
from edutube.services.topics import DEFAULT_TOPIC, extract_topics

logger = logging.getLogger(__name__)

DEFAULT_QUIZ_MIX: tuple[str, ...] = ("multiple_choice", "short_answer", "true_false")


def _parse_array(raw: str, kind: str) -> list[Any]:
    try:
        return extract_json_array(raw)
    except ValueError as e:
        raise ResponseParseError(f"Failed to parse {kind} JSON: {e}") from e


def _has_placeholder(*texts: str | None) -> bool:
    return any(t and placeholder_matches(t) for t in texts)


def _flashcard_ok(card: Flashcard) -> bool:
    return not _has_placeholder(card.question, card.answer, card.reference)


def _quiz_ok(question: QuizQuestion) -> bool:
    texts = [question.prompt, question.answer, question.explanation]
    texts.extend(c.text for c in question.choices)
    return not _has_placeholder(*texts)


class TopicChainGenerator:
    """
    Multi-call strategy: one summary, then one flashcard call and one quiz call
    per topic, all topics in parallel.
    """

    def __init__(
        self,
        generator: TextGenerator,
        *,
        summary_temperature: float = 0.1,
        flashcards_temperature: float = 0.4,
        quiz_temperature: float = 0.5,
    ) -> None:
        self.generator = generator
        self.summary_temperature = summary_temperature
        self.flashcards_temperature = flashcards_temperature
        self.quiz_temperature = quiz_temperature

    async def summarize(self, context: str, *, length: str = "medium", tone: str = "neutral") -> str:
        instruction = SUMMARIZE_SYSTEM + "\n\n" + SUMMARIZE_INSTRUCTION_TEMPLATE.format(length=length, tone=tone)
        summary = await self.generator.summarize(
            LECTURE_INDEX_TEMPLATE.format(context=context),
            instruction,
            temperature=self.summary_temperature,
        )
        return summary.strip()

    async def generate_flashcards(
        self,
        summary: str,
        *,
        topic: str,
        count: int = 10,
        style: str = "concise",
    ) -> list[Flashcard]:
        user = FLASHCARDS_USER_TEMPLATE.format(count=count, topic=topic, style=style, summary=summary)
        raw = await self.generator.generate(
            system_user(FLASHCARDS_SYSTEM, user),
            temperature=self.flashcards_temperature,
        )
        items = _parse_array(raw, "flashcards")

        parsed = (parse_flashcard(it, topic) for it in items)
        cards = [c for c in parsed if c is not None and _flashcard_ok(c)]
        if len(cards) != len(items):
            logger.warning("Dropped %d malformed or placeholder flashcards for topic %r", len(items) - len(cards), topic)
        return cards

    async def generate_quiz(
        self,
        summary: str,
        *,
        topic: str,
        count: int = 10,
        include_explanations: bool = True,
        mix: Sequence[str] = DEFAULT_QUIZ_MIX,
    ) -> list[QuizQuestion]:
        explanations = (
            '- Add a brief "explanation" citing the summary.' if include_explanations else ""
        )
        user = QUIZ_USER_TEMPLATE.format(
            count=count,
            topic=topic,
            mix=", ".join(mix),
            explanations=explanations,
            summary=summary,
        )
        raw = await self.generator.generate(
            system_user(QUIZ_SYSTEM, user),
            temperature=self.quiz_temperature,
        )
        items = _parse_array(raw, "quiz")

        parsed = (parse_quiz_question(it, topic) for it in items)
        questions = [q for q in parsed if q is not None and _quiz_ok(q)]
        if len(questions) != len(items):
            logger.warning("Dropped %d malformed or placeholder quiz questions for topic %r", len(items) - len(questions), topic)
        return questions

    # ----------------------------
    # Per-topic fan-out
    # ----------------------------

    async def _topic_flashcards(self, summary: str, topic: str, count: int) -> list[Flashcard]:
        started = time.perf_counter()
        try:
            cards = await self.generate_flashcards(summary, topic=topic, count=count)
        except Exception as e:
            logger.warning(
                "Flashcard generation failed for topic %r after %.0fms: %s",
                topic, (time.perf_counter() - started) * 1000, e,
            )
            return []
        logger.info("Flashcards for %r: %d cards in %.0fms", topic, len(cards), (time.perf_counter() - started) * 1000)
        return cards

    async def _topic_quiz(self, summary: str, topic: str, count: int) -> list[QuizQuestion]:
        started = time.perf_counter()
        try:
            questions = await self.generate_quiz(summary, topic=topic, count=count)
        except Exception as e:
            logger.warning(
                "Quiz generation failed for topic %r after %.0fms: %s",
                topic, (time.perf_counter() - started) * 1000, e,
            )
            return []
        logger.info("Quiz for %r: %d questions in %.0fms", topic, len(questions), (time.perf_counter() - started) * 1000)
        return questions

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
        # The summary call is not isolated: without it there is nothing to build on.
        summary = await self.summarize(context, length=summary_length, tone=summary_tone)

        topics = extract_topics(summary, topics_count) or [DEFAULT_TOPIC]
        logger.info("Topics extracted: %s", topics)

        flashcard_batch = asyncio.gather(
            *(self._topic_flashcards(summary, t, flashcards_per_topic) for t in topics)
        )
        quiz_batch = asyncio.gather(*(self._topic_quiz(summary, t, quiz_per_topic) for t in topics))
        flashcard_results, quiz_results = await asyncio.gather(flashcard_batch, quiz_batch)

        return UnifiedStudyMaterials(
            summary=summary,
            topics=topics,
            flashcards_by_topic=dict(zip(topics, flashcard_results)),
            quiz_by_topic=dict(zip(topics, quiz_results)),
        )
