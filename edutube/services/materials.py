from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Generic, Literal, TypeVar, Union

from edutube.services.retrieval import SearchHit

Difficulty = Literal["easy", "medium", "hard"]
QuestionType = Literal["multiple_choice", "short_answer", "true_false"]

DIFFICULTIES: tuple[str, ...] = ("easy", "medium", "hard")
QUESTION_TYPES: tuple[str, ...] = ("multiple_choice", "short_answer", "true_false")
CHOICE_IDS: tuple[str, ...] = ("a", "b", "c", "d")


@dataclass(frozen=True)
class Flashcard:
    question: str
    answer: str
    topic: str = ""
    difficulty: Difficulty = "medium"
    timestamp: str | None = None
    reference: str | None = None


@dataclass(frozen=True)
class QuizChoice:
    id: str
    text: str


@dataclass(frozen=True)
class QuizQuestion:
    type: QuestionType
    prompt: str
    answer: str  # choice id for multiple_choice, literal text otherwise
    topic: str
    difficulty: Difficulty = "medium"
    choices: tuple[QuizChoice, ...] = ()
    explanation: str | None = None
    timestamp: str | None = None


@dataclass(frozen=True)
class McqQuestion:
    question: str
    options: tuple[str, str, str, str]
    correct_answer: int
    concept: str
    timestamp: str


@dataclass(frozen=True)
class StudyMaterials:
    video_id: str
    hits: list[SearchHit]
    summary: str
    topics: list[str]
    flashcards_by_topic: dict[str, list[Flashcard]]
    quiz_by_topic: dict[str, list[QuizQuestion]]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class UnifiedStudyMaterials:
    summary: str
    topics: list[str]
    flashcards_by_topic: dict[str, list[Flashcard]]
    quiz_by_topic: dict[str, list[QuizQuestion]]


@dataclass(frozen=True)
class DirectStudyMaterials:
    summary: str
    quiz: list[McqQuestion]
    flashcards: list[Flashcard]
    video_id: str | None = None
    hits: list[SearchHit] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# ----------------------------
# Parse results
# ----------------------------

T = TypeVar("T")


@dataclass(frozen=True)
class ParseSuccess(Generic[T]):
    value: T


@dataclass(frozen=True)
class ParseFailure:
    reason: str


ParseResult = Union[ParseSuccess[T], ParseFailure]


def count_items(by_topic: dict[str, list[Any]]) -> int:
    return sum(len(v) for v in by_topic.values())
