import asyncio
import json

import pytest

from edutube.services.automatic import AutomaticStudyGenerator, required_counts
from edutube.services.chains import TopicChainGenerator
from edutube.services.errors import (
    ContentValidationError,
    InsufficientContentError,
    ResponseParseError,
    UpstreamServiceError,
)
from edutube.services.materials import ParseFailure, ParseSuccess
from edutube.services.topics import DEFAULT_TOPIC
from edutube.services.unified import UnifiedStudyGenerator, parse_unified_response
from fakes import SUMMARY, FakeGenerator, direct_payload, hit, unified_payload

CONTEXT = "- [00:00–00:05] gradient descent overview"


# -----------------------
# Unified
# -----------------------
def test_parse_unified_response_tagged_union():
    ok = parse_unified_response("```json\n" + json.dumps(unified_payload()) + "\n```")
    assert isinstance(ok, ParseSuccess)

    missing = parse_unified_response('{"summary": "x", "topics": []}')
    assert isinstance(missing, ParseFailure)
    assert "flashcards" in missing.reason

    garbage = parse_unified_response("I cannot help with that")
    assert isinstance(garbage, ParseFailure)


def test_unified_groups_items_by_topic():
    payload = unified_payload()
    payload["flashcards"].append({"question": "Who knows?", "answer": "Someone does.", "topic": "Unlisted"})
    gen = FakeGenerator([payload])

    materials = asyncio.run(UnifiedStudyGenerator(gen).generate_all_materials(CONTEXT, topics_count=2))

    assert materials.topics == ["Gradient Descent", "Learning Rate"]
    assert len(materials.flashcards_by_topic["Gradient Descent"]) == 2  # unknown topic -> first
    assert len(materials.flashcards_by_topic["Learning Rate"]) == 1
    q = materials.quiz_by_topic["Learning Rate"][0]
    assert q.answer == "a"
    assert [c.id for c in q.choices] == ["a", "b", "c", "d"]
    assert gen.calls[0]["json_mode"] is True


def test_unified_never_fabricates_on_bad_output():
    gen = FakeGenerator(["not json"])
    with pytest.raises(ResponseParseError):
        asyncio.run(UnifiedStudyGenerator(gen).generate_all_materials(CONTEXT))


def test_unified_rejects_placeholder_content():
    payload = unified_payload()
    payload["topics"][0] = "[topic]"
    gen = FakeGenerator([payload])
    with pytest.raises(ContentValidationError) as exc:
        asyncio.run(UnifiedStudyGenerator(gen).generate_all_materials(CONTEXT))
    assert any("placeholder" in e for e in exc.value.errors)


def test_unified_retries_up_to_max_attempts():
    gen = FakeGenerator([UpstreamServiceError("rate limited"), unified_payload()])
    materials = asyncio.run(UnifiedStudyGenerator(gen, max_attempts=2).generate_all_materials(CONTEXT))
    assert materials.summary == SUMMARY
    assert len(gen.calls) == 2
    assert gen.calls[0]["messages"] == gen.calls[1]["messages"]


# -----------------------
# Per-topic chain
# -----------------------
def _chain_responder(fail_topic: str | None = None):
    def respond(messages) -> str:
        user = messages[-1]["content"]
        if "Lecture Index:" in user:
            return "Overview.\n\n**Entropy** is disorder. **Enthalpy** is heat content."
        topic = user.split("topic: '", 1)[1].split("'", 1)[0]
        if topic == fail_topic:
            raise UpstreamServiceError("model overloaded")
        if "flashcards" in user:
            return json.dumps(
                [
                    {"question": f"Define {topic}", "answer": f"{topic} definition", "difficulty": "easy"},
                    {"question": "", "answer": "dropped"},
                ]
            )
        return json.dumps(
            [
                {"type": "true_false", "prompt": f"{topic} is measurable", "answer": True},
                {"type": "multiple_choice", "prompt": "Broken", "choices": [], "answer": "a"},
            ]
        )

    return respond


def test_chain_generates_per_topic_and_drops_bad_items():
    gen = FakeGenerator(responder=_chain_responder())
    materials = asyncio.run(TopicChainGenerator(gen).generate_all_materials(CONTEXT, topics_count=2))

    assert materials.topics == ["Entropy", "Enthalpy"]
    cards = materials.flashcards_by_topic["Entropy"]
    assert [c.question for c in cards] == ["Define Entropy"]
    assert cards[0].topic == "Entropy"
    quiz = materials.quiz_by_topic["Enthalpy"]
    assert [(q.type, q.answer) for q in quiz] == [("true_false", "true")]
    # 1 summary + 2 topics x (flashcards + quiz)
    assert len(gen.calls) == 5


def test_chain_drops_placeholder_items():
    def respond(messages) -> str:
        user = messages[-1]["content"]
        if "Lecture Index:" in user:
            return "**Entropy** is disorder."
        if "flashcards" in user:
            return json.dumps(
                [
                    {"question": "[question 1]", "answer": "sample"},
                    {"question": "Define Entropy", "answer": "A measure of disorder."},
                ]
            )
        return json.dumps(
            [
                {"type": "short_answer", "prompt": "[question 1]", "answer": "placeholder"},
                {"type": "short_answer", "prompt": "What does entropy measure?", "answer": "Disorder."},
            ]
        )

    gen = FakeGenerator(responder=respond)
    materials = asyncio.run(TopicChainGenerator(gen).generate_all_materials(CONTEXT, topics_count=1))

    assert [c.question for c in materials.flashcards_by_topic["Entropy"]] == ["Define Entropy"]
    assert [q.prompt for q in materials.quiz_by_topic["Entropy"]] == ["What does entropy measure?"]


def test_chain_summary_goes_through_summarize():
    gen = FakeGenerator(responder=_chain_responder())
    summary = asyncio.run(TopicChainGenerator(gen).summarize(CONTEXT, length="short", tone="friendly"))

    assert summary.startswith("Overview.")
    assert len(gen.summaries) == 1
    assert "short length" in gen.summaries[0]
    assert "friendly tone" in gen.summaries[0]
    system, user = gen.calls[0]["messages"]
    assert system["content"] == gen.summaries[0]
    assert CONTEXT in user["content"]
    assert gen.calls[0]["temperature"] == 0.1


def test_chain_topic_failure_yields_empty_lists():
    gen = FakeGenerator(responder=_chain_responder(fail_topic="Enthalpy"))
    materials = asyncio.run(TopicChainGenerator(gen).generate_all_materials(CONTEXT, topics_count=2))
    assert materials.flashcards_by_topic["Enthalpy"] == []
    assert materials.quiz_by_topic["Enthalpy"] == []
    assert len(materials.flashcards_by_topic["Entropy"]) == 1


def test_chain_falls_back_to_default_topic():
    def respond(messages) -> str:
        if "Lecture Index:" in messages[-1]["content"]:
            return "nothing capitalized here at all"
        return "[]"

    materials = asyncio.run(
        TopicChainGenerator(FakeGenerator(responder=respond)).generate_all_materials(CONTEXT)
    )
    assert materials.topics == [DEFAULT_TOPIC]


# -----------------------
# Direct transcript
# -----------------------
SEGMENTS = [
    hit(0, 30, text="Gradient descent updates parameters against the gradient of the loss function."),
    hit(30, 60, text="The learning rate scales each step; if it is too large the optimisation diverges."),
]


def test_required_counts():
    assert required_counts(100) == (5, 5)
    assert required_counts(3000) == (15, 20)


def test_direct_generation_clamps_timestamps():
    gen = FakeGenerator([direct_payload(quiz_timestamp="05:00")])
    materials = asyncio.run(AutomaticStudyGenerator(gen).generate_study_materials(SEGMENTS, video_duration=90))

    assert materials.quiz[0].timestamp == "01:30"
    assert materials.quiz[0].correct_answer == 0
    assert materials.flashcards[0].answer == "Training diverges."
    prompt = gen.calls[0]["messages"][-1]["content"]
    assert "[00:00 - 00:30] Gradient descent" in prompt
    assert "Video Duration: 01:30" in prompt


def test_direct_generation_clamps_flashcard_timestamps():
    payload = direct_payload()
    payload["flashcards"][0]["timestamp"] = "59:00"
    payload["flashcards"].append({"question": "What scales each step?", "answer": "The learning rate.", "timestamp": "00:40"})
    gen = FakeGenerator([payload])

    materials = asyncio.run(AutomaticStudyGenerator(gen).generate_study_materials(SEGMENTS, video_duration=90))

    assert [c.timestamp for c in materials.flashcards] == ["01:30", "00:40"]


def test_direct_generation_rejects_out_of_range_seconds():
    gen = FakeGenerator([direct_payload(quiz_timestamp="01:75"), direct_payload(quiz_timestamp="01:75")])
    with pytest.raises(ContentValidationError) as exc:
        asyncio.run(AutomaticStudyGenerator(gen).generate_study_materials(SEGMENTS, video_duration=300))
    assert any("below 60" in e for e in exc.value.errors)
    assert len(gen.calls) == 2


def test_direct_generation_retries_then_succeeds():
    bad = direct_payload()
    bad["quiz"][0]["options"] = bad["quiz"][0]["options"][:3]
    gen = FakeGenerator([bad, direct_payload()])

    materials = asyncio.run(AutomaticStudyGenerator(gen).generate_study_materials(SEGMENTS, 90))
    assert len(materials.quiz) == 1
    assert len(gen.calls) == 2
    assert gen.calls[0]["messages"] == gen.calls[1]["messages"]


def test_direct_generation_raises_after_last_attempt():
    gen = FakeGenerator(["{}", "still not it"])
    with pytest.raises(ResponseParseError):
        asyncio.run(AutomaticStudyGenerator(gen).generate_study_materials(SEGMENTS, 90))
    assert len(gen.calls) == 2


def test_direct_generation_needs_enough_segment_text():
    gen = FakeGenerator([direct_payload()])
    with pytest.raises(InsufficientContentError):
        asyncio.run(AutomaticStudyGenerator(gen).generate_study_materials([hit(0, 5, text="hi")], 90))
    assert gen.calls == []
