from edutube.services.content_validator import (
    placeholder_matches,
    validate_choice_question,
    validate_content_originality,
    validate_flashcard,
    validate_quiz_question,
    validate_study_materials,
    validate_summary,
    validate_unified_materials,
)
from fakes import direct_payload, mcq, unified_payload


def test_placeholder_summary_is_rejected():
    r = validate_summary("Sample summary text for [TOPIC]...")
    assert not r.is_valid
    assert any("placeholder" in e for e in r.errors)


def test_short_summary_is_rejected():
    r = validate_summary("Too short.")
    assert not r.is_valid
    assert any("too short" in e.lower() for e in r.errors)


def test_placeholder_patterns():
    assert placeholder_matches("sample")
    assert placeholder_matches("[Question 1]")
    assert placeholder_matches("...")
    assert placeholder_matches("Key concept 3")
    assert placeholder_matches("Generated as a fallback")
    assert placeholder_matches("Due to API limitations, nothing")
    assert not placeholder_matches("A sample of the population is drawn at random")
    assert not placeholder_matches("Gradient descent minimizes the loss")


def test_valid_mcq_passes():
    assert validate_quiz_question(mcq(), 0).is_valid


def test_mcq_with_three_options_is_rejected():
    q = mcq()
    q["options"] = q["options"][:3]
    r = validate_quiz_question(q, 0)
    assert not r.is_valid
    assert any("exactly 4" in e for e in r.errors)


def test_mcq_answer_out_of_range_is_rejected():
    q = mcq()
    q["correctAnswer"] = 4
    assert not validate_quiz_question(q, 0).is_valid

    q["correctAnswer"] = True
    assert not validate_quiz_question(q, 0).is_valid


def test_mcq_timestamp_must_be_two_digit_mmss():
    r = validate_quiz_question(mcq(timestamp="5:30"), 0)
    assert not r.is_valid
    assert any("MM:SS" in e for e in r.errors)


def test_timestamp_seconds_must_be_below_sixty():
    r = validate_quiz_question(mcq(timestamp="01:75"), 0)
    assert not r.is_valid
    assert any("below 60" in e for e in r.errors)

    card = {"question": "What is X?", "answer": "Y is Z.", "timestamp": "00:60"}
    assert not validate_flashcard(card, 0).is_valid


def test_mcq_duplicate_options_are_rejected():
    q = mcq()
    q["options"] = ["Same", "same", "Other", "Third"]
    assert not validate_quiz_question(q, 0).is_valid


def test_direct_materials_validation():
    assert validate_study_materials(direct_payload()).is_valid

    bad = direct_payload()
    bad["flashcards"] = []
    r = validate_study_materials(bad)
    assert not r.is_valid
    assert "Flashcards must be a non-empty array" in r.errors


def test_unified_materials_validation():
    assert validate_unified_materials(unified_payload()).is_valid

    bad = unified_payload()
    bad["quiz"][0]["answer"] = "e"
    bad["topics"].append("Gradient Descent")
    r = validate_unified_materials(bad)
    assert not r.is_valid
    assert "Topics must be unique" in r.errors
    assert any("answer must be one of the choice ids" in e for e in r.errors)


def test_flashcard_reference_and_topic_are_checked_for_placeholders():
    card = {"question": "What is X?", "answer": "Y is Z."}
    assert validate_flashcard(card, 0).is_valid

    r = validate_flashcard({**card, "reference": "[topic]"}, 0)
    assert not r.is_valid
    assert any("reference" in e and "placeholder" in e for e in r.errors)

    r = validate_flashcard({**card, "topic": "Key concept 2"}, 0)
    assert not r.is_valid
    assert any("topic" in e for e in r.errors)


def test_unified_quiz_topic_is_checked_for_placeholders():
    q = unified_payload()["quiz"][0]
    assert validate_choice_question(q, 0).is_valid

    r = validate_choice_question({**q, "topic": "[topic]"}, 0)
    assert not r.is_valid
    assert any("topic" in e and "placeholder" in e for e in r.errors)


def test_choice_ids_compare_case_insensitively():
    q = unified_payload()["quiz"][0]
    q["choices"] = [{**c, "id": c["id"].upper()} for c in q["choices"]]
    q["answer"] = "A"
    assert validate_choice_question(q, 0).is_valid

    q["answer"] = "E"
    assert not validate_choice_question(q, 0).is_valid


def test_originality_requires_enough_source_and_output():
    assert not validate_content_originality("anything", []).is_valid
    assert not validate_content_originality("x" * 50, ["too little"]).is_valid

    source = ["word " * 100]
    assert not validate_content_originality("tiny", source).is_valid
    assert validate_content_originality("y" * 60, source).is_valid
