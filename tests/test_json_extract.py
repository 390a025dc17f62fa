import pytest

from edutube.services.llm.json_extract import extract_json_array, extract_json_object, strip_code_fences


def test_object_inside_code_fence_and_chatter():
    text = 'Here you go:\n```json\n{"summary": "a {braced} value", "topics": ["x"]}\n```\nThanks!'
    assert extract_json_object(text) == {"summary": "a {braced} value", "topics": ["x"]}


def test_first_balanced_object_wins():
    text = '{"a": 1} trailing {"b": 2}'
    assert extract_json_object(text) == {"a": 1}


def test_array_extraction():
    text = 'Cards: [{"question": "q]?", "answer": "a"}] done'
    assert extract_json_array(text) == [{"question": "q]?", "answer": "a"}]


@pytest.mark.parametrize("text", ["", "no json at all", '{"unterminated": 1'])
def test_object_extraction_failures_raise_value_error(text):
    with pytest.raises(ValueError):
        extract_json_object(text)


def test_fence_markers_inside_strings_are_kept():
    text = '```json\n{"answer": "Wrap code in ```json fences"}\n```'
    assert extract_json_object(text) == {"answer": "Wrap code in ```json fences"}
    assert strip_code_fences('{"answer": "Wrap code in ```json fences"}') == '{"answer": "Wrap code in ```json fences"}'
