import json

import pytest

from inquizzes.repair import parse_question_array
from inquizzes.validator import validate_questions


def test_valid_candidate_becomes_question(make_question):
    [q] = validate_questions([make_question(1)])
    assert q.id == "q1"
    assert q.question == "Question 1?"
    assert q.options == ["1a", "1b", "1c", "1d"]
    assert q.correct_answer == 1
    assert q.explanation == "Because 1."


@pytest.mark.parametrize("overrides", [
    {"options": ["a", "b", "c"]},
    {"options": ["a", "b", "c", "d", "e"]},
    {"options": "abcd"},
    {"options": ["a", "b", "c", 4]},
    {"correctAnswer": 4},
    {"correctAnswer": -1},
    {"correctAnswer": "1"},
    {"correctAnswer": 1.5},
    {"correctAnswer": True},
    {"question": ""},
    {"question": "   "},
    {"question": None},
    {"explanation": None},
])
def test_bad_shapes_are_dropped(make_question, overrides):
    assert validate_questions([make_question(1, **overrides)]) == []


def test_missing_fields_and_non_objects_are_dropped(make_question):
    incomplete = make_question(1)
    del incomplete["explanation"]
    assert validate_questions([incomplete, "q", 3, None, ["a"]]) == []


def test_order_is_kept_and_max_count_applied(make_question):
    candidates = [make_question(1), make_question(2, options=[]), make_question(3), make_question(4)]
    result = validate_questions(candidates, max_count=2)
    assert [q.id for q in result] == ["q1", "q3"]


def test_missing_id_gets_placeholder(make_question):
    candidate = make_question(1)
    del candidate["id"]
    [q] = validate_questions([candidate])
    assert q.id


def test_never_raises_on_empty_input():
    assert validate_questions([]) == []
    assert validate_questions(None) == []
    assert validate_questions([{}], max_count=0) == []


def test_every_result_has_four_options_and_in_range_answer(make_question):
    candidates = [make_question(n, correctAnswer=n - 3) for n in range(10)]
    for q in validate_questions(candidates):
        assert len(q.options) == 4
        assert 0 <= q.correct_answer <= 3


def test_integral_float_answer_is_accepted(make_question):
    [q] = validate_questions([make_question(1, correctAnswer=2.0)])
    assert q.correct_answer == 2
    assert isinstance(q.correct_answer, int)


def test_lone_surrogate_text_is_dropped_not_raised(make_question):
    raw = json.dumps([make_question(1, question="Bad \ud83d char?"), make_question(2)])
    items = parse_question_array(raw).items
    assert [q.id for q in validate_questions(items, 5)] == ["q2"]
