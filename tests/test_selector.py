import pytest

from flashquiz.core.errors import InvalidInput, NoMoreQuestions, NoQuestions
from flashquiz.quiz.selector import pick_question, session_order

QUESTIONS = [{"_id": i, "question_text": f"Q{i}"} for i in range(4)]


@pytest.mark.parametrize("cursor", range(len(QUESTIONS)))
def test_cursor_inside_range_returns_question(cursor):
    selection = pick_question(QUESTIONS, cursor)
    assert selection.question is QUESTIONS[cursor]
    assert selection.index == cursor
    assert selection.is_last == (cursor == len(QUESTIONS) - 1)


@pytest.mark.parametrize("cursor", [4, 5, 100])
def test_cursor_past_end_signals_exhaustion(cursor):
    with pytest.raises(NoMoreQuestions) as exc:
        pick_question(QUESTIONS, cursor)
    assert exc.value.kind == "no_more_questions"


def test_empty_category_has_no_questions():
    with pytest.raises(NoQuestions):
        pick_question([], 0)


@pytest.mark.parametrize("cursor", [-1, "1", 1.0, None, True])
def test_invalid_cursor(cursor):
    with pytest.raises(InvalidInput):
        pick_question(QUESTIONS, cursor)


def test_session_order_puts_answered_first_and_keeps_order():
    ordered = session_order(QUESTIONS, {3, 1})
    assert [q["_id"] for q in ordered] == [1, 3, 0, 2]


def test_session_order_cursor_points_at_first_unanswered():
    answered = {0, 2}
    ordered = session_order(QUESTIONS, answered)
    assert pick_question(ordered, len(answered)).question["_id"] == 1


def test_session_order_without_answers_is_stable_order():
    assert session_order(QUESTIONS, set()) == QUESTIONS
