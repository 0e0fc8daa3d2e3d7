import pytest

from flashquiz.core.errors import InvalidInput, NoAnswerKey
from flashquiz.quiz.grader import grade


@pytest.mark.parametrize("submitted", ["paris", " Paris ", "PARIS", "\tparis\n"])
def test_grade_ignores_case_and_surrounding_whitespace(submitted):
    assert grade("Paris", submitted) is True


def test_grade_wrong_answer():
    assert grade("Paris", "London") is False


def test_grade_has_no_partial_or_fuzzy_credit():
    assert grade("Paris", "Pari") is False
    assert grade("Paris", "Paris, France") is False
    assert grade("New York", "newyork") is False


def test_grade_empty_submission_is_incorrect():
    assert grade("Paris", "") is False
    assert grade("Paris", "   ") is False


def test_grade_without_key_is_distinct_failure():
    with pytest.raises(NoAnswerKey) as exc:
        grade(None, "Paris")
    assert exc.value.kind == "no_answer_key"
    assert exc.value.status_code == 404


@pytest.mark.parametrize("submitted", [None, 42, ["Paris"], {"answer": "Paris"}])
def test_grade_rejects_non_string_submission(submitted):
    with pytest.raises(InvalidInput) as exc:
        grade("Paris", submitted)
    assert exc.value.status_code == 400
    assert exc.value.kind == "validation_error"
