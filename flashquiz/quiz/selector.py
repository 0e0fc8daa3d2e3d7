# flashquiz/quiz/selector.py

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Sequence

from flashquiz.core.errors import InvalidInput, NoMoreQuestions, NoQuestions


@dataclass(frozen=True)
class Selection:
    question: Dict[str, Any]
    index: int
    is_last: bool


def pick_question(questions: Sequence[Dict[str, Any]], cursor) -> Selection:
    """
    Возвращает вопрос под курсором.

    Курсор - индекс в стабильном порядке вопросов категории.
    """
    if len(questions) == 0:
        raise NoQuestions()

    # bool - подкласс int, но курсором не является
    if isinstance(cursor, bool) or not isinstance(cursor, int) or cursor < 0:
        raise InvalidInput(
            "Индекс вопроса должен быть неотрицательным целым числом",
            details={"field": "currentQuestionIndex"}
        )

    if cursor >= len(questions):
        raise NoMoreQuestions(details={"totalQuestions": len(questions)})

    return Selection(
        question=questions[cursor],
        index=cursor,
        is_last=cursor == len(questions) - 1
    )


def session_order(questions: Sequence[Dict[str, Any]], answered_ids: Iterable) -> List[Dict[str, Any]]:
    """
    Сначала отвеченные вопросы, затем неотвеченные; внутри групп порядок сохраняется.

    Курсор, равный числу отвеченных, указывает на первый неотвеченный вопрос,
    даже если пользователь отвечал не по порядку.
    """
    answered = set(answered_ids)
    done = [q for q in questions if q["_id"] in answered]
    pending = [q for q in questions if q["_id"] not in answered]
    return done + pending
