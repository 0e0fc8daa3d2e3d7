# flashquiz/quiz/grader.py

from typing import Optional

from flashquiz.core.errors import InvalidInput, NoAnswerKey


def normalize_answer(text: str) -> str:
    return text.strip().lower()


def grade(correct_text: Optional[str], submitted_text) -> bool:
    """
    Сравнивает ответ пользователя с эталонным.

    Оба ответа обрезаются по краям и приводятся к нижнему регистру,
    ответ засчитывается только при полном совпадении.

    Raises:
        NoAnswerKey: эталонный ответ отсутствует (это не то же самое, что False)
        InvalidInput: ответ пользователя не строка
    """
    if correct_text is None:
        raise NoAnswerKey()
    if not isinstance(submitted_text, str):
        raise InvalidInput("Ответ должен быть строкой", details={"field": "userAnswer"})

    return normalize_answer(correct_text) == normalize_answer(submitted_text)
