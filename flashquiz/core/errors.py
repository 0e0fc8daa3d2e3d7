# flashquiz/core/errors.py
"""
Доменные исключения FlashQuiz.

Каждое исключение несет kind (дискриминатор для клиента), HTTP-код,
сообщение и необязательные детали. Обработчик в main.py превращает их
в стандартный конверт ответа через core.response.error.
"""

from typing import Any, Dict, Optional


class QuizError(Exception):
    kind = "quiz_error"
    status_code = 500
    default_message = "Внутренняя ошибка"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_details(self) -> Dict[str, Any]:
        return {"kind": self.kind, **self.details}


class ValidationError(QuizError):
    status_code = 400


class NotFound(QuizError):
    status_code = 404


class InvalidInput(ValidationError):
    kind = "validation_error"
    default_message = "Некорректные входные данные"


class UserNotFound(NotFound):
    kind = "user_not_found"
    default_message = "Пользователь не найден"


class CategoryNotFound(NotFound):
    kind = "category_not_found"
    default_message = "Категория не найдена"


class QuestionNotFound(NotFound):
    kind = "question_not_found"
    default_message = "Вопрос не найден"


class NoAnswerKey(NotFound):
    kind = "no_answer_key"
    default_message = "Для вопроса не задан правильный ответ"


class NoQuestions(NotFound):
    kind = "no_questions"
    default_message = "В категории нет вопросов"


class NoMoreQuestions(NotFound):
    kind = "no_more_questions"
    default_message = "Вопросы в категории закончились"


class Conflict(QuizError):
    kind = "conflict"
    status_code = 409
    default_message = "Конфликт данных"


class Forbidden(QuizError):
    kind = "forbidden"
    status_code = 403
    default_message = "Недостаточно прав"


class StoreError(QuizError):
    kind = "store_error"
    status_code = 500
    default_message = "Ошибка хранилища данных"
