from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AnswerSubmission(BaseModel):
    # Тип ответа проверяет QuizService, чтобы вернуть validation_error (400), а не 422
    user_answer: Any = Field(None, alias="userAnswer")

    model_config = ConfigDict(populate_by_name=True)
