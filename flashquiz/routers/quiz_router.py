from typing import Optional

from fastapi import APIRouter, Body, Depends, Query

from flashquiz.core.dependencies import get_quiz_service
from flashquiz.core.errors import InvalidInput
from flashquiz.core.response import success
from flashquiz.core.security import ensure_self_or_admin, get_current_actor
from flashquiz.quiz.service import QuizService
from flashquiz.schemas.quiz_schemas import AnswerSubmission

router = APIRouter()


def parse_cursor(raw: Optional[str]) -> Optional[int]:
    """currentQuestionIndex приходит строкой; нецелое значение - ошибка валидации"""
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        raise InvalidInput(
            "Индекс вопроса должен быть неотрицательным целым числом",
            details={"field": "currentQuestionIndex"}
        )


@router.get("/quiz-question/{user_id}/{category}")
async def get_quiz_question(
    user_id: str,
    category: str,
    current_question_index: Optional[str] = Query(None, alias="currentQuestionIndex"),
    actor: dict = Depends(get_current_actor),
    service: QuizService = Depends(get_quiz_service)
):
    ensure_self_or_admin(actor, user_id)
    data = await service.next_question(user_id, category, parse_cursor(current_question_index))
    return success(data=data, message="Вопрос получен")


@router.post("/quiz-answer/{user_id}/{question_id}")
async def submit_quiz_answer(
    user_id: str,
    question_id: str,
    payload: Optional[AnswerSubmission] = Body(None),
    actor: dict = Depends(get_current_actor),
    service: QuizService = Depends(get_quiz_service)
):
    ensure_self_or_admin(actor, user_id)
    submitted = payload.user_answer if payload else None
    data = await service.submit_answer(user_id, question_id, submitted)
    message = "Ответ уже был засчитан ранее" if data["alreadyAnswered"] else "Ответ принят"
    return success(data=data, message=message)


@router.get("/quiz-progress/{user_id}/{category}")
async def get_category_progress(
    user_id: str,
    category: str,
    actor: dict = Depends(get_current_actor),
    service: QuizService = Depends(get_quiz_service)
):
    ensure_self_or_admin(actor, user_id)
    return success(data=await service.category_progress(user_id, category))


@router.get("/quiz-progress/{user_id}")
async def get_progress_overview(
    user_id: str,
    actor: dict = Depends(get_current_actor),
    service: QuizService = Depends(get_quiz_service)
):
    ensure_self_or_admin(actor, user_id)
    return success(data=await service.progress_overview(user_id))
