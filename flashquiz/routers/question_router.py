from fastapi import APIRouter, Depends

from flashquiz.core.dependencies import get_authoring_service
from flashquiz.core.response import success
from flashquiz.core.security import get_current_actor
from flashquiz.quiz.authoring import AuthoringService
from flashquiz.schemas.category_schemas import QuestionUpdate, serialize_question

router = APIRouter()


@router.get("/{question_id}")
async def get_question(
    question_id: str,
    actor: dict = Depends(get_current_actor),
    service: AuthoringService = Depends(get_authoring_service)
):
    question = await service.get_question(actor, question_id)
    return success(data={"category": question["category"], **serialize_question(question)})


@router.put("/{question_id}")
async def update_question(
    question_id: str,
    data: QuestionUpdate,
    actor: dict = Depends(get_current_actor),
    service: AuthoringService = Depends(get_authoring_service)
):
    question = await service.update_question(actor, question_id, data.question_text, data.answer_text)
    return success(data=serialize_question(question), message="Вопрос обновлен")


@router.delete("/{question_id}")
async def delete_question(
    question_id: str,
    actor: dict = Depends(get_current_actor),
    service: AuthoringService = Depends(get_authoring_service)
):
    await service.delete_question(actor, question_id)
    return success(message="Вопрос удален")
