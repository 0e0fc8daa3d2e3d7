from fastapi import APIRouter, Depends

from flashquiz.core.dependencies import get_authoring_service
from flashquiz.core.response import make_pagination, success
from flashquiz.core.security import get_current_actor
from flashquiz.quiz.authoring import AuthoringService
from flashquiz.routers.pagination import PageParams
from flashquiz.schemas.category_schemas import (
    CategoryCreate,
    QuestionCreate,
    serialize_category,
    serialize_question,
)

router = APIRouter()


@router.post("")
async def create_category(
    data: CategoryCreate,
    actor: dict = Depends(get_current_actor),
    service: AuthoringService = Depends(get_authoring_service)
):
    category = await service.create_category(actor, data.name)
    return success(data=serialize_category(category), message="Категория создана", status_code=201)


@router.get("")
async def list_categories(
    params: PageParams = Depends(),
    actor: dict = Depends(get_current_actor),
    service: AuthoringService = Depends(get_authoring_service)
):
    categories, total = await service.list_categories(params.skip, params.limit)
    return success(
        data=[serialize_category(c) for c in categories],
        pagination=make_pagination(params.page, params.limit, total)
    )


@router.get("/{category}/questions")
async def list_category_questions(
    category: str,
    actor: dict = Depends(get_current_actor),
    service: AuthoringService = Depends(get_authoring_service)
):
    category_doc, questions = await service.list_questions(actor, category)
    return success(data={
        "category": serialize_category(category_doc),
        "questions": [serialize_question(q) for q in questions],
    })


@router.post("/{category}/questions")
async def add_question(
    category: str,
    data: QuestionCreate,
    actor: dict = Depends(get_current_actor),
    service: AuthoringService = Depends(get_authoring_service)
):
    category_doc, question = await service.add_question(actor, category, data.question_text, data.answer_text)
    return success(
        data={"category": category_doc["name"], **serialize_question(question)},
        message="Вопрос добавлен",
        status_code=201
    )


@router.delete("/{category}")
async def delete_category(
    category: str,
    actor: dict = Depends(get_current_actor),
    service: AuthoringService = Depends(get_authoring_service)
):
    await service.delete_category(actor, category)
    return success(message="Категория удалена")


@router.get("/{user_id}")
async def list_user_categories(
    user_id: str,
    actor: dict = Depends(get_current_actor),
    service: AuthoringService = Depends(get_authoring_service)
):
    categories = await service.list_user_categories(user_id)
    return success(data=[serialize_category(c) for c in categories])
