# flashquiz/quiz/authoring.py

from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from flashquiz.core.errors import CategoryNotFound, Forbidden, InvalidInput, QuestionNotFound, UserNotFound
from flashquiz.logging import get_logger, LogSection, LogSubsection
from flashquiz.quiz.repository import QuizStore

logger = get_logger(__name__)


def can_manage(actor: Dict[str, Any], category: Dict[str, Any]) -> bool:
    """Категорию и ее вопросы меняет только автор или администратор"""
    return actor.get("role") == "admin" or str(category.get("created_by")) == str(actor["id"])


def _clean_text(value: Optional[str], field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput(f"Поле {field} не может быть пустым", details={"field": field})
    return value.strip()


class AuthoringService:
    def __init__(self, store: QuizStore):
        self.store = store

    async def _require_category(self, name: str) -> Dict[str, Any]:
        category = await self.store.find_category_by_name(name)
        if not category:
            raise CategoryNotFound(f"Категория «{name}» не найдена", details={"category": name})
        return category

    def _require_manage(self, actor: Dict[str, Any], category: Dict[str, Any]):
        if not can_manage(actor, category):
            logger.warning(
                section=LogSection.CATEGORY,
                subsection=LogSubsection.CATEGORY.ACCESS,
                message=f"Попытка изменить чужую категорию «{category['name']}»",
                user_id=actor["id"]
            )
            raise Forbidden("Изменять категорию может только ее автор или администратор")

    async def _require_question(self, question_id) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        question = await self.store.get_question(question_id)
        if not question:
            raise QuestionNotFound(details={"questionId": str(question_id)})
        category = await self.store.get_category(question["category_id"])
        if not category:
            raise CategoryNotFound(details={"categoryId": str(question["category_id"])})
        return question, category

    async def create_category(self, actor: Dict[str, Any], name: str) -> Dict[str, Any]:
        name = _clean_text(name, "name")
        category = await self.store.create_category({
            "name": name,
            "name_lower": name.lower(),
            "created_by": actor["id"],
            "created_at": datetime.utcnow(),
        })
        logger.info(
            section=LogSection.CATEGORY,
            subsection=LogSubsection.CATEGORY.CREATE,
            message=f"Создана категория «{name}»",
            user_id=actor["id"]
        )
        return category

    async def list_categories(self, skip: int, limit: int):
        return await self.store.list_categories(skip, limit)

    async def list_user_categories(self, user_id):
        """Категории, созданные пользователем, с числом вопросов"""
        user = await self.store.get_user(user_id)
        if not user:
            raise UserNotFound(details={"userId": str(user_id)})
        return await self.store.list_categories_by_creator(user["_id"])

    async def get_question(self, actor: Dict[str, Any], question_id) -> Dict[str, Any]:
        question, category = await self._require_question(question_id)
        item = {
            "id": str(question["_id"]),
            "category": category["name"],
            "question_text": question["question_text"],
            "created_at": question.get("created_at"),
        }
        if can_manage(actor, category):
            key = await self.store.get_answer_key(question["_id"])
            item["answer_text"] = key["answer_text"] if key else None
        return item

    async def list_questions(self, actor: Dict[str, Any], category_name: str):
        """
        Вопросы категории в стабильном порядке.

        Эталонные ответы видят только автор категории и администраторы.
        """
        category = await self._require_category(category_name)
        questions = await self.store.list_questions(category["_id"])

        include_keys = can_manage(actor, category)
        keys = {}
        if include_keys and questions:
            keys = await self.store.get_answer_keys([q["_id"] for q in questions])

        items = []
        for question in questions:
            item = {
                "id": str(question["_id"]),
                "question_text": question["question_text"],
                "created_at": question.get("created_at"),
            }
            if include_keys:
                key = keys.get(question["_id"])
                item["answer_text"] = key["answer_text"] if key else None
            items.append(item)
        return category, items

    async def add_question(self, actor: Dict[str, Any], category_name: str, question_text: str, answer_text: str):
        category = await self._require_category(category_name)
        self._require_manage(actor, category)

        question_text = _clean_text(question_text, "question_text")
        answer_text = _clean_text(answer_text, "answer_text")

        now = datetime.utcnow()
        question = await self.store.add_question_with_key(
            {
                "category_id": category["_id"],
                "question_text": question_text,
                "created_by": actor["id"],
                "created_at": now,
            },
            {
                "answer_text": answer_text,
                "created_by": actor["id"],
                "created_at": now,
                "updated_at": now,
            }
        )
        logger.info(
            section=LogSection.CATEGORY,
            subsection=LogSubsection.CATEGORY.QUESTION_CREATE,
            message=f"Добавлен вопрос {question['_id']} в категорию «{category['name']}»",
            user_id=actor["id"]
        )
        return category, question

    async def update_question(
        self,
        actor: Dict[str, Any],
        question_id,
        question_text: Optional[str] = None,
        answer_text: Optional[str] = None
    ):
        if question_text is None and answer_text is None:
            raise InvalidInput("Нужно передать question_text или answer_text")

        # Оба поля проверяются до первой записи в хранилище
        if question_text is not None:
            question_text = _clean_text(question_text, "question_text")
        if answer_text is not None:
            answer_text = _clean_text(answer_text, "answer_text")

        question, category = await self._require_question(question_id)
        self._require_manage(actor, category)

        if question_text is not None:
            await self.store.update_question(question["_id"], {
                "question_text": question_text,
                "updated_at": datetime.utcnow(),
            })
            question = {**question, "question_text": question_text}

        if answer_text is not None:
            # Изменение ключа не трогает уже записанные попытки
            await self.store.set_answer_key(question["_id"], answer_text, actor["id"])

        logger.info(
            section=LogSection.CATEGORY,
            subsection=LogSubsection.CATEGORY.QUESTION_UPDATE,
            message=f"Обновлен вопрос {question['_id']} в категории «{category['name']}»",
            user_id=actor["id"]
        )
        return question

    async def delete_question(self, actor: Dict[str, Any], question_id):
        question, category = await self._require_question(question_id)
        self._require_manage(actor, category)

        await self.store.delete_question(question["_id"])
        logger.info(
            section=LogSection.CATEGORY,
            subsection=LogSubsection.CATEGORY.QUESTION_DELETE,
            message=f"Удален вопрос {question['_id']} из категории «{category['name']}»",
            user_id=actor["id"]
        )

    async def delete_category(self, actor: Dict[str, Any], category_name: str):
        category = await self._require_category(category_name)
        self._require_manage(actor, category)

        await self.store.delete_category(category["_id"])
        logger.info(
            section=LogSection.CATEGORY,
            subsection=LogSubsection.CATEGORY.DELETE,
            message=f"Удалена категория «{category['name']}» со всеми вопросами",
            user_id=actor["id"]
        )
