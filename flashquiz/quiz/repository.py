# flashquiz/quiz/repository.py
"""
Доступ к данным викторины.

QuizStore - узкий интерфейс, через который работают QuizService и
AuthoringService. MotorQuizStore реализует его поверх MongoDB (motor).
Эталонные ответы (answer_keys) и попытки (quiz_attempts) хранятся в разных
коллекциях, поэтому попытка не может перезаписать ключ.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol, Set, Tuple

from pymongo import ASCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

from flashquiz.core.errors import Conflict
from flashquiz.db.utils import parse_object_id, store_operation
from flashquiz.logging import get_logger, LogSection, LogSubsection

logger = get_logger(__name__)

# Стабильный порядок вопросов внутри категории
QUESTION_ORDER = [("created_at", ASCENDING), ("_id", ASCENDING)]


class QuizStore(Protocol):
    async def get_user(self, user_id) -> Optional[Dict[str, Any]]: ...

    async def find_category_by_name(self, name: str) -> Optional[Dict[str, Any]]: ...

    async def get_category(self, category_id) -> Optional[Dict[str, Any]]: ...

    async def list_questions(self, category_id) -> List[Dict[str, Any]]: ...

    async def get_question(self, question_id) -> Optional[Dict[str, Any]]: ...

    async def get_answer_key(self, question_id) -> Optional[Dict[str, Any]]: ...

    async def get_answer_keys(self, question_ids) -> Dict[Any, Dict[str, Any]]: ...

    async def attempted_question_ids(self, user_id, category_id) -> Set[Any]: ...

    async def record_attempt(self, attempt: Dict[str, Any]) -> bool: ...

    async def attempts_by_user(self, user_id) -> List[Dict[str, Any]]: ...

    async def create_category(self, category: Dict[str, Any]) -> Dict[str, Any]: ...

    async def list_categories(self, skip: int, limit: int) -> Tuple[List[Dict[str, Any]], int]: ...

    async def list_categories_by_creator(self, user_id) -> List[Dict[str, Any]]: ...

    async def add_question_with_key(self, question: Dict[str, Any], answer_key: Dict[str, Any]) -> Dict[str, Any]: ...

    async def update_question(self, question_id, fields: Dict[str, Any]) -> None: ...

    async def set_answer_key(self, question_id, answer_text: str, updated_by) -> None: ...

    async def delete_question(self, question_id) -> None: ...

    async def delete_category(self, category_id) -> None: ...


class MotorQuizStore:
    def __init__(self, db):
        self.db = db

    # ───────────────────────────── чтение ─────────────────────────────

    @store_operation
    async def get_user(self, user_id):
        oid = parse_object_id(user_id)
        if oid is None:
            return None
        return await self.db.users.find_one({"_id": oid}, {"hashed_password": 0})

    @store_operation
    async def find_category_by_name(self, name: str):
        return await self.db.categories.find_one({"name_lower": name.strip().lower()})

    @store_operation
    async def get_category(self, category_id):
        oid = parse_object_id(category_id)
        if oid is None:
            return None
        return await self.db.categories.find_one({"_id": oid})

    @store_operation
    async def list_questions(self, category_id):
        cursor = self.db.questions.find({"category_id": category_id}).sort(QUESTION_ORDER)
        return await cursor.to_list(length=None)

    @store_operation
    async def get_question(self, question_id):
        oid = parse_object_id(question_id)
        if oid is None:
            return None
        return await self.db.questions.find_one({"_id": oid})

    @store_operation
    async def get_answer_key(self, question_id):
        return await self.db.answer_keys.find_one({"question_id": question_id})

    @store_operation
    async def get_answer_keys(self, question_ids):
        cursor = self.db.answer_keys.find({"question_id": {"$in": list(question_ids)}})
        return {key["question_id"]: key async for key in cursor}

    @store_operation
    async def attempted_question_ids(self, user_id, category_id):
        return set(await self.db.quiz_attempts.distinct(
            "question_id",
            {"user_id": user_id, "category_id": category_id}
        ))

    @store_operation
    async def attempts_by_user(self, user_id):
        cursor = self.db.quiz_attempts.find({"user_id": user_id}).sort("submitted_at", ASCENDING)
        return await cursor.to_list(length=None)

    # ───────────────────────────── запись ─────────────────────────────

    @store_operation
    async def record_attempt(self, attempt):
        """
        Вставляет попытку, только если для пары (user_id, question_id) ее еще нет.

        Returns:
            True - попытка записана, False - пользователь уже отвечал на вопрос
        """
        key = {"user_id": attempt["user_id"], "question_id": attempt["question_id"]}
        on_insert = {k: v for k, v in attempt.items() if k not in key}
        try:
            result = await self.db.quiz_attempts.update_one(
                key,
                {"$setOnInsert": on_insert},
                upsert=True
            )
        except DuplicateKeyError:
            # Параллельный запрос успел вставить попытку раньше
            logger.info(
                section=LogSection.QUIZ,
                subsection=LogSubsection.QUIZ.ANSWER_DUPLICATE,
                message=f"Параллельная попытка ответа на вопрос {attempt['question_id']}",
                user_id=attempt["user_id"]
            )
            return False
        return result.upserted_id is not None

    @store_operation
    async def create_category(self, category):
        try:
            result = await self.db.categories.insert_one(category)
        except DuplicateKeyError:
            raise Conflict(
                f"Категория «{category['name']}» уже существует",
                details={"field": "name"}
            )
        return {**category, "_id": result.inserted_id}

    async def _with_question_counts(self, categories):
        ids = [c["_id"] for c in categories]
        counts = {}
        async for row in self.db.questions.aggregate([
            {"$match": {"category_id": {"$in": ids}}},
            {"$group": {"_id": "$category_id", "count": {"$sum": 1}}}
        ]):
            counts[row["_id"]] = row["count"]

        for category in categories:
            category["question_count"] = counts.get(category["_id"], 0)
        return categories

    @store_operation
    async def list_categories(self, skip, limit):
        total = await self.db.categories.count_documents({})
        cursor = self.db.categories.find({}).sort("name_lower", ASCENDING).skip(skip).limit(limit)
        categories = await cursor.to_list(length=limit)
        return await self._with_question_counts(categories), total

    @store_operation
    async def list_categories_by_creator(self, user_id):
        cursor = self.db.categories.find({"created_by": user_id}).sort("name_lower", ASCENDING)
        return await self._with_question_counts(await cursor.to_list(length=None))

    @store_operation
    async def add_question_with_key(self, question, answer_key):
        result = await self.db.questions.insert_one(question)
        try:
            await self.db.answer_keys.insert_one({**answer_key, "question_id": result.inserted_id})
        except PyMongoError:
            # Вопрос без ключа в викторину попасть не должен
            await self.db.questions.delete_one({"_id": result.inserted_id})
            raise
        return {**question, "_id": result.inserted_id}

    @store_operation
    async def update_question(self, question_id, fields):
        await self.db.questions.update_one({"_id": question_id}, {"$set": fields})

    @store_operation
    async def set_answer_key(self, question_id, answer_text, updated_by):
        now = datetime.utcnow()
        await self.db.answer_keys.update_one(
            {"question_id": question_id},
            {
                "$set": {"answer_text": answer_text, "updated_at": now, "updated_by": updated_by},
                "$setOnInsert": {"created_at": now, "created_by": updated_by}
            },
            upsert=True
        )

    # Удаление идет сверху вниз: сначала исчезает то, что видно в викторине,
    # поэтому при сбое на середине остаются только недостижимые ключи и попытки

    @store_operation
    async def delete_question(self, question_id):
        await self.db.questions.delete_one({"_id": question_id})
        await self.db.answer_keys.delete_many({"question_id": question_id})
        await self.db.quiz_attempts.delete_many({"question_id": question_id})

    @store_operation
    async def delete_category(self, category_id):
        question_ids = await self.db.questions.distinct("_id", {"category_id": category_id})
        await self.db.categories.delete_one({"_id": category_id})
        await self.db.questions.delete_many({"category_id": category_id})
        if question_ids:
            await self.db.answer_keys.delete_many({"question_id": {"$in": question_ids}})
        await self.db.quiz_attempts.delete_many({"category_id": category_id})
