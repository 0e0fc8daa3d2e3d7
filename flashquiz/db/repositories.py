# flashquiz/db/repositories.py
"""
Репозитории аккаунтов и уведомлений поверх motor.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from flashquiz.core.errors import Conflict
from flashquiz.db.utils import parse_object_id, store_operation

# Хэш пароля никогда не покидает репозиторий через списки
PUBLIC_USER_PROJECTION = {"hashed_password": 0}


class UserRepository:
    def __init__(self, db):
        self.db = db

    @store_operation
    async def get_by_id(self, user_id) -> Optional[Dict[str, Any]]:
        oid = parse_object_id(user_id)
        if oid is None:
            return None
        return await self.db.users.find_one({"_id": oid})

    @store_operation
    async def get_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        return await self.db.users.find_one({"email": email.strip().lower()})

    @store_operation
    async def create(self, user: Dict[str, Any]) -> Dict[str, Any]:
        try:
            result = await self.db.users.insert_one(user)
        except DuplicateKeyError:
            raise Conflict("Пользователь с таким email уже существует", details={"field": "email"})
        return {**user, "_id": result.inserted_id}

    @store_operation
    async def update(self, user_id, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Обновляет профиль; возвращает новую версию без хэша или None, если пользователя нет"""
        oid = parse_object_id(user_id)
        if oid is None:
            return None
        try:
            return await self.db.users.find_one_and_update(
                {"_id": oid},
                {"$set": {**fields, "updated_at": datetime.utcnow()}},
                projection=PUBLIC_USER_PROJECTION,
                return_document=ReturnDocument.AFTER
            )
        except DuplicateKeyError:
            raise Conflict("Пользователь с таким email уже существует", details={"field": "email"})

    @store_operation
    async def delete(self, user_id) -> bool:
        """
        Удаляет пользователя вместе с его попытками и уведомлениями.

        Сначала удаляется сам пользователь: если очистка связанных данных
        прервется, остатки уже не привязаны к живому аккаунту.
        """
        oid = parse_object_id(user_id)
        if oid is None:
            return False
        result = await self.db.users.delete_one({"_id": oid})
        if not result.deleted_count:
            return False
        await self.db.quiz_attempts.delete_many({"user_id": oid})
        await self.db.notifications.delete_many({"user_id": oid})
        return True

    @store_operation
    async def touch_activity(self, user_id) -> None:
        await self.db.users.update_one({"_id": user_id}, {"$set": {"last_activity": datetime.utcnow()}})

    @store_operation
    async def list_users(self, skip: int, limit: int) -> Tuple[List[Dict[str, Any]], int]:
        total = await self.db.users.count_documents({})
        cursor = (
            self.db.users.find({}, PUBLIC_USER_PROJECTION)
            .sort("created_at", DESCENDING)
            .skip(skip)
            .limit(limit)
        )
        return await cursor.to_list(length=limit), total

    @store_operation
    async def find_inactive(self, before: datetime) -> List[Dict[str, Any]]:
        """Пользователи без активности с момента before (или вообще без отметки)"""
        cursor = self.db.users.find(
            {"$or": [
                {"last_activity": {"$lt": before}},
                {"last_activity": None},
            ]},
            PUBLIC_USER_PROJECTION
        ).sort("last_activity", ASCENDING)
        return await cursor.to_list(length=None)


class NotificationRepository:
    def __init__(self, db):
        self.db = db

    @store_operation
    async def create_if_absent(self, user_id, kind: str, message: str) -> bool:
        """
        Создает непрочитанное уведомление, если такого же непрочитанного еще нет.

        Returns:
            True, если уведомление создано
        """
        now = datetime.utcnow()
        try:
            result = await self.db.notifications.update_one(
                {"user_id": user_id, "kind": kind, "read": False},
                {"$setOnInsert": {"message": message, "created_at": now, "read_at": None}},
                upsert=True
            )
        except DuplicateKeyError:
            # Параллельная рассылка уже создала непрочитанное уведомление
            return False
        return result.upserted_id is not None

    @store_operation
    async def list_for_user(self, user_id, unread_only: bool = False) -> List[Dict[str, Any]]:
        query = {"user_id": user_id}
        if unread_only:
            query["read"] = False
        cursor = self.db.notifications.find(query).sort("created_at", DESCENDING)
        return await cursor.to_list(length=None)

    @store_operation
    async def mark_read(self, user_id, notification_id) -> Optional[Dict[str, Any]]:
        oid = parse_object_id(notification_id)
        if oid is None:
            return None
        return await self.db.notifications.find_one_and_update(
            {"_id": oid, "user_id": user_id},
            {"$set": {"read": True, "read_at": datetime.utcnow()}},
            return_document=ReturnDocument.AFTER
        )
