# flashquiz/core/dependencies.py
"""Фабрики зависимостей FastAPI: репозитории и сервисы поверх общей БД"""

from fastapi import Depends

from flashquiz.db.database import get_database
from flashquiz.db.repositories import NotificationRepository, UserRepository
from flashquiz.quiz.authoring import AuthoringService
from flashquiz.quiz.repository import MotorQuizStore
from flashquiz.quiz.service import QuizService


async def get_quiz_store(db=Depends(get_database)) -> MotorQuizStore:
    return MotorQuizStore(db)


async def get_quiz_service(store=Depends(get_quiz_store)) -> QuizService:
    return QuizService(store)


async def get_authoring_service(store=Depends(get_quiz_store)) -> AuthoringService:
    return AuthoringService(store)


async def get_user_repository(db=Depends(get_database)) -> UserRepository:
    return UserRepository(db)


async def get_notification_repository(db=Depends(get_database)) -> NotificationRepository:
    return NotificationRepository(db)
