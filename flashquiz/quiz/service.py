# flashquiz/quiz/service.py
"""
Оркестратор викторины.

Состояние сессии нигде не хранится: позиция и прогресс каждый раз
восстанавливаются по попыткам пользователя в хранилище.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from flashquiz.core.errors import (
    CategoryNotFound, InvalidInput, NoAnswerKey, NoMoreQuestions, NoQuestions, QuestionNotFound, UserNotFound
)
from flashquiz.logging import get_logger, LogSection, LogSubsection
from flashquiz.quiz.grader import grade
from flashquiz.quiz.progress import Progress, calculate_progress
from flashquiz.quiz.repository import QuizStore
from flashquiz.quiz.selector import pick_question, session_order

logger = get_logger(__name__)


def _progress_fields(progress: Progress) -> Dict[str, Any]:
    return {
        "totalQuestions": progress.total,
        "answeredQuestions": progress.answered,
        "progress": progress.display,
        "progressValue": progress.value,
    }


class QuizService:
    def __init__(self, store: QuizStore):
        self.store = store

    async def _require_user(self, user_id) -> Dict[str, Any]:
        user = await self.store.get_user(user_id)
        if not user:
            raise UserNotFound(details={"userId": str(user_id)})
        return user

    async def _require_category(self, name: str) -> Dict[str, Any]:
        category = None
        if isinstance(name, str) and name.strip():
            category = await self.store.find_category_by_name(name)
        if not category:
            raise CategoryNotFound(f"Категория «{name}» не найдена", details={"category": name})
        return category

    async def _answered_in(self, user_id, category_id, questions: List[Dict[str, Any]]) -> set:
        """Отвеченные вопросы, которые все еще существуют в категории"""
        attempted = await self.store.attempted_question_ids(user_id, category_id)
        return attempted & {q["_id"] for q in questions}

    async def next_question(self, user_id, category: str, cursor: Optional[int] = None) -> Dict[str, Any]:
        """
        Следующий вопрос сессии.

        Без cursor позиция равна числу отвеченных вопросов, и выбирается первый
        неотвеченный. Явный cursor только выбирает вопрос для показа в стабильном
        порядке категории и на прогресс не влияет.
        """
        user = await self._require_user(user_id)
        category_doc = await self._require_category(category)

        questions = await self.store.list_questions(category_doc["_id"])
        answered = await self._answered_in(user["_id"], category_doc["_id"], questions)
        progress = calculate_progress(len(answered), len(questions))

        if cursor is None:
            ordered = session_order(questions, answered)
            position = len(answered)
        else:
            ordered = questions
            position = cursor

        try:
            selection = pick_question(ordered, position)
        except (NoQuestions, NoMoreQuestions) as e:
            logger.info(
                section=LogSection.QUIZ,
                subsection=LogSubsection.QUIZ.EXHAUSTED,
                message=f"Нет вопроса для показа в категории «{category_doc['name']}»: {e}",
                user_id=user["_id"]
            )
            raise

        logger.info(
            section=LogSection.QUIZ,
            subsection=LogSubsection.QUIZ.QUESTION_LOAD,
            message=(
                f"Выдан вопрос {selection.index + 1}/{len(questions)} категории "
                f"«{category_doc['name']}»"
            ),
            user_id=user["_id"]
        )

        question = selection.question
        return {
            "question": {
                "questionText": question["question_text"],
                "questionId": str(question["_id"]),
            },
            **_progress_fields(progress),
            "isLast": selection.is_last,
            "questionIndex": selection.index,
        }

    async def submit_answer(self, user_id, question_id, submitted_text) -> Dict[str, Any]:
        """
        Проверяет ответ и записывает попытку.

        Попытка записывается только один раз на пару (пользователь, вопрос);
        повторная отправка оценивается, но прогресс не меняет.
        """
        if not isinstance(submitted_text, str):
            raise InvalidInput("Поле userAnswer обязательно и должно быть строкой", details={"field": "userAnswer"})

        user = await self._require_user(user_id)
        question = await self.store.get_question(question_id)
        if not question:
            raise QuestionNotFound(details={"questionId": str(question_id)})

        answer_key = await self.store.get_answer_key(question["_id"])
        if not answer_key:
            raise NoAnswerKey(details={"questionId": str(question["_id"])})

        is_correct = grade(answer_key.get("answer_text"), submitted_text)

        recorded = await self.store.record_attempt({
            "user_id": user["_id"],
            "question_id": question["_id"],
            "category_id": question["category_id"],
            "submitted_text": submitted_text,
            "is_correct": is_correct,
            "submitted_at": datetime.utcnow(),
        })

        if recorded:
            logger.info(
                section=LogSection.QUIZ,
                subsection=LogSubsection.QUIZ.ANSWER_SUBMIT,
                message=f"Ответ на вопрос {question['_id']} записан, верно: {is_correct}",
                user_id=user["_id"]
            )
        else:
            logger.info(
                section=LogSection.QUIZ,
                subsection=LogSubsection.QUIZ.ANSWER_DUPLICATE,
                message=f"Повторный ответ на вопрос {question['_id']}, попытка не записана",
                user_id=user["_id"]
            )

        questions = await self.store.list_questions(question["category_id"])
        answered = await self._answered_in(user["_id"], question["category_id"], questions)
        progress = calculate_progress(len(answered), len(questions))

        return {
            "correctAnswer": answer_key["answer_text"],
            "isCorrect": is_correct,
            **_progress_fields(progress),
            "alreadyAnswered": not recorded,
        }

    async def category_progress(self, user_id, category: str) -> Dict[str, Any]:
        user = await self._require_user(user_id)
        category_doc = await self._require_category(category)

        questions = await self.store.list_questions(category_doc["_id"])
        answered = await self._answered_in(user["_id"], category_doc["_id"], questions)
        progress = calculate_progress(len(answered), len(questions))

        logger.debug(
            section=LogSection.QUIZ,
            subsection=LogSubsection.QUIZ.PROGRESS,
            message=f"Прогресс по категории «{category_doc['name']}»: {progress.display}",
            user_id=user["_id"]
        )

        return {
            "category": category_doc["name"],
            "categoryId": str(category_doc["_id"]),
            **_progress_fields(progress),
            "completed": progress.total > 0 and progress.answered == progress.total,
        }

    async def progress_overview(self, user_id) -> List[Dict[str, Any]]:
        """Прогресс по всем категориям, в которых пользователь отвечал хотя бы раз"""
        user = await self._require_user(user_id)
        attempts = await self.store.attempts_by_user(user["_id"])

        by_category: Dict[Any, List[Dict[str, Any]]] = {}
        for attempt in attempts:
            by_category.setdefault(attempt["category_id"], []).append(attempt)

        overview = []
        for category_id, category_attempts in by_category.items():
            category_doc = await self.store.get_category(category_id)
            if not category_doc:
                # Категорию удалили, а попытки остались
                continue

            questions = await self.store.list_questions(category_id)
            current_ids = {q["_id"] for q in questions}
            live = [a for a in category_attempts if a["question_id"] in current_ids]
            progress = calculate_progress(len({a["question_id"] for a in live}), len(questions))

            overview.append({
                "category": category_doc["name"],
                "categoryId": str(category_id),
                **_progress_fields(progress),
                "correctAnswers": sum(1 for a in live if a.get("is_correct")),
                "completed": progress.total > 0 and progress.answered == progress.total,
            })

        overview.sort(key=lambda item: item["category"].lower())
        return overview
