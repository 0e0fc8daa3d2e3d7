"""
Инициализация индексов MongoDB
"""
from pymongo import IndexModel

from flashquiz.logging import get_logger, LogSection, LogSubsection

logger = get_logger("database_indexes")


async def create_database_indexes(db):
    logger.info(
        section=LogSection.DATABASE,
        subsection=LogSubsection.DATABASE.INDEXES_CREATE,
        message="Начинаем создание индексов базы данных"
    )

    try:
        # -------------------------
        # users
        await db.users.create_indexes([
            IndexModel([("email", 1)], name="email_uniq", unique=True),
            IndexModel([("last_activity", 1)], name="by_last_activity"),
        ])
        logger.info(section=LogSection.DATABASE,
                    subsection=LogSubsection.DATABASE.INDEXES_SUCCESS,
                    message="Индексы для коллекции users созданы")

        # -------------------------
        # categories: поиск без учета регистра идет по name_lower
        await db.categories.create_indexes([
            IndexModel([("name_lower", 1)], name="name_lower_uniq", unique=True),
            IndexModel([("created_by", 1), ("name_lower", 1)], name="by_creator"),
        ])
        logger.info(section=LogSection.DATABASE,
                    subsection=LogSubsection.DATABASE.INDEXES_SUCCESS,
                    message="Индексы для коллекции categories созданы")

        # -------------------------
        # questions: стабильный порядок внутри категории
        await db.questions.create_indexes([
            IndexModel([("category_id", 1), ("created_at", 1), ("_id", 1)], name="by_category_ordered"),
        ])
        logger.info(section=LogSection.DATABASE,
                    subsection=LogSubsection.DATABASE.INDEXES_SUCCESS,
                    message="Индексы для коллекции questions созданы")

        # -------------------------
        # answer_keys: ровно один ключ на вопрос
        await db.answer_keys.create_indexes([
            IndexModel([("question_id", 1)], name="question_id_uniq", unique=True),
        ])
        logger.info(section=LogSection.DATABASE,
                    subsection=LogSubsection.DATABASE.INDEXES_SUCCESS,
                    message="Индексы для коллекции answer_keys созданы")

        # -------------------------
        # quiz_attempts: не более одной попытки на пару (user, question)
        await db.quiz_attempts.create_indexes([
            IndexModel([("user_id", 1), ("question_id", 1)], name="user_question_uniq", unique=True),
            IndexModel([("user_id", 1), ("category_id", 1)], name="by_user_category"),
            IndexModel([("question_id", 1)], name="by_question"),
        ])
        logger.info(section=LogSection.DATABASE,
                    subsection=LogSubsection.DATABASE.INDEXES_SUCCESS,
                    message="Индексы для коллекции quiz_attempts созданы")

        # -------------------------
        # notifications
        await db.notifications.create_indexes([
            IndexModel([("user_id", 1), ("read", 1)], name="by_user_read"),
            IndexModel([("kind", 1), ("read", 1)], name="by_kind_read"),
            # Не больше одного непрочитанного уведомления каждого вида на пользователя
            IndexModel(
                [("user_id", 1), ("kind", 1)],
                name="unread_user_kind_uniq",
                unique=True,
                partialFilterExpression={"read": False}
            ),
        ])
        logger.info(section=LogSection.DATABASE,
                    subsection=LogSubsection.DATABASE.INDEXES_SUCCESS,
                    message="Индексы для коллекции notifications созданы")

        logger.info(section=LogSection.DATABASE,
                    subsection=LogSubsection.DATABASE.INDEXES_SUCCESS,
                    message="Все индексы базы данных успешно созданы")

    except Exception as e:
        logger.error(
            section=LogSection.DATABASE,
            subsection=LogSubsection.DATABASE.INDEXES_ERROR,
            message=f"Ошибка при создании индексов: {str(e)}"
        )
        raise
