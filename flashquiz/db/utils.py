# flashquiz/db/utils.py

import functools
from typing import Optional

from bson import ObjectId
from pymongo.errors import PyMongoError

from flashquiz.core.errors import StoreError
from flashquiz.logging import get_logger, LogSection, LogSubsection

logger = get_logger(__name__)


def parse_object_id(value) -> Optional[ObjectId]:
    """Строка из URL -> ObjectId; некорректный id дает None (трактуется как 'не найдено')"""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def store_operation(func):
    """Оборачивает ошибки драйвера MongoDB в StoreError с записью в лог"""

    @functools.wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            return await func(self, *args, **kwargs)
        except PyMongoError as e:
            logger.error(
                section=LogSection.DATABASE,
                subsection=LogSubsection.DATABASE.ERROR,
                message=f"Ошибка MongoDB в операции {type(self).__name__}.{func.__name__}: {e}"
            )
            raise StoreError(details={"operation": func.__name__}) from e

    return wrapper
